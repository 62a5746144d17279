"""Shared fixtures: an app rooted in a temp project directory, with docker replaced by a fake."""

import pytest

from kaspa_wizard import create_app
from kaspa_wizard.docker_manager import DockerManager
from kaspa_wizard.exceptions import DockerError


VALID_MAINNET_ADDRESS = 'kaspa:' + 'qypq' * 15 + 'qp'
VALID_TESTNET_ADDRESS = 'kaspatest:' + 'qypq' * 15 + 'qp'


class FakeDockerManager(DockerManager):
    """Real profile maps, no docker. Records what it was asked to do."""

    def __init__(self, project_root=None):
        super().__init__(project_root)
        self.calls = []
        self.pull_failures = []  # images that fail to pull
        self.start_error = None
        self.running = set()
        self.logs = {}

    def is_docker_available(self):
        return True

    def pull_images(self, profiles, progress_cb=None, config=None):
        self.calls.append(('pull', list(profiles)))
        images = self.get_images_for_profiles(profiles, config or {})
        results = []
        for i, image in enumerate(images):
            if progress_cb:
                progress_cb({'stage': 'pull', 'current': i, 'total': len(images), 'image': image, 'message': f"Pulling {image}..."})
            failed = image in self.pull_failures
            results.append({'image': image, 'success': not failed, 'error': 'pull access denied' if failed else None})
        return results

    def build_services(self, profiles, progress_cb=None):
        self.calls.append(('build', list(profiles)))
        services = [{'service': x, 'success': True, 'error': None} for x in self.get_build_services_for_profiles(profiles)]
        return {'success': True, 'services': services}

    def start_services(self, profiles, progress_cb=None):
        self.calls.append(('start', list(profiles)))
        if self.start_error:
            raise DockerError(self.start_error, {'error': self.start_error})
        if progress_cb:
            progress_cb({'stage': 'deploy', 'message': 'Starting services...'})
        self.running.update(self.get_containers_for_profiles(profiles))
        return {'success': True, 'output': '', 'validation': self.validate_services(profiles)}

    def get_service_status(self, name):
        if name in self.running:
            return {'exists': True, 'running': True, 'status': 'running', 'state': {'Status': 'running'}, 'id': 'abc123'}
        return {'exists': False, 'running': False, 'status': 'not_found', 'state': None, 'id': None}

    def stop_services(self):
        self.calls.append(('stop',))
        self.running.clear()
        return {'success': True, 'output': ''}

    def get_logs(self, service, lines=100):
        if service not in self.logs:
            return {'success': False, 'error': f"Error: No such container: {service}"}
        return {'success': True, 'logs': self.logs[service]}

    def remove_services(self, names, remove_data=False):
        self.calls.append(('remove', list(names), remove_data))
        return {'total': len(names), 'removed': len(names), 'not_found': 0, 'failed': 0, 'volumes_removed': 0, 'results': []}

    def get_running_services(self):
        return [{'name': x, 'service': x, 'status': 'running', 'image': None, 'id': 'abc123'} for x in sorted(self.running)]


@pytest.fixture
def project_root(tmp_path):
    return str(tmp_path)


@pytest.fixture
def app(project_root):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'PROJECT_ROOT': project_root,
        'SOCKETIO_ASYNC_MODE': 'threading',
    })
    app.extensions['docker_manager'] = FakeDockerManager(project_root)
    return app


@pytest.fixture
def docker_manager(app):
    return app.extensions['docker_manager']


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield


@pytest.fixture
def socket_client(app):
    socketio = app.extensions['socketio']
    client = socketio.test_client(app, namespace='/install')
    yield client
    if client.is_connected('/install'):
        client.disconnect(namespace='/install')


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def home_node_config():
    return {
        'KASPA_NODE_RPC_PORT': 16110,
        'KASPA_NODE_P2P_PORT': 16111,
        'KASPA_NETWORK': 'mainnet',
        'PUBLIC_NODE': False,
    }
