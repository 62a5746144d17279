import os

from kaspa_wizard import installation_state
from kaspa_wizard.paths import get_paths
from kaspa_wizard.rollback_manager import RollbackManager


def _events(socket_client):
    return [(x['name'], x['args'][0] if x['args'] else None) for x in socket_client.get_received('/install')]


def _start(socket_client, config, profiles):
    socket_client.emit('install:start', {'config': config, 'profiles': profiles}, namespace='/install')
    return _events(socket_client)


def test_full_install(socket_client, docker_manager, project_root, home_node_config):
    events = _start(socket_client, home_node_config, ['core'])

    names = [name for name, _ in events]
    assert names[-1] == 'install:complete'
    assert set(names[:-1]) == {'install:progress'}

    progress = [payload['progress'] for name, payload in events if name == 'install:progress']
    assert progress[0] == 0
    assert progress[-1] == 100
    assert progress == sorted(progress)

    stages = [payload['stage'] for name, payload in events if name == 'install:progress']
    assert stages.index('pull') < stages.index('build') < stages.index('deploy') < stages.index('validate')

    complete = events[-1][1]
    assert complete['validation']['services']['allRunning']

    state = installation_state.read_state(project_root)
    assert state['phase'] == 'complete'
    assert state['wizardRunning'] is False
    assert state['profiles']['selected'] == ['core']

    assert os.path.exists(get_paths(project_root)['env'])
    assert RollbackManager(project_root).get_history()['total'] == 0
    assert [x[0] for x in docker_manager.calls] == ['pull', 'build', 'start']


def test_reinstall_backs_up_the_previous_config(socket_client, project_root, home_node_config):
    _start(socket_client, {**home_node_config, 'KASPA_NETWORK': 'testnet'}, ['core'])
    _start(socket_client, home_node_config, ['core'])

    manager = RollbackManager(project_root)
    latest = manager.get_latest_version()
    assert latest['metadata']['action'] == 'install'
    assert manager.load_version_config(latest['versionId'])['KASPA_NETWORK'] == 'testnet'


def test_missing_input(socket_client, docker_manager):
    events = _start(socket_client, None, ['core'])
    assert events == [('install:error', {'stage': 'init', 'message': 'config object and profiles array are required'})]
    assert docker_manager.calls == []


def test_invalid_configuration(socket_client, docker_manager, project_root):
    events = _start(socket_client, {}, ['core', 'mining'])
    name, payload = events[-1]
    assert name == 'install:error'
    assert payload['stage'] == 'config'
    assert payload['errors'][0]['field'] == 'MINING_ADDRESS'
    assert installation_state.read_state(project_root)['phase'] == 'error'
    assert not os.path.exists(get_paths(project_root)['env'])


def test_pull_failure_stops_the_install(socket_client, docker_manager, project_root, home_node_config):
    docker_manager.pull_failures = ['kaspanet/rusty-kaspad:latest']
    events = _start(socket_client, home_node_config, ['core'])

    name, payload = events[-1]
    assert name == 'install:error'
    assert payload['stage'] == 'pull'
    assert payload['error'] == 'pull access denied'
    assert payload['results'][0]['success'] is False
    assert [x[0] for x in docker_manager.calls] == ['pull']
    assert installation_state.read_state(project_root)['phase'] == 'error'


def test_deploy_failure(socket_client, docker_manager, home_node_config):
    docker_manager.start_error = 'port is already allocated'
    name, payload = _start(socket_client, home_node_config, ['core'])[-1]
    assert name == 'install:error'
    assert payload['stage'] == 'deploy'
    assert payload['message'] == 'port is already allocated'
    assert 'results' not in payload


def test_service_status(socket_client, docker_manager):
    docker_manager.running.add('kaspa-node')
    socket_client.emit('service:status', 'kaspa-node', namespace='/install')
    name, payload = _events(socket_client)[-1]
    assert name == 'service:status:response'
    assert payload['status']['running']


def test_log_stream(socket_client, docker_manager):
    docker_manager.logs['kaspa-node'] = 'block 1\nblock 2\n'
    socket_client.emit('logs:stream', {'service': 'kaspa-node', 'lines': 2}, namespace='/install')
    socket_client.emit('logs:stream', {'service': 'missing'}, namespace='/install')
    events = _events(socket_client)
    assert events[0] == ('logs:data', {'service': 'kaspa-node', 'logs': 'block 1\nblock 2\n'})
    assert events[1][0] == 'logs:error'


def test_disconnect_forgets_the_client(app, socket_client):
    namespace = app.extensions['socketio'].server.namespace_handlers['/install']
    assert len(namespace.clients) == 1
    socket_client.disconnect(namespace='/install')
    assert namespace.clients == {}
