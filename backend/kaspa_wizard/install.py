from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
import sys
import gevent
from flask_socketio import Namespace, emit
from .template_response import MyResponse, response_from_error
from .docker_manager import get_docker_manager
from .config_generator import validate_config, write_project_files
from .profiles.manager import apply_developer_mode
from .rollback_manager import RollbackManager
from . import installation_state
from .exceptions import DockerError, DockerUnavailable, StateNotFound, UnknownProfileError
from .configs.str_constants import (
    PHASE_ERROR,
    STAGE_INIT,
    STAGE_CONFIG,
    STAGE_PULL,
    STAGE_BUILD,
    STAGE_DEPLOY,
    STAGE_VALIDATE,
)
from .configs.user_config import DEFAULT_LOG_LINES
from .utils import is_truthy


bp = Blueprint('install', __name__, url_prefix="/api/install")


def _profiles_or_none():
    profiles = (request.get_json(silent=True) or {}).get('profiles')
    return profiles if isinstance(profiles, list) else None


# Developer mode switches on its extra settings before anything is validated or written
def prepare_config(config: dict):
    if is_truthy(config.get('DEVELOPER_MODE')):
        return apply_developer_mode(config, True)
    return config


@bp.route('/config', methods=('POST',))
@cross_origin()
def save_config():
    config = request.json.get('config')
    profiles = request.json.get('profiles')
    if not isinstance(config, dict) or not isinstance(profiles, list) or not len(profiles):
        return MyResponse(False, reason="config object and profiles array are required", status=400).to_json()

    validation = validate_config(prepare_config(config), profiles)
    if not validation['valid']:
        return MyResponse(False, {'errors': validation['errors']}, reason="Invalid configuration", status=400).to_json()

    RollbackManager().backup_current({'action': 'install-config'})
    try:
        result = write_project_files(validation['config'], profiles)
    except UnknownProfileError as e:
        return response_from_error(e)
    if not result['success']:
        return MyResponse(False, reason=f"Failed to save configuration: {result.get('error')}").to_json()
    return MyResponse(True, result).to_json()


@bp.route('/pull', methods=('POST',))
@cross_origin()
def pull():
    profiles = _profiles_or_none()
    if profiles is None:
        return MyResponse(False, reason="profiles array is required", status=400).to_json()
    results = get_docker_manager().pull_images(profiles)
    return MyResponse(all(x['success'] for x in results), {'results': results}, status=200).to_json()


@bp.route('/build', methods=('POST',))
@cross_origin()
def build():
    profiles = _profiles_or_none()
    if profiles is None:
        return MyResponse(False, reason="profiles array is required", status=400).to_json()
    result = get_docker_manager().build_services(profiles)
    return MyResponse(result['success'], result, status=200).to_json()


@bp.route('/deploy', methods=('POST',))
@cross_origin()
def deploy():
    profiles = _profiles_or_none()
    if profiles is None:
        return MyResponse(False, reason="profiles array is required", status=400).to_json()
    try:
        result = get_docker_manager().start_services(profiles)
    except DockerUnavailable as e:
        return response_from_error(e)
    except DockerError as e:
        return MyResponse(False, {'details': e.details}, reason=str(e)).to_json()
    return MyResponse(True, result).to_json()


@bp.route('/validate', methods=('POST',))
@cross_origin()
def validate():
    profiles = _profiles_or_none()
    if profiles is None:
        return MyResponse(False, reason="profiles array is required", status=400).to_json()
    try:
        result = get_docker_manager().validate_services(profiles)
    except DockerUnavailable as e:
        return response_from_error(e)
    return MyResponse(True, {'services': result}).to_json()


@bp.route('/status/<service>', methods=('GET',))
@cross_origin()
def status(service):
    try:
        result = get_docker_manager().get_service_status(service)
    except DockerUnavailable as e:
        return response_from_error(e)
    return MyResponse(True, {'service': service, 'status': result}).to_json()


@bp.route('/logs/<service>', methods=('GET',))
@cross_origin()
def logs(service):
    lines = request.args.get('lines', DEFAULT_LOG_LINES, type=int)
    result = get_docker_manager().get_logs(service, lines)
    if not result['success']:
        return MyResponse(False, {'service': service}, reason=result['error']).to_json()
    return MyResponse(True, {'service': service, 'logs': result['logs']}).to_json()


@bp.route('/stop', methods=('POST',))
@cross_origin()
def stop():
    result = get_docker_manager().stop_services()
    if not result['success']:
        return MyResponse(False, reason=result['error']).to_json()
    return MyResponse(True, result).to_json()


@bp.route('/remove', methods=('POST',))
@cross_origin()
def remove():
    services = request.json.get('services')
    remove_data = bool(request.json.get('removeData'))
    if not isinstance(services, list) or not len(services):
        return MyResponse(False, reason="services array is required", status=400).to_json()
    try:
        result = get_docker_manager().remove_services(services, remove_data=remove_data)
    except DockerUnavailable as e:
        return response_from_error(e)
    return MyResponse(result['failed'] == 0, result, status=200).to_json()


"""

Socket side of the install. The browser sends install:start {config, profiles} and gets back a
stream of install:progress events, then one install:complete or install:error.

    init 0 -> config 10 -> pull 20..50 -> build 55..75 -> deploy 80..90 -> validate 90..100

"""

class InstallAbandoned(Exception):
    pass


def _scaled(start, span, progress):
    total = progress.get('total') or 0
    if not total:
        return start + span
    return start + (progress.get('current', 0) / total) * span


class InstallNamespace(Namespace):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.clients = {}  # sids still connected

    # Events are named like "install:start"; their handlers like on_install_start
    def trigger_event(self, event, *args):
        return super().trigger_event(event.replace(':', '_'), *args)

    def on_connect(self):
        self.clients[request.sid] = True

    def on_disconnect(self, reason=None):
        self.clients.pop(request.sid, None)

    def _abandoned(self):
        return not self.clients.get(request.sid)

    def _progress(self, stage, message, progress, details=None):
        if self._abandoned():
            raise InstallAbandoned()
        payload = {'stage': stage, 'message': message, 'progress': round(progress, 1)}
        if details is not None:
            payload['details'] = details
        emit('install:progress', payload)
        gevent.sleep(0)  # Let the emit go out before the next (blocking) docker call

    def _fail(self, stage, message, **kwargs):
        print(f"[INSTALL] Failed at {stage}: {message}", file=sys.stderr)
        try:
            installation_state.update_state({'phase': PHASE_ERROR, 'wizardRunning': False})
        except StateNotFound:
            pass
        emit('install:error', {'stage': stage, 'message': message, **{k: v for k, v in kwargs.items() if v is not None}})

    def on_install_start(self, data):
        config = (data or {}).get('config')
        profiles = (data or {}).get('profiles')
        if not isinstance(config, dict) or not isinstance(profiles, list) or not len(profiles):
            emit('install:error', {'stage': STAGE_INIT, 'message': 'config object and profiles array are required'})
            return

        installation_state.set_wizard_running(True, profiles, config)
        try:
            self._progress(STAGE_INIT, 'Starting installation...', 0)
            self.run_installation(config, profiles)
        except InstallAbandoned:
            print(f"[INSTALL] Client {request.sid} disconnected; stopping progress stream", file=sys.stderr)
            installation_state.set_wizard_running(False)
        except Exception as e:
            self._fail('unknown', 'Installation failed', error=str(e))

    def run_installation(self, config, profiles):
        docker_manager = get_docker_manager()

        # Config
        validation = validate_config(prepare_config(config), profiles)
        if not validation['valid']:
            self._fail(STAGE_CONFIG, 'Invalid configuration', errors=validation['errors'])
            return
        config = validation['config']
        RollbackManager().backup_current({'action': 'install'})
        saved = write_project_files(config, profiles)
        if not saved['success']:
            self._fail(STAGE_CONFIG, 'Failed to save configuration', error=saved.get('error'))
            return
        self._progress(STAGE_CONFIG, 'Configuration saved', 10)

        # Pull
        self._progress(STAGE_PULL, 'Pulling Docker images...', 20)
        pull_results = docker_manager.pull_images(
            profiles,
            lambda p: self._progress(STAGE_PULL, p['message'], _scaled(20, 30, p), p),
            config=config,
        )
        failed = [x for x in pull_results if not x['success']]
        if len(failed):
            self._fail(STAGE_PULL, 'Failed to pull Docker images', error='; '.join(x['error'] for x in failed), results=pull_results)
            return
        self._progress(STAGE_PULL, 'Images pulled successfully', 50)

        # Build
        self._progress(STAGE_BUILD, 'Building services...', 55)
        build_result = docker_manager.build_services(
            profiles,
            lambda p: self._progress(STAGE_BUILD, p['message'], _scaled(55, 20, p), p),
        )
        if not build_result['success']:
            errors = [x['error'] for x in build_result['services'] if not x['success']]
            self._fail(STAGE_BUILD, 'Failed to build services', error='; '.join(errors), results=build_result['services'])
            return
        self._progress(STAGE_BUILD, 'Services built successfully', 75)

        # Deploy
        self._progress(STAGE_DEPLOY, 'Starting services...', 80)
        try:
            docker_manager.start_services(
                profiles,
                lambda p: self._progress(STAGE_DEPLOY, p['message'], 85, p),
            )
        except DockerError as e:
            self._fail(STAGE_DEPLOY, str(e), error=e.details.get('error'), results=e.details.get('services'))
            return
        except DockerUnavailable as e:
            self._fail(STAGE_DEPLOY, str(e))
            return
        self._progress(STAGE_DEPLOY, 'Services started', 90)

        # Validate
        self._progress(STAGE_VALIDATE, 'Validating installation...', 90)
        service_validation = docker_manager.validate_services(profiles)
        self._progress(STAGE_VALIDATE, 'Validation complete', 100)

        installation_state.save_installation_state(profiles, config, service_validation)
        print(f"[INSTALL] Installation complete for profiles {', '.join(profiles)}", file=sys.stderr)
        emit('install:complete', {
            'message': 'Installation completed successfully',
            'validation': {'services': service_validation},
        })

    def on_service_status(self, service):
        try:
            status = get_docker_manager().get_service_status(service)
        except DockerUnavailable as e:
            emit('service:status:error', {'service': service, 'error': str(e)})
            return
        emit('service:status:response', {'service': service, 'status': status})

    def on_logs_stream(self, data):
        service = (data or {}).get('service')
        lines = (data or {}).get('lines') or DEFAULT_LOG_LINES
        result = get_docker_manager().get_logs(service, lines)
        if not result['success']:
            emit('logs:error', {'service': service, 'error': result['error']})
            return
        emit('logs:data', {'service': service, 'logs': result['logs']})


def register_sockets(socketio):
    socketio.on_namespace(InstallNamespace('/install'))
