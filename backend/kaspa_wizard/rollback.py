from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
import sys
from .template_response import MyResponse, response_from_error
from .rollback_manager import RollbackManager
from .docker_manager import get_docker_manager
from .exceptions import BackupNotFound, CheckpointNotFound, DockerError, DockerUnavailable
from .configs.user_config import DEFAULT_HISTORY_LIMIT
from .utils import deduplicate


bp = Blueprint('rollback', __name__, url_prefix="/api/rollback")


# Restarts with the restored profiles; a failure here doesn't undo the restore
def _restart(profiles):
    try:
        result = get_docker_manager().start_services(profiles)
        return {'success': True, 'validation': result['validation']}
    except (DockerError, DockerUnavailable) as e:
        print(f"[ROLLBACK] Restart after restore failed: {e}", file=sys.stderr)
        return {'success': False, 'error': str(e)}


@bp.route('/save-version', methods=('POST',))
@cross_origin()
def save_version():
    config = request.json.get('config')
    profiles = request.json.get('profiles')
    metadata = request.json.get('metadata') or {}
    if not isinstance(config, dict) or not isinstance(profiles, list):
        return MyResponse(False, reason="config object and profiles array are required", status=400).to_json()
    return MyResponse(True, RollbackManager().save_version(config, profiles, metadata)).to_json()


@bp.route('/history', methods=('GET',))
@cross_origin()
def history():
    limit = request.args.get('limit', DEFAULT_HISTORY_LIMIT, type=int)
    return MyResponse(True, RollbackManager().get_history(limit)).to_json()


@bp.route('/restore', methods=('POST',))
@cross_origin()
def restore():
    version_id = request.json.get('versionId')
    restart = bool(request.json.get('restartServices'))
    if not version_id:
        return MyResponse(False, reason="versionId is required", status=400).to_json()
    try:
        result = RollbackManager().restore_version(version_id)
    except BackupNotFound as e:
        return response_from_error(e)
    if restart:
        result['restart'] = _restart(result['profiles'])
    return MyResponse(True, result).to_json()


@bp.route('/undo', methods=('POST',))
@cross_origin()
def undo():
    restart = bool((request.get_json(silent=True) or {}).get('restartServices'))
    try:
        result = RollbackManager().undo()
    except BackupNotFound as e:
        return response_from_error(e)
    if restart:
        result['restart'] = _restart(result['profiles'])
    return MyResponse(True, {**result, 'message': 'Configuration restored to previous version'}).to_json()


@bp.route('/compare', methods=('GET',))
@cross_origin()
def compare():
    version1 = request.args.get('version1')
    version2 = request.args.get('version2')
    if not version1 or not version2:
        return MyResponse(False, reason="version1 and version2 are required", status=400).to_json()
    try:
        result = RollbackManager().compare_versions(version1, version2)
    except BackupNotFound as e:
        return response_from_error(e)
    return MyResponse(True, result).to_json()


@bp.route('/checkpoint', methods=('POST',))
@cross_origin()
def checkpoint():
    stage = request.json.get('stage')
    data = request.json.get('data') or {}
    if not stage:
        return MyResponse(False, reason="stage is required", status=400).to_json()
    return MyResponse(True, RollbackManager().create_checkpoint(stage, data)).to_json()


@bp.route('/checkpoints', methods=('GET',))
@cross_origin()
def checkpoints():
    return MyResponse(True, {'checkpoints': RollbackManager().get_checkpoints()}).to_json()


@bp.route('/restore-checkpoint', methods=('POST',))
@cross_origin()
def restore_checkpoint():
    checkpoint_id = request.json.get('checkpointId')
    if not checkpoint_id:
        return MyResponse(False, reason="checkpointId is required", status=400).to_json()
    try:
        result = RollbackManager().restore_checkpoint(checkpoint_id)
    except CheckpointNotFound as e:
        return response_from_error(e)
    return MyResponse(True, result).to_json()


@bp.route('/checkpoint/<checkpoint_id>', methods=('DELETE',))
@cross_origin()
def delete_checkpoint(checkpoint_id):
    try:
        result = RollbackManager().delete_checkpoint(checkpoint_id)
    except CheckpointNotFound as e:
        return response_from_error(e)
    return MyResponse(True, result).to_json()


"""

Start over: stop everything, optionally throw away containers and their data volumes,
then remove backups (and optionally the generated files) and the wizard's state.

"""

@bp.route('/start-over', methods=('POST',))
@cross_origin()
def start_over():
    body = request.get_json(silent=True) or {}
    delete_data = bool(body.get('deleteData'))
    delete_config = bool(body.get('deleteConfig'))

    actions = []
    docker_manager = get_docker_manager()

    stopped = docker_manager.stop_services()
    actions.append({'action': 'stop-services', 'success': stopped['success'], 'error': stopped.get('error')})

    if delete_data:
        try:
            names = [x['name'] for x in docker_manager.get_running_services()]
            names = deduplicate(names + docker_manager.get_containers_for_profiles(body.get('profiles') or []))
            removed = docker_manager.remove_services(names, remove_data=True)
            actions.append({'action': 'remove-containers', 'success': removed['failed'] == 0, 'details': removed})
        except (DockerUnavailable, DockerError) as e:
            actions.append({'action': 'remove-containers', 'success': False, 'error': str(e)})

    try:
        cleaned = RollbackManager().start_over(delete_config=delete_config, clear_state=True)
        actions.append({'action': 'delete-backups', 'success': True, 'removed': cleaned['removed']})
    except OSError as e:
        actions.append({'action': 'delete-backups', 'success': False, 'error': str(e)})

    any_failed = any(not x['success'] for x in actions)
    message = 'Some actions failed during start over' if any_failed else 'Successfully reset to clean state'
    return MyResponse(not any_failed, {'actions': actions, 'message': message}, status=200).to_json()


@bp.route('/storage', methods=('GET',))
@cross_origin()
def storage():
    return MyResponse(True, RollbackManager().get_storage_usage()).to_json()
