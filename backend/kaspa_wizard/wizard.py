from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
import os
import sys
from .template_response import MyResponse, response_from_error
from .state_manager import WizardStateManager
from .config_generator import load_env_file
from . import installation_state
from .paths import get_paths
from .exceptions import StateNotFound, InvalidStateError
from .configs.user_config import WIZARD_AUTO_START
from .configs.str_constants import PHASE_COMPLETE


bp = Blueprint('wizard', __name__, url_prefix="/api/wizard")


VALID_PHASES = ['preparing', 'building', 'starting', 'syncing', 'validating', 'complete']

# ?mode= aliases
MODE_ALIASES = {
    'install': 'initial',
    'initial': 'initial',
    'reconfigure': 'reconfigure',
    'reconfiguration': 'reconfigure',
    'update': 'update',
}


@bp.route('/save', methods=('POST',))
@cross_origin()
def save():
    state = request.json.get('state')
    try:
        result = WizardStateManager().save_state(state)
    except InvalidStateError as e:
        return response_from_error(e)
    return MyResponse(True, result).to_json()


@bp.route('/load', methods=('GET',))
@cross_origin()
def load():
    state = WizardStateManager().load_state()
    if state is None:
        return MyResponse(False, {'state': None}, reason="No saved state found", status=404).to_json()
    return MyResponse(True, {'state': state}).to_json()


@bp.route('/can-resume', methods=('GET',))
@cross_origin()
def can_resume():
    return MyResponse(True, WizardStateManager().can_resume()).to_json()


@bp.route('/update-step', methods=('POST',))
@cross_origin()
def update_step():
    step_number = request.json.get('stepNumber')
    step_name = request.json.get('stepName')
    if step_number is None or not step_name:
        return MyResponse(False, reason="stepNumber and stepName are required", status=400).to_json()
    return MyResponse(True, WizardStateManager().update_step(step_number, step_name)).to_json()


@bp.route('/update-profiles', methods=('POST',))
@cross_origin()
def update_profiles():
    profiles = request.json.get('profiles')
    configuration = request.json.get('configuration') or {}
    if not isinstance(profiles, list):
        return MyResponse(False, reason="profiles array is required", status=400).to_json()
    return MyResponse(True, WizardStateManager().update_profiles(profiles, configuration)).to_json()


@bp.route('/service-status', methods=('POST',))
@cross_origin()
def service_status():
    name = request.json.get('serviceName')
    status = request.json.get('status')
    details = request.json.get('details') or {}
    if not name or not status:
        return MyResponse(False, reason="serviceName and status are required", status=400).to_json()
    return MyResponse(True, WizardStateManager().update_service_status(name, status, details)).to_json()


@bp.route('/sync-operation', methods=('POST',))
@cross_origin()
def add_sync_operation():
    operation = request.json.get('operation')
    if not isinstance(operation, dict):
        return MyResponse(False, reason="operation object is required", status=400).to_json()
    return MyResponse(True, WizardStateManager().add_sync_operation(operation)).to_json()


@bp.route('/sync-operation/<sync_id>', methods=('PATCH',))
@cross_origin()
def update_sync_operation(sync_id):
    updates = request.json.get('updates')
    if not isinstance(updates, dict):
        return MyResponse(False, reason="updates object is required", status=400).to_json()
    try:
        result = WizardStateManager().update_sync_operation(sync_id, updates)
    except StateNotFound as e:
        return response_from_error(e)
    return MyResponse(True, result).to_json()


@bp.route('/decision', methods=('POST',))
@cross_origin()
def record_decision():
    decision = request.json.get('decision')
    context = request.json.get('context')
    if not decision:
        return MyResponse(False, reason="decision is required", status=400).to_json()
    return MyResponse(True, WizardStateManager().record_decision(decision, context)).to_json()


@bp.route('/background-task', methods=('POST',))
@cross_origin()
def add_background_task():
    task_id = request.json.get('taskId')
    task_info = request.json.get('taskInfo')
    if not task_id:
        return MyResponse(False, reason="taskId is required", status=400).to_json()
    return MyResponse(True, WizardStateManager().add_background_task(task_id, task_info)).to_json()


@bp.route('/background-task/<task_id>', methods=('DELETE',))
@cross_origin()
def remove_background_task(task_id):
    try:
        result = WizardStateManager().remove_background_task(task_id)
    except StateNotFound as e:
        return response_from_error(e)
    return MyResponse(True, result).to_json()


@bp.route('/phase', methods=('POST',))
@cross_origin()
def update_phase():
    phase = request.json.get('phase')
    if phase not in VALID_PHASES:
        return MyResponse(False, {'validPhases': VALID_PHASES}, reason="Invalid phase", status=400).to_json()
    return MyResponse(True, WizardStateManager().update_phase(phase)).to_json()


@bp.route('/complete', methods=('POST',))
@cross_origin()
def complete():
    try:
        result = WizardStateManager().mark_complete()
    except StateNotFound as e:
        return response_from_error(e)
    return MyResponse(True, result).to_json()


@bp.route('/clear', methods=('POST',))
@cross_origin()
def clear():
    return MyResponse(True, WizardStateManager().clear_state()).to_json()


@bp.route('/history', methods=('GET',))
@cross_origin()
def history():
    return MyResponse(True, {'history': WizardStateManager().get_state_history()}).to_json()


@bp.route('/summary', methods=('GET',))
@cross_origin()
def summary():
    try:
        result = WizardStateManager().get_state_summary()
    except StateNotFound as e:
        return response_from_error(e)
    return MyResponse(True, {'summary': result}).to_json()


"""

Mode detection: a finished installation (or a .env without any state, i.e. a manual install)
opens the wizard in reconfigure mode; everything else is an initial install. ?mode= wins.

"""

def detect_mode(url_mode=None, root=None):
    state = installation_state.read_state(root)
    has_env = os.path.exists(get_paths(root)['env'])

    mode = 'initial'
    reason = 'No existing configuration found'
    if url_mode and url_mode in MODE_ALIASES:
        mode = MODE_ALIASES[url_mode]
        reason = f"Mode set via URL parameter: {url_mode}"
    elif state is not None:
        if state['phase'] == PHASE_COMPLETE:
            mode = 'reconfigure'
            reason = 'Installation complete, configuration exists' if has_env else 'Installation complete (state file exists)'
        else:
            reason = 'Installation in progress or incomplete'
    elif has_env:
        mode = 'reconfigure'
        reason = 'Configuration exists but no installation state'

    return {
        'mode': mode,
        'reason': reason,
        'autoStart': WIZARD_AUTO_START,
        'isFirstRun': WIZARD_AUTO_START and mode == 'initial',
        'hasExistingConfig': has_env,
        'hasInstallationState': state is not None,
        'installationPhase': state['phase'] if state else None,
        'canReconfigure': has_env or state is not None,
        'canUpdate': has_env and state is not None and state['phase'] == PHASE_COMPLETE,
    }


@bp.route('/mode', methods=('GET',))
@cross_origin()
def mode():
    result = detect_mode(request.args.get('mode'))
    print(f"[WIZARD] Mode: {result['mode']} ({result['reason']})", file=sys.stderr)
    return MyResponse(True, result).to_json()


@bp.route('/current-config', methods=('GET',))
@cross_origin()
def current_config():
    env = load_env_file()
    if not env['success']:
        return MyResponse(False, reason="No existing configuration found", status=404).to_json()
    state = installation_state.read_state()
    return MyResponse(True, {
        'config': env['config'],
        'installationState': state,
        'profiles': state['profiles']['selected'] if state else env['profiles'],
        'lastModified': state['lastModified'] if state else None,
        'installedAt': state['installedAt'] if state else None,
    }).to_json()
