from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
import sys
from .template_response import MyResponse, response_from_error
from .config_generator import (
    validate_config,
    generate_env_file,
    generate_default_config,
    generate_secure_password,
    load_env_file,
    write_project_files,
)
from .config_validator import validate_field
from .config_fields import (
    FIELD_CATEGORIES,
    FIELD_GROUPS,
    get_fields_for_profiles,
    get_fields_by_category,
    get_fields_by_group,
    migrate_configuration,
)
from .profiles.manager import apply_developer_mode
from .profiles.profiles import PROFILE_CODES
from .rollback_manager import RollbackManager
from .utils import is_truthy
from .exceptions import UnknownProfileError
from .configs.user_config import DEFAULT_PASSWORD_LENGTH


bp = Blueprint('config', __name__, url_prefix="/api/config")


# Body is either {config, profiles} or the bare config
def _config_and_profiles(body):
    if isinstance(body, dict) and isinstance(body.get('config'), dict):
        return body['config'], body.get('profiles')
    return body, None


@bp.route('/validate', methods=('POST',))
@cross_origin()
def validate():
    config, profiles = _config_and_profiles(request.json)
    if not isinstance(config, dict):
        return MyResponse(False, reason="Configuration object is required", status=400).to_json()
    result = validate_config(config, profiles)
    return MyResponse(True, result).to_json()


@bp.route('/validate-field', methods=('POST',))
@cross_origin()
def validate_one_field():
    key = request.json.get('key')
    value = request.json.get('value')
    config = request.json.get('config') or {}
    profiles = request.json.get('profiles')
    if not key:
        return MyResponse(False, reason="Missing key", status=400).to_json()
    return MyResponse(True, validate_field(key, value, config, profiles)).to_json()


@bp.route('/generate', methods=('POST',))
@cross_origin()
def generate():
    config = request.json.get('config')
    profiles = request.json.get('profiles')
    if not isinstance(config, dict) or not isinstance(profiles, list):
        return MyResponse(False, reason="config object and profiles array are required", status=400).to_json()

    validation = validate_config(config, profiles)
    if not validation['valid']:
        return MyResponse(False, {'errors': validation['errors']}, reason="Invalid configuration", status=400).to_json()

    content = generate_env_file(validation['config'], profiles)
    return MyResponse(True, {'content': content, 'warnings': validation['warnings']}).to_json()


@bp.route('/save', methods=('POST',))
@cross_origin()
def save():
    config = request.json.get('config')
    profiles = request.json.get('profiles')
    if not isinstance(config, dict) or not isinstance(profiles, list):
        return MyResponse(False, reason="config object and profiles array are required", status=400).to_json()

    if is_truthy(config.get('DEVELOPER_MODE')):
        config = apply_developer_mode(config, True)

    previous = load_env_file()
    context = {'previousConfig': previous['config']} if previous['success'] else {}
    validation = validate_config(config, profiles, context)
    if not validation['valid']:
        return MyResponse(False, {'errors': validation['errors']}, reason="Invalid configuration", status=400).to_json()

    version = RollbackManager().backup_current({'action': 'config-save'})
    try:
        result = write_project_files(validation['config'], profiles)
    except UnknownProfileError as e:
        return response_from_error(e)
    if not result['success']:
        return MyResponse(False, reason=f"Failed to save configuration: {result.get('error')}").to_json()

    print(f"[CONFIG] Saved configuration for profiles {', '.join(profiles)}", file=sys.stderr)
    return MyResponse(True, {
        **result,
        'versionId': version['versionId'] if version else None,
        'warnings': validation['warnings'],
    }).to_json()


@bp.route('/load', methods=('GET',))
@cross_origin()
def load():
    result = load_env_file()
    if not result['success']:
        return MyResponse(False, reason=result['error'], status=404).to_json()
    config, warnings = migrate_configuration(result['config'])
    return MyResponse(True, {'config': config, 'profiles': result['profiles'], 'warnings': warnings}).to_json()


@bp.route('/default', methods=('POST',))
@cross_origin()
def default():
    profiles = request.json.get('profiles')
    if not isinstance(profiles, list):
        return MyResponse(False, reason="profiles array is required", status=400).to_json()
    return MyResponse(True, {'config': generate_default_config(profiles)}).to_json()


@bp.route('/password', methods=('GET',))
@cross_origin()
def password():
    length = request.args.get('length', DEFAULT_PASSWORD_LENGTH, type=int)
    try:
        pw = generate_secure_password(length)
    except ValueError as e:
        return MyResponse(False, reason=str(e), status=400).to_json()
    return MyResponse(True, {'password': pw}).to_json()


@bp.route('/fields', methods=('GET',))
@cross_origin()
def fields():
    profiles = request.args.get('profiles')
    profiles = [x for x in profiles.split(',') if x] if profiles else list(PROFILE_CODES)
    all_fields = get_fields_for_profiles(profiles)
    return MyResponse(True, {
        'profiles': profiles,
        'fields': all_fields,
        'byCategory': get_fields_by_category(all_fields),
        'byGroup': get_fields_by_group(all_fields),
        'categories': FIELD_CATEGORIES,
        'groups': FIELD_GROUPS,
    }).to_json()
