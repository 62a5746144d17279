from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
from .template_response import MyResponse, response_from_error
from .profiles.manager import (
    get_all_profiles,
    get_profile,
    resolve_profile_dependencies,
    calculate_resource_requirements,
    validate_profile_selection,
    get_startup_order,
    detect_circular_dependencies,
    detect_conflicts,
    get_validation_report,
    get_dependency_graph,
    get_developer_mode_features,
    apply_developer_mode,
)
from .profiles.templates import (
    get_all_templates,
    get_template,
    get_templates_by_category,
    get_templates_by_use_case,
    search_templates_by_tags,
    get_template_recommendations,
    apply_template,
    validate_template,
    create_custom_template,
    save_custom_template,
    delete_custom_template,
)
from .exceptions import UnknownProfileError, TemplateNotFound, BuiltinTemplateError
from .utils import is_truthy


bp = Blueprint('profiles', __name__, url_prefix="/api/profiles")


def _selected_profiles():
    profiles = (request.get_json(silent=True) or {}).get('profiles')
    return profiles if isinstance(profiles, list) else None


BAD_PROFILES_REASON = "profiles must be an array of profile IDs"


@bp.route('', methods=('GET',))
@bp.route('/', methods=('GET',))
@cross_origin()
def all_profiles():
    return MyResponse(True, {'profiles': get_all_profiles()}).to_json()


"""

Templates

"""

@bp.route('/templates/all', methods=('GET',))
@cross_origin()
def all_templates():
    return MyResponse(True, {'templates': get_all_templates()}).to_json()


@bp.route('/templates/category/<category>', methods=('GET',))
@cross_origin()
def templates_by_category(category):
    return MyResponse(True, {'templates': get_templates_by_category(category)}).to_json()


@bp.route('/templates/usecase/<use_case>', methods=('GET',))
@cross_origin()
def templates_by_use_case(use_case):
    return MyResponse(True, {'templates': get_templates_by_use_case(use_case)}).to_json()


@bp.route('/templates/search', methods=('POST',))
@cross_origin()
def search_templates():
    tags = request.json.get('tags')
    if not isinstance(tags, list):
        return MyResponse(False, reason="tags must be an array of strings", status=400).to_json()
    return MyResponse(True, {'templates': search_templates_by_tags(tags)}).to_json()


@bp.route('/templates/recommendations', methods=('POST',))
@cross_origin()
def template_recommendations():
    system_resources = request.json.get('systemResources')
    use_case = request.json.get('useCase')
    if not isinstance(system_resources, dict):
        return MyResponse(False, reason="systemResources object is required", status=400).to_json()
    return MyResponse(True, {'recommendations': get_template_recommendations(system_resources, use_case)}).to_json()


@bp.route('/templates/<template_id>', methods=('GET',))
@cross_origin()
def one_template(template_id):
    try:
        template = get_template(template_id)
    except TemplateNotFound as e:
        return response_from_error(e)
    return MyResponse(True, {'template': template}).to_json()


@bp.route('/templates/<template_id>/apply', methods=('POST',))
@cross_origin()
def apply_one_template(template_id):
    base_config = (request.get_json(silent=True) or {}).get('baseConfig') or {}
    try:
        result = apply_template(template_id, base_config)
    except TemplateNotFound as e:
        return response_from_error(e)
    return MyResponse(True, {'config': result, 'template': get_template(template_id)}).to_json()


@bp.route('/templates/<template_id>/validate', methods=('POST',))
@cross_origin()
def validate_one_template(template_id):
    try:
        template = get_template(template_id)
    except TemplateNotFound as e:
        return response_from_error(e)
    return MyResponse(True, validate_template(template)).to_json()


@bp.route('/templates', methods=('POST',))
@cross_origin()
def create_template():
    try:
        template = create_custom_template(request.json)
        save_custom_template(template)
    except (ValueError, UnknownProfileError, BuiltinTemplateError) as e:
        return MyResponse(False, reason=str(e), status=400).to_json()
    return MyResponse(True, {'template': template}).to_json()


@bp.route('/templates/<template_id>', methods=('DELETE',))
@cross_origin()
def delete_template(template_id):
    try:
        delete_custom_template(template_id)
    except (TemplateNotFound, BuiltinTemplateError) as e:
        return response_from_error(e)
    return MyResponse(True, {'message': f"Template '{template_id}' deleted"}).to_json()


"""

Selection checks

"""

@bp.route('/validate', methods=('POST',))
@cross_origin()
def validate():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    return MyResponse(True, validate_profile_selection(profiles)).to_json()


@bp.route('/requirements', methods=('POST',))
@cross_origin()
def requirements():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    return MyResponse(True, calculate_resource_requirements(profiles)).to_json()


@bp.route('/dependencies', methods=('POST',))
@cross_origin()
def dependencies():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    return MyResponse(True, {'profiles': resolve_profile_dependencies(profiles)}).to_json()


@bp.route('/startup-order', methods=('POST',))
@cross_origin()
def startup_order():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    return MyResponse(True, {'services': get_startup_order(profiles)}).to_json()


@bp.route('/circular-dependencies', methods=('POST',))
@cross_origin()
def circular_dependencies():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    cycles = detect_circular_dependencies(profiles)
    return MyResponse(True, {'hasCycles': len(cycles) > 0, 'cycles': cycles}).to_json()


@bp.route('/validate-selection', methods=('POST',))
@cross_origin()
def validate_selection():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    validation = validate_profile_selection(profiles)
    return MyResponse(True, {
        **validation,
        'conflicts': detect_conflicts(profiles),
        'circularDependencies': detect_circular_dependencies(profiles),
    }).to_json()


@bp.route('/validation-report', methods=('POST',))
@cross_origin()
def validation_report():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    return MyResponse(True, get_validation_report(profiles)).to_json()


@bp.route('/dependency-graph', methods=('POST',))
@cross_origin()
def dependency_graph():
    profiles = _selected_profiles()
    if profiles is None:
        return MyResponse(False, reason=BAD_PROFILES_REASON, status=400).to_json()
    return MyResponse(True, get_dependency_graph(profiles)).to_json()


@bp.route('/developer-mode/features', methods=('GET',))
@cross_origin()
def developer_mode_features():
    return MyResponse(True, {'features': get_developer_mode_features()}).to_json()


@bp.route('/developer-mode/apply', methods=('POST',))
@cross_origin()
def developer_mode_apply():
    config = request.json.get('config')
    enabled = is_truthy(request.json.get('enabled'))
    if not isinstance(config, dict):
        return MyResponse(False, reason="config object is required", status=400).to_json()
    return MyResponse(True, {'config': apply_developer_mode(config, enabled)}).to_json()


# Last so that "/templates/..." is never read as a profile id
@bp.route('/<profile_id>', methods=('GET',))
@cross_origin()
def one_profile(profile_id):
    try:
        profile = get_profile(profile_id)
    except UnknownProfileError as e:
        return response_from_error(e)
    return MyResponse(True, {'profile': profile}).to_json()
