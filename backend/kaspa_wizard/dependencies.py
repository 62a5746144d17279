from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
import sys
from .template_response import MyResponse
from .dependency_validator import (
    validate_service_dependencies,
    validate_multiple_services,
    test_internet_connectivity,
    get_service_dependency_summary,
    services_for_profiles,
)
from .utils import get_current_utc_time


bp = Blueprint('dependencies', __name__, url_prefix="/api/dependencies")


@bp.route('/validate/<service>', methods=('GET',))
@cross_origin()
def validate(service):
    timeout_multiplier = request.args.get('timeoutMultiplier', 1, type=int) or 1
    include_guidance = request.args.get('includeGuidance') != 'false'
    result = validate_service_dependencies(service, timeout_multiplier, include_guidance)
    return MyResponse(True, {'service': service, 'validation': result, 'timestamp': get_current_utc_time()}).to_json()


@bp.route('/validate-multiple', methods=('POST',))
@cross_origin()
def validate_multiple():
    services = request.json.get('services')
    options = request.json.get('options') or {}
    if not isinstance(services, list) or not len(services):
        return MyResponse(False, reason="Services array is required and must not be empty", status=400).to_json()
    print(f"[DEPENDENCIES] Validating {len(services)} services: {', '.join(services)}", file=sys.stderr)
    result = validate_multiple_services(
        services,
        timeout_multiplier=options.get('timeoutMultiplier', 1),
        include_guidance=options.get('includeGuidance', True) is not False,
    )
    return MyResponse(True, {'services': services, 'validation': result, 'timestamp': get_current_utc_time()}).to_json()


@bp.route('/connectivity', methods=('GET',))
@cross_origin()
def connectivity():
    return MyResponse(True, {'connectivity': test_internet_connectivity(), 'timestamp': get_current_utc_time()}).to_json()


@bp.route('/summary/<service>', methods=('GET',))
@cross_origin()
def summary(service):
    result = get_service_dependency_summary(service)
    return MyResponse(True, {'service': service, 'summary': result, 'timestamp': get_current_utc_time()}).to_json()


@bp.route('/health', methods=('GET',))
@cross_origin()
def health():
    return MyResponse(True, {
        'service': 'dependency-validation',
        'status': 'healthy',
        'timestamp': get_current_utc_time(),
        'version': '1.0.0',
    }).to_json()


@bp.route('/startup-check', methods=('POST',))
@cross_origin()
def startup_check():
    profiles = request.json.get('profiles')
    if not isinstance(profiles, list) or not len(profiles):
        return MyResponse(False, reason="Profiles array is required and must not be empty", status=400).to_json()

    services = services_for_profiles(profiles)
    if not len(services):
        return MyResponse(True, {
            'message': 'No services require external dependency validation for selected profiles',
            'profiles': profiles,
            'services': [],
            'validation': {
                'valid': True,
                'summary': {
                    'services_tested': 0,
                    'services_valid': 0,
                    'total_critical_failures': 0,
                    'internet_connected': True,
                    'cdn_available': True,
                },
            },
        }).to_json()

    result = validate_multiple_services(services)
    return MyResponse(True, {
        'profiles': profiles,
        'services': services,
        'validation': result,
        'recommendations': result['recommendations'],
        'timestamp': get_current_utc_time(),
    }).to_json()


@bp.route('/guidance/<service>', methods=('GET',))
@cross_origin()
def guidance(service):
    result = validate_service_dependencies(service)
    items = [{
        'dependency': dep['name'],
        'url': dep['url'],
        'type': dep['type'],
        'critical': dep['critical'],
        'error': dep['error'],
        'guidance': dep['guidance'],
    } for dep in result['dependencies'] if not dep['available'] and dep['guidance']]
    return MyResponse(True, {
        'service': service,
        'valid': result['valid'],
        'guidance': items,
        'summary': result['summary'],
        'timestamp': get_current_utc_time(),
    }).to_json()
