from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
import sys
from .template_response import MyResponse, response_from_error
from .resource_checker import (
    detect_resources,
    parse_resources,
    get_requirements,
    check_profile_compatibility,
    recommend as recommend_for,
)
from .exceptions import UnknownProfileError
from .utils import get_current_utc_time


bp = Blueprint('resource_check', __name__, url_prefix="/api/resource-check")


# Resources from the body when given, otherwise this machine's
def _resources_from_body(body):
    if body.get('resources') is None:
        return detect_resources()['summary']
    return parse_resources(body.get('resources'))


@bp.route('', methods=('GET',))
@bp.route('/', methods=('GET',))
@cross_origin()
def resource_check():
    resources = detect_resources()
    return MyResponse(True, {'resources': resources['detected'], 'summary': resources['summary'], 'timestamp': get_current_utc_time()}).to_json()


@bp.route('/requirements', methods=('GET',))
@cross_origin()
def requirements():
    return MyResponse(True, get_requirements()).to_json()


@bp.route('/recommend', methods=('POST',))
@cross_origin()
def recommend():
    body = request.get_json(silent=True) or {}
    resources = _resources_from_body(body)
    if resources is None:
        return MyResponse(False, reason="resources must have numeric memory, cpu and disk", status=400).to_json()
    result = recommend_for(resources, body.get('useCase'))
    print(f"[RESOURCES] Recommended template {result['primary']} for {resources}", file=sys.stderr)
    return MyResponse(True, {'resources': resources, **result}).to_json()


@bp.route('/check-profile', methods=('POST',))
@cross_origin()
def check_profile():
    body = request.get_json(silent=True) or {}
    profiles = body.get('profiles')
    if profiles is None and body.get('profile'):
        profiles = [body['profile']]
    if not isinstance(profiles, list) or not len(profiles):
        return MyResponse(False, reason="profile or profiles array is required", status=400).to_json()

    resources = _resources_from_body(body)
    if resources is None:
        return MyResponse(False, reason="resources must have numeric memory, cpu and disk", status=400).to_json()

    try:
        compatibility = check_profile_compatibility(resources, profiles)
    except UnknownProfileError as e:
        return response_from_error(e)
    return MyResponse(True, {'resources': resources, 'compatibility': compatibility}).to_json()
