from flask_cors import cross_origin
from flask import (
    Blueprint,
    request
)
from .template_response import MyResponse
from .system_check import (
    run_full_check,
    check_docker,
    check_docker_compose,
    check_system_resources,
    check_port_availability,
)


bp = Blueprint('system_check', __name__, url_prefix="/api/system-check")


def _valid_port(port):
    return isinstance(port, int) and not isinstance(port, bool) and 1 <= port <= 65535


@bp.route('', methods=('GET',))
@bp.route('/', methods=('GET',))
@cross_origin()
def full_check():
    ports = request.args.get('ports')
    try:
        ports = [int(x) for x in ports.split(',') if x.strip()] if ports else []
    except ValueError:
        return MyResponse(False, reason="ports must be a comma separated list of port numbers", status=400).to_json()
    if not all(_valid_port(x) for x in ports):
        return MyResponse(False, reason="ports must be between 1 and 65535", status=400).to_json()
    return MyResponse(True, run_full_check(ports)).to_json()


@bp.route('/docker', methods=('GET',))
@cross_origin()
def docker():
    return MyResponse(True, check_docker()).to_json()


@bp.route('/docker-compose', methods=('GET',))
@cross_origin()
def docker_compose():
    return MyResponse(True, check_docker_compose()).to_json()


@bp.route('/resources', methods=('GET',))
@cross_origin()
def resources():
    return MyResponse(True, check_system_resources()).to_json()


@bp.route('/ports', methods=('POST',))
@cross_origin()
def ports():
    port_list = request.json.get('ports')
    if not isinstance(port_list, list) or not all(_valid_port(x) for x in port_list):
        return MyResponse(False, reason="ports must be an array of port numbers between 1 and 65535", status=400).to_json()
    return MyResponse(True, {'ports': check_port_availability(port_list)}).to_json()
