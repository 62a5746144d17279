import re
import sys
import errno
import socket
import platform
import psutil

from .docker_manager import run_cmd
from .paths import get_project_root
from .configs.user_config import MIN_MEMORY_GB, MIN_CPU_CORES, MIN_DISK_GB

"""

Pre-install checks: is docker (and compose v2) there, is the machine big enough, are the ports free.

"""

GB = 1024 ** 3


def check_docker():
    res = run_cmd(['docker', '--version'], timeout=15)
    if not res.ok:
        return {
            'installed': False,
            'version': None,
            'message': 'Docker is not installed or not accessible',
            'remediation': 'Please install Docker from https://docs.docker.com/get-docker/',
        }
    version = res.stdout.strip()
    match = re.search(r'Docker version (\d+\.\d+\.\d+)', version)
    return {
        'installed': True,
        'version': match.group(1) if match else 'unknown',
        'message': f"Docker is installed: {version}",
    }


def check_docker_compose():
    res = run_cmd(['docker', 'compose', 'version'], timeout=15)
    if not res.ok:
        return {
            'installed': False,
            'version': None,
            'message': 'Docker Compose is not installed or not accessible',
            'remediation': 'Docker Compose v2 is required. Please update Docker Desktop or install Docker Compose plugin',
        }
    version = res.stdout.strip()
    match = re.search(r'version v?(\d+\.\d+\.\d+)', version)
    return {
        'installed': True,
        'version': match.group(1) if match else 'unknown',
        'message': f"Docker Compose is installed: {version}",
    }


def check_system_resources(path=None):
    mem = psutil.virtual_memory()
    cpu_count = psutil.cpu_count(logical=True) or 0

    total_gb = f"{mem.total / GB:.2f}"
    free_gb = f"{mem.available / GB:.2f}"
    memory_ok = mem.total >= MIN_MEMORY_GB * GB
    cpu_ok = cpu_count >= MIN_CPU_CORES

    resources = {
        'memory': {
            'total': mem.total,
            'free': mem.available,
            'totalGB': total_gb,
            'freeGB': free_gb,
            'meetsMinimum': memory_ok,
            'message': f"Memory: {total_gb} GB total ({free_gb} GB free) - OK" if memory_ok else f"Memory: {total_gb} GB total - WARNING: Minimum {MIN_MEMORY_GB}GB recommended",
        },
        'cpu': {
            'count': cpu_count,
            'model': platform.processor() or platform.machine(),
            'meetsMinimum': cpu_ok,
            'message': f"CPU: {cpu_count} cores - OK" if cpu_ok else f"CPU: {cpu_count} cores - WARNING: Minimum {MIN_CPU_CORES} cores recommended",
        },
    }

    try:
        disk = psutil.disk_usage(path or get_project_root())
    except OSError as e:
        print(f"[SYSTEM] Failed to check disk space: {e}", file=sys.stderr)
        resources['disk'] = {'meetsMinimum': None, 'message': 'Unable to check disk space'}
        return resources

    available_gb = f"{disk.free / GB:.2f}"
    disk_ok = disk.free >= MIN_DISK_GB * GB
    resources['disk'] = {
        'total': disk.total,
        'available': disk.free,
        'used': disk.used,
        'availableGB': available_gb,
        'meetsMinimum': disk_ok,
        'message': f"Disk: {available_gb} GB available - OK" if disk_ok else f"Disk: {available_gb} GB available - WARNING: Minimum {MIN_DISK_GB}GB recommended",
    }
    return resources


def is_port_available(port):
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind(('0.0.0.0', int(port)))
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            return {
                'available': False,
                'message': f"Port {port} is already in use",
                'remediation': f"Please stop the service using port {port} or choose a different port",
            }
        return {'available': False, 'message': f"Unable to check port {port}: {e}"}
    finally:
        sock.close()
    return {'available': True, 'message': f"Port {port} is available"}


def check_port_availability(ports):
    return {str(port): is_port_available(port) for port in ports}


def run_full_check(ports=None):
    docker = check_docker()
    compose = check_docker_compose()
    resources = check_system_resources()
    port_results = check_port_availability(ports) if ports else {}

    critical_failed = not docker['installed'] or not compose['installed']
    resource_warning = (
        not resources['memory']['meetsMinimum']
        or not resources['cpu']['meetsMinimum']
        or resources['disk']['meetsMinimum'] is False
    )
    port_issues = any(not x['available'] for x in port_results.values())

    if critical_failed:
        status = 'error'
        message = 'Critical requirements not met - Docker and Docker Compose are required'
    elif resource_warning or port_issues:
        status = 'warning'
        message = 'System meets minimum requirements but some warnings exist'
    else:
        status = 'success'
        message = 'All system checks passed'

    return {
        'docker': docker,
        'dockerCompose': compose,
        'resources': resources,
        'ports': port_results,
        'summary': {
            'status': status,
            'message': message,
            'canProceed': not critical_failed,
        },
    }
