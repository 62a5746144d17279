from .system_check import check_system_resources, GB
from .profiles.profiles import PROFILES, get_profile_by_code
from .profiles.manager import calculate_resource_requirements
from .profiles.templates import get_template_recommendations
from .configs.user_config import MIN_MEMORY_GB, MIN_CPU_CORES, MIN_DISK_GB

"""

Compares what this machine has with what a profile selection needs.

Resources are summarized as plain numbers, the same shape the template recommendations take:

    {"memory": <GB of RAM>, "cpu": <logical cores>, "disk": <GB free, or None if unknown>}

"""

RATING_RECOMMENDED = 'recommended'
RATING_POSSIBLE = 'possible'
RATING_NOT_RECOMMENDED = 'not-recommended'


# Total RAM is reported a little under the installed size, so round to whole GB
def summarize_resources(detected: dict):
    disk = detected.get('disk') or {}
    return {
        'memory': round(detected['memory']['total'] / GB),
        'cpu': detected['cpu']['count'],
        'disk': round(disk['available'] / GB, 1) if 'available' in disk else None,
    }


def detect_resources(path=None):
    detected = check_system_resources(path)
    return {'detected': detected, 'summary': summarize_resources(detected)}


# Client-supplied summaries; None when the shape is wrong
def parse_resources(resources):
    if not isinstance(resources, dict):
        return None
    parsed = {}
    for key in ('memory', 'cpu', 'disk'):
        value = resources.get(key)
        if key == 'disk' and value is None:
            parsed[key] = None
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            return None
        parsed[key] = value
    return parsed


def get_requirements():
    return {
        'minimum': {'memory': MIN_MEMORY_GB, 'cpu': MIN_CPU_CORES, 'disk': MIN_DISK_GB},
        'profiles': {x.code: dict(x.resources) for x in PROFILES},
    }


def _check(available, minimum, recommended):
    if available is None:
        return {'available': None, 'min': minimum, 'recommended': recommended, 'meetsMin': True, 'meetsRecommended': True, 'unknown': True}
    return {
        'available': available,
        'min': minimum,
        'recommended': recommended,
        'meetsMin': available >= minimum,
        'meetsRecommended': available >= recommended,
    }


def check_profile_compatibility(resources: dict, profiles):
    for code in profiles:
        get_profile_by_code(code)  # raises on unknown profiles
    requirements = calculate_resource_requirements(profiles)

    checks = {
        'memory': _check(resources['memory'], requirements['minMemory'], requirements['recommendedMemory']),
        'cpu': _check(resources['cpu'], requirements['minCpu'], requirements['recommendedCpu']),
        'disk': _check(resources['disk'], requirements['minDisk'], requirements['recommendedDisk']),
    }

    warnings = []
    units = {'memory': 'GB RAM', 'cpu': 'CPU cores', 'disk': 'GB free disk'}
    for key, check in checks.items():
        if check.get('unknown'):
            warnings.append(f"Unable to check {key}")
        elif not check['meetsMin']:
            warnings.append(f"Requires at least {check['min']} {units[key]} (you have {check['available']})")

    if any(not x['meetsMin'] for x in checks.values()):
        rating = RATING_NOT_RECOMMENDED
        message = 'System does not meet the minimum requirements for this selection'
    elif all(x['meetsRecommended'] for x in checks.values()):
        rating = RATING_RECOMMENDED
        message = 'System meets the recommended requirements'
    else:
        rating = RATING_POSSIBLE
        message = 'System meets the minimum requirements, but more resources are recommended'

    return {
        'profiles': list(profiles),
        'compatible': rating != RATING_NOT_RECOMMENDED,
        'rating': rating,
        'message': message,
        'checks': checks,
        'warnings': warnings,
        'requirements': requirements,
    }


def recommend(resources: dict, use_case=None):
    templates = get_template_recommendations(resources, use_case)
    suitable = [x for x in templates if x['suitability'] == 'suitable']
    return {
        'primary': suitable[0]['template']['id'] if len(suitable) else None,
        'templates': templates,
        'profileCompatibility': {x.code: check_profile_compatibility(resources, [x.code]) for x in PROFILES},
    }
