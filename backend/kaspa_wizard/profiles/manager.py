from .profiles import PROFILES, get_profile_by_code, PROFILE_CODES
from ..configs.user_config import HIGH_RESOURCE_MEMORY_GB
from ..exceptions import UnknownProfileError
from ..utils import deduplicate

"""

Profile selection logic: dependency resolution, conflicts, resource totals and startup order.

"dependencies" must all be selected (they are pulled in automatically);
"prerequisites" need at least one selected (the user has to pick which);
"conflicts" can't be selected together.

"""

# Developer mode is a switch on top of any selection rather than a profile
DEVELOPER_MODE_FEATURES = {
    'debugLogging': True,
    'exposedPorts': [9000, 5050],  # Portainer, pgAdmin
    'inspectionTools': ['portainer', 'pgadmin'],
    'logAccess': True,
    'developmentUtilities': [],
}


def _profile_or_none(code):
    try:
        return get_profile_by_code(code)
    except UnknownProfileError:
        return None


def get_all_profiles():
    return [x.to_json() for x in PROFILES]


def get_profile(code):
    return get_profile_by_code(code).to_json()


# Breadth first; keeps the user's order and appends pulled-in dependencies
def resolve_profile_dependencies(selected):
    resolved = deduplicate(selected)
    to_process = list(resolved)
    while len(to_process):
        code = to_process.pop(0)
        profile = _profile_or_none(code)
        if not profile:
            continue
        for dep in profile.dependencies:
            if dep not in resolved:
                resolved.append(dep)
                to_process.append(dep)
    return resolved


def calculate_resource_requirements(selected):
    all_profiles = resolve_profile_dependencies(selected)
    requirements = {
        'minMemory': 0,
        'minCpu': 0,
        'minDisk': 0,
        'recommendedMemory': 0,
        'recommendedCpu': 0,
        'recommendedDisk': 0,
        'ports': [],
        'sharedResources': [],
        'breakdown': {},
    }

    for code in all_profiles:
        profile = _profile_or_none(code)
        if not profile:
            continue

        # The database is shared by anything that lists it, so note who shares it
        if any(s['name'] == 'timescaledb' for s in profile.services):
            shared = [x for x in requirements['sharedResources'] if x['service'] == 'timescaledb']
            if len(shared):
                shared[0]['sharedBy'].append(code)
            else:
                requirements['sharedResources'].append({'service': 'timescaledb', 'sharedBy': [code]})

        res = profile.resources
        requirements['minMemory'] += res['minMemory']
        requirements['minCpu'] = max(requirements['minCpu'], res['minCpu'])
        requirements['minDisk'] += res['minDisk']
        requirements['recommendedMemory'] += res['recommendedMemory']
        requirements['recommendedCpu'] = max(requirements['recommendedCpu'], res['recommendedCpu'])
        requirements['recommendedDisk'] += res['recommendedDisk']
        for port in profile.ports:
            if port not in requirements['ports']:
                requirements['ports'].append(port)
        requirements['breakdown'][code] = dict(res)

    return requirements


def _conflicting_pair(a, b):
    pa = _profile_or_none(a)
    pb = _profile_or_none(b)
    return (pa is not None and b in pa.conflicts) or (pb is not None and a in pb.conflicts)


# Explicit profile conflicts plus ports claimed by two profiles
def detect_conflicts(selected):
    all_profiles = resolve_profile_dependencies(selected)
    conflicts = []

    for i, code in enumerate(all_profiles):
        profile = _profile_or_none(code)
        if not profile:
            continue
        for other in all_profiles[i+1:]:
            if _conflicting_pair(code, other):
                other_profile = _profile_or_none(other)
                conflicts.append({
                    'type': 'profile',
                    'profiles': [code, other],
                    'message': f"{profile.name} conflicts with {other_profile.name if other_profile else other}"
                })

    port_map = {}
    for code in all_profiles:
        profile = _profile_or_none(code)
        if not profile:
            continue
        for port in profile.ports:
            if port in port_map and port_map[port] != code:
                # Already reported as a profile conflict
                if _conflicting_pair(port_map[port], code):
                    continue
                conflicts.append({
                    'type': 'port',
                    'port': port,
                    'profiles': [port_map[port], code],
                    'message': f"Port {port} is used by both {port_map[port]} and {code}"
                })
            else:
                port_map[port] = code

    return conflicts


def detect_circular_dependencies(selected):
    cycles = []
    visited = set()
    stack = set()

    def dfs(code, path):
        if code in stack:
            start = path.index(code)
            cycles.append(path[start:] + [code])
            return
        if code in visited:
            return
        visited.add(code)
        stack.add(code)
        path = path + [code]
        profile = _profile_or_none(code)
        if profile:
            for dep in profile.dependencies:
                dfs(dep, path)
        stack.discard(code)

    for code in selected:
        dfs(code, [])

    return cycles


def validate_profile_selection(selected):
    errors = []
    warnings = []

    for code in selected:
        if code not in PROFILE_CODES:
            errors.append({
                'type': 'invalid_profile',
                'profile': code,
                'message': f"Unknown profile '{code}'"
            })

    all_profiles = resolve_profile_dependencies(selected)

    known = [_profile_or_none(x) for x in all_profiles if _profile_or_none(x)]
    all_standalone = len(known) > 0 and all(x.standalone for x in known)
    if 'core' not in all_profiles and 'archive-node' not in all_profiles and not all_standalone:
        errors.append({
            'type': 'missing_required',
            'message': 'Either Core Profile or Archive Node Profile is required for all deployments'
        })

    for code in selected:
        profile = _profile_or_none(code)
        if not profile or not len(profile.prerequisites):
            continue
        if not any(p in all_profiles for p in profile.prerequisites):
            names = [(_profile_or_none(p).name if _profile_or_none(p) else p) for p in profile.prerequisites]
            errors.append({
                'type': 'missing_prerequisite',
                'profile': code,
                'message': f"{profile.name} requires one of: {', '.join(names)}"
            })

    for conflict in detect_conflicts(selected):
        errors.append({
            'type': 'profile_conflict' if conflict['type'] == 'profile' else 'conflict',
            'profiles': conflict['profiles'],
            'message': conflict['message']
        })

    for cycle in detect_circular_dependencies(selected):
        errors.append({
            'type': 'circular_dependency',
            'cycle': cycle,
            'message': f"Circular dependency: {' -> '.join(cycle)}"
        })

    requirements = calculate_resource_requirements(selected)
    if requirements['minMemory'] > HIGH_RESOURCE_MEMORY_GB:
        warnings.append({
            'type': 'high_resources',
            'message': f"Selected profiles require {requirements['minMemory']}GB RAM - ensure your system has sufficient resources"
        })

    return {
        'valid': len(errors) == 0,
        'errors': errors,
        'warnings': warnings,
        'resolvedProfiles': all_profiles,
        'requirements': requirements,
    }


# Services across the selection sorted by startup order, then name
def get_startup_order(selected):
    services = []
    for code in resolve_profile_dependencies(selected):
        profile = _profile_or_none(code)
        if not profile:
            continue
        for service in profile.services:
            services.append({**service, 'profile': code, 'profileName': profile.name})
    return sorted(services, key=lambda x: (x['startupOrder'], x['name']))


def get_dependency_graph(selected):
    all_profiles = resolve_profile_dependencies(selected)
    nodes = []
    edges = []
    for code in all_profiles:
        profile = _profile_or_none(code)
        if not profile:
            continue
        nodes.append({'id': code, 'name': profile.name, 'category': profile.category, 'selected': code in selected})
        for dep in profile.dependencies:
            edges.append({'from': code, 'to': dep, 'type': 'dependency'})
        for prereq in profile.prerequisites:
            edges.append({'from': code, 'to': prereq, 'type': 'prerequisite', 'satisfied': prereq in all_profiles})
        for other in profile.conflicts:
            edges.append({'from': code, 'to': other, 'type': 'conflict', 'active': other in all_profiles})
    return {'nodes': nodes, 'edges': edges}


def get_validation_report(selected):
    validation = validate_profile_selection(selected)
    cycles = detect_circular_dependencies(selected)
    startup_order = get_startup_order(selected)
    return {
        'valid': validation['valid'],
        'validation': validation,
        'requirements': validation['requirements'],
        'startupOrder': startup_order,
        'circularDependencies': cycles,
        'dependencyGraph': get_dependency_graph(selected),
        'summary': {
            'selectedProfiles': len(selected),
            'resolvedProfiles': len(validation['resolvedProfiles']),
            'totalServices': len(startup_order),
            'errors': len(validation['errors']),
            'warnings': len(validation['warnings']),
        }
    }


def get_developer_mode_features():
    return {**DEVELOPER_MODE_FEATURES, 'exposedPorts': list(DEVELOPER_MODE_FEATURES['exposedPorts'])}


def apply_developer_mode(config: dict, enabled=False):
    if not enabled:
        return config
    dev_config = {**config, 'DEVELOPER_MODE': 'true'}
    if DEVELOPER_MODE_FEATURES['debugLogging']:
        dev_config['LOG_LEVEL'] = 'debug'
    if len(DEVELOPER_MODE_FEATURES['inspectionTools']):
        dev_config['ENABLE_PORTAINER'] = 'true'
        dev_config['ENABLE_PGADMIN'] = 'true'
    if DEVELOPER_MODE_FEATURES['logAccess']:
        dev_config['ENABLE_LOG_ACCESS'] = 'true'
    return dev_config
