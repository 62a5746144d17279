import copy
import sys

from .profiles import PROFILE_CODES
from .manager import (
    calculate_resource_requirements,
    validate_profile_selection,
    detect_conflicts,
    apply_developer_mode,
)
from ..paths import get_paths
from ..utils import read_json_file, write_json_file, get_current_utc_time
from ..exceptions import TemplateNotFound, BuiltinTemplateError, UnknownProfileError

"""

Deployment templates: a named selection of profiles plus a starting configuration.

Built-in templates live here; custom ones are saved per project in .kaspa-aio/custom-templates.json.

"""

BUILTIN_TEMPLATES = {
    'beginner-setup': {
        'id': 'beginner-setup',
        'name': 'Beginner Setup',
        'description': 'Simple setup for new users',
        'longDescription': 'Perfect for users who want to get started quickly with Kaspa applications without running their own node.',
        'profiles': ['kaspa-user-applications'],
        'category': 'beginner',
        'useCase': 'personal',
        'estimatedSetupTime': '5 minutes',
        'syncTime': 'Not required',
        'config': {
            'INDEXER_CONNECTION_MODE': 'public',
            'KASIA_APP_PORT': 3002,
            'KSOCIAL_APP_PORT': 3003,
            'EXPLORER_PORT': 3008,
        },
        'resources': {'minMemory': 4, 'minCpu': 2, 'minDisk': 50, 'recommendedMemory': 8, 'recommendedCpu': 4, 'recommendedDisk': 200},
        'features': ['Easy setup', 'User applications', 'Public indexers', 'No node required'],
        'benefits': ['Quick start', 'No complex configuration', 'Low resource usage', 'Immediate access'],
        'customizable': True,
        'tags': ['beginner', 'personal', 'applications', 'public'],
    },
    'full-node': {
        'id': 'full-node',
        'name': 'Full Node',
        'description': 'Complete Kaspa node with all services',
        'longDescription': 'Complete Kaspa setup with local node and indexers for maximum performance and privacy.',
        'profiles': ['core', 'kaspa-user-applications', 'indexer-services'],
        'category': 'advanced',
        'useCase': 'advanced',
        'estimatedSetupTime': '15 minutes',
        'syncTime': '2-4 hours',
        'config': {
            'PUBLIC_NODE': 'false',
            'KASPA_NODE_RPC_PORT': 16110,
            'KASPA_NODE_P2P_PORT': 16111,
            'KASPA_NETWORK': 'mainnet',
            'POSTGRES_USER': 'kaspa_user',
            'TIMESCALEDB_PORT': 5432,
            'KASIA_APP_PORT': 3002,
            'KSOCIAL_APP_PORT': 3003,
            'EXPLORER_PORT': 3008,
        },
        'resources': {'minMemory': 16, 'minCpu': 4, 'minDisk': 500, 'recommendedMemory': 32, 'recommendedCpu': 8, 'recommendedDisk': 2000},
        'features': ['Full node', 'Local indexers', 'All applications', 'Complete privacy'],
        'benefits': ['Complete control', 'Best performance', 'Full privacy', 'Network support'],
        'customizable': True,
        'tags': ['advanced', 'node', 'indexers', 'applications'],
    },
    'home-node': {
        'id': 'home-node',
        'name': 'Home Node',
        'description': 'Basic Kaspa node for personal use - perfect for learning and development',
        'longDescription': 'A simple setup with just the Kaspa node running locally. Ideal for developers, enthusiasts, or anyone wanting to support the network without public exposure.',
        'profiles': ['core'],
        'category': 'intermediate',
        'useCase': 'personal',
        'estimatedSetupTime': '10-15 minutes',
        'syncTime': '2-4 hours',
        'config': {
            'PUBLIC_NODE': 'false',
            'KASPA_NODE_RPC_PORT': 16110,
            'KASPA_NODE_P2P_PORT': 16111,
            'KASPA_NETWORK': 'mainnet',
        },
        'resources': {'minMemory': 4, 'minCpu': 2, 'minDisk': 100, 'recommendedMemory': 8, 'recommendedCpu': 4, 'recommendedDisk': 500},
        'features': ['Local Kaspa node', 'Web dashboard', 'Basic monitoring', 'Wallet support'],
        'benefits': ['Support the Kaspa network', 'Learn about blockchain technology', 'Private node access', 'No external dependencies'],
        'customizable': True,
        'tags': ['intermediate', 'personal', 'node', 'wallet'],
    },
    'public-node': {
        'id': 'public-node',
        'name': 'Public Node',
        'description': 'Public-facing Kaspa node with indexer services for community use',
        'longDescription': 'A robust setup that provides public access to your Kaspa node and indexer services. Perfect for contributing to the ecosystem by providing reliable infrastructure.',
        'profiles': ['core', 'indexer-services'],
        'category': 'advanced',
        'useCase': 'community',
        'estimatedSetupTime': '20-30 minutes',
        'syncTime': '4-8 hours',
        'config': {
            'PUBLIC_NODE': 'true',
            'KASPA_NODE_RPC_PORT': 16110,
            'KASPA_NODE_P2P_PORT': 16111,
            'KASPA_NETWORK': 'mainnet',
            'POSTGRES_USER': 'kaspa_user',
            'TIMESCALEDB_PORT': 5432,
        },
        'resources': {'minMemory': 12, 'minCpu': 6, 'minDisk': 600, 'recommendedMemory': 24, 'recommendedCpu': 12, 'recommendedDisk': 2000},
        'features': ['Public Kaspa node', 'Local indexer services', 'TimescaleDB database', 'Advanced monitoring'],
        'benefits': ['Contribute to network infrastructure', 'Provide reliable public endpoints', 'Support dApp developers', 'Enhanced data availability'],
        'customizable': True,
        'tags': ['advanced', 'public', 'indexers', 'community'],
    },
    'developer-setup': {
        'id': 'developer-setup',
        'name': 'Developer Setup',
        'description': 'Complete development environment with all tools and debugging features',
        'longDescription': 'A comprehensive setup designed for Kaspa developers. Includes all services, development tools, debugging features, and inspection utilities.',
        'profiles': ['core', 'kaspa-user-applications', 'indexer-services'],
        'category': 'advanced',
        'useCase': 'development',
        'estimatedSetupTime': '30-45 minutes',
        'syncTime': '4-8 hours',
        'config': {
            'PUBLIC_NODE': 'false',
            'KASPA_NODE_RPC_PORT': 16110,
            'KASPA_NODE_P2P_PORT': 16111,
            'KASPA_NETWORK': 'testnet',
            'POSTGRES_USER': 'dev_user',
            'TIMESCALEDB_PORT': 5432,
            'LOG_LEVEL': 'debug',
            'ENABLE_PORTAINER': 'true',
            'ENABLE_PGADMIN': 'true',
            'ENABLE_LOG_ACCESS': 'true',
        },
        'resources': {'minMemory': 16, 'minCpu': 8, 'minDisk': 650, 'recommendedMemory': 32, 'recommendedCpu': 16, 'recommendedDisk': 2500},
        'features': ['All Kaspa services', 'Development tools', 'Debug logging', 'Portainer (Docker UI)', 'pgAdmin (Database UI)', 'Testnet configuration', 'Log file access'],
        'benefits': ['Complete development environment', 'Easy debugging and inspection', 'Test applications safely', 'Rapid prototyping'],
        'developerMode': True,
        'customizable': True,
        'tags': ['advanced', 'development', 'debugging', 'testnet'],
    },
    'mining-setup': {
        'id': 'mining-setup',
        'name': 'Mining Setup',
        'description': 'Kaspa node with mining stratum for solo mining',
        'longDescription': 'Complete mining setup with local Kaspa node and stratum server. Perfect for solo miners who want full control over their mining operation.',
        'profiles': ['core', 'mining'],
        'category': 'advanced',
        'useCase': 'mining',
        'estimatedSetupTime': '20-30 minutes',
        'syncTime': '2-4 hours',
        'config': {
            'PUBLIC_NODE': 'false',
            'KASPA_NODE_RPC_PORT': 16110,
            'KASPA_NODE_P2P_PORT': 16111,
            'KASPA_NETWORK': 'mainnet',
            'STRATUM_PORT': 5555,
            'MINING_ADDRESS': '',
        },
        'resources': {'minMemory': 6, 'minCpu': 4, 'minDisk': 110, 'recommendedMemory': 12, 'recommendedCpu': 8, 'recommendedDisk': 550},
        'features': ['Local Kaspa node', 'Mining stratum server', 'Solo mining support', 'Mining monitoring'],
        'benefits': ['Full mining control', 'No pool fees', 'Direct block rewards', 'Mining privacy'],
        'customizable': True,
        'tags': ['advanced', 'mining', 'stratum', 'solo'],
    },
}


def _custom_templates_path(path=None):
    return path or get_paths()['custom_templates']


def load_custom_templates(path=None):
    data = read_json_file(_custom_templates_path(path), default={})
    if not isinstance(data, dict):
        print(f"Ignoring malformed custom templates file at {_custom_templates_path(path)}", file=sys.stderr)
        return {}
    return data


def get_all_templates(path=None):
    templates = copy.deepcopy(BUILTIN_TEMPLATES)
    for template_id, template in load_custom_templates(path).items():
        if template_id not in BUILTIN_TEMPLATES:
            templates[template_id] = template
    return list(templates.values())


def get_template(template_id, path=None):
    matches = [x for x in get_all_templates(path) if x['id'] == template_id]
    if not len(matches):
        raise TemplateNotFound(f"Template '{template_id}' not found")
    return matches[0]


def get_templates_by_category(category, path=None):
    return [x for x in get_all_templates(path) if x.get('category') == category]


def get_templates_by_use_case(use_case, path=None):
    return [x for x in get_all_templates(path) if x.get('useCase') == use_case]


# Any tag in common counts as a match
def search_templates_by_tags(tags, path=None):
    return [x for x in get_all_templates(path) if any(t in tags for t in x.get('tags', []))]


# Template config wins over the base config
def apply_template(template_id, base_config=None, path=None):
    template = get_template(template_id, path)
    merged = {**(base_config or {}), **template['config']}
    if template.get('developerMode'):
        return apply_developer_mode(merged, True)
    return merged


def validate_template(template):
    errors = []
    warnings = []

    for code in template.get('profiles', []):
        if code not in PROFILE_CODES:
            errors.append(f"Template references unknown profile: {code}")

    if not len(errors):
        for conflict in detect_conflicts(template['profiles']):
            if conflict['type'] == 'profile':
                errors.append(f"Profile conflict: {conflict['profiles'][0]} conflicts with {conflict['profiles'][1]}")

        selection = validate_profile_selection(template['profiles'])
        for error in selection['errors']:
            if error['type'] not in ('profile_conflict', 'invalid_profile'):
                warnings.append(error['message'])
        for warning in selection['warnings']:
            warnings.append(warning['message'])

    return {
        'valid': len(errors) == 0,
        'errors': errors,
        'warnings': warnings,
        'template': template,
    }


"""

Scores each template against the machine (memory / cpu / disk in GB and cores) and a use case.
Anything with score >= 5 that the machine can actually run is marked recommended.

"""

def get_template_recommendations(system_resources: dict, use_case=None, path=None):
    memory = system_resources.get('memory', 0) or 0
    cpu = system_resources.get('cpu', 0) or 0
    disk = system_resources.get('disk', 0) or 0

    recommendations = []
    for template in get_all_templates(path):
        res = template['resources']
        score = 0
        suitability = 'suitable'
        reasons = []

        if memory >= res['recommendedMemory']:
            score += 3
            reasons.append('Meets recommended memory requirements')
        elif memory >= res['minMemory']:
            score += 1
            reasons.append('Meets minimum memory requirements')
        else:
            suitability = 'insufficient'
            reasons.append(f"Requires {res['minMemory']}GB RAM (you have {memory}GB)")

        if cpu >= res['recommendedCpu']:
            score += 2
        elif cpu >= res['minCpu']:
            score += 1

        if disk >= res['recommendedDisk']:
            score += 2
        elif disk >= res['minDisk']:
            score += 1

        if use_case and template.get('useCase') == use_case:
            score += 5
            reasons.append('Perfect match for your use case')

        if use_case == 'personal' and template.get('category') == 'beginner':
            score += 2
            reasons.append('Beginner-friendly')

        recommendations.append({
            'template': template,
            'score': score,
            'suitability': suitability,
            'reasons': reasons,
            'recommended': score >= 5 and suitability == 'suitable',
        })

    # sorted() is stable, so equal scores keep template order
    return sorted(recommendations, key=lambda x: -x['score'])


def create_custom_template(template_data: dict):
    required = ['id', 'name', 'description', 'profiles', 'config']
    missing = [x for x in required if not template_data.get(x)]
    if len(missing):
        raise ValueError(f"Missing required template fields: {', '.join(missing)}")

    for code in template_data['profiles']:
        if code not in PROFILE_CODES:
            raise UnknownProfileError(f"Unknown profile: {code}")

    metadata = template_data.get('metadata') or {}
    requirements = calculate_resource_requirements(template_data['profiles'])
    resources = {k: requirements[k] for k in ('minMemory', 'minCpu', 'minDisk', 'recommendedMemory', 'recommendedCpu', 'recommendedDisk')}

    return {
        'id': template_data['id'],
        'name': template_data['name'],
        'description': template_data['description'],
        'longDescription': metadata.get('longDescription', template_data['description']),
        'profiles': list(template_data['profiles']),
        'category': metadata.get('category', 'custom'),
        'useCase': metadata.get('useCase', 'custom'),
        'estimatedSetupTime': metadata.get('estimatedSetupTime', 'Variable'),
        'syncTime': metadata.get('syncTime', 'Variable'),
        'config': dict(template_data['config']),
        'resources': resources,
        'features': metadata.get('features', []),
        'benefits': metadata.get('benefits', []),
        'customizable': True,
        'custom': True,
        'createdAt': get_current_utc_time(),
        'tags': metadata.get('tags', ['custom']),
    }


def save_custom_template(template: dict, path=None):
    if not template.get('id'):
        raise ValueError("Template must have an ID")
    if template['id'] in BUILTIN_TEMPLATES:
        raise BuiltinTemplateError(f"'{template['id']}' is a built-in template")
    templates = load_custom_templates(path)
    templates[template['id']] = template
    write_json_file(_custom_templates_path(path), templates)
    return template


def delete_custom_template(template_id, path=None):
    if template_id in BUILTIN_TEMPLATES:
        raise BuiltinTemplateError("Cannot delete built-in templates")
    templates = load_custom_templates(path)
    if template_id not in templates:
        raise TemplateNotFound(f"Template '{template_id}' not found")
    del templates[template_id]
    write_json_file(_custom_templates_path(path), templates)
    return True
