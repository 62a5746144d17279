import os
import re
import sys
import string
import secrets
import yaml
from dotenv import dotenv_values

from .profiles.profiles import get_profile_by_code, sort_profile_codes
from .profiles.profile import DEFAULT_NETWORK, get_value, port_mapping
from .profiles.manager import resolve_profile_dependencies
from .config_fields import (
    PROFILE_CONFIG_FIELDS,
    DEPRECATED_FIELDS,
    get_fields_for_profiles,
    get_field_by_key,
    get_default_values,
)
from .config_validator import validate_configuration
from .configs.user_config import DEFAULT_PASSWORD_LENGTH
from .configs.str_constants import COMPOSE_PROJECT_NAME
from .paths import get_paths
from .utils import get_current_utc_time, is_truthy


PASSWORD_FIELDS = ['POSTGRES_PASSWORD', 'K_SOCIAL_DB_PASSWORD', 'SIMPLY_KASPA_DB_PASSWORD']

PORTAINER_IMAGE = 'portainer/portainer-ce:latest'
PGADMIN_IMAGE = 'dpage/pgadmin4:latest'

# Only environment-style keys make it into the custom section
ENV_KEY = re.compile(r'^[A-Z_][A-Z0-9_]*$')

SECTION_TITLES = {
    'core': 'Core Profile: Kaspa node',
    'archive-node': 'Archive Node Profile',
    'kaspa-user-applications': 'Kaspa User Applications',
    'indexer-services': 'Indexer Services',
    'mining': 'Mining Profile',
}


def generate_secure_password(length=DEFAULT_PASSWORD_LENGTH):
    length = int(length)
    if length < 12 or length > 128:
        raise ValueError("Password length must be between 12 and 128")
    # Letters and digits only; the passwords end up inside postgres:// URLs
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def _normalize_value(field, value):
    if value is None:
        return value
    if field and field['type'] == 'number':
        try:
            return int(str(value).strip())
        except ValueError:
            return value
    if field and field['type'] == 'boolean':
        return is_truthy(value)
    if isinstance(value, str) and not (field and field['type'] in ('password', 'textarea')):
        return value.strip()
    return value


# Defaults filled in, numbers as ints, booleans as bools
def normalize_config(config: dict, profiles):
    normalized = {}
    for key, value in config.items():
        normalized[key] = _normalize_value(get_field_by_key(key), value)
    for key, default in get_default_values(profiles).items():
        if normalized.get(key) is None or normalized.get(key) == '':
            if default != '':
                normalized[key] = default
    return normalized


# Profiles written by generate_env_file; anything older defaults to just the node
def profiles_from_config(config: dict):
    raw = config.get('COMPOSE_PROFILES') or ''
    codes = [x.strip() for x in raw.split(',') if x.strip()]
    return codes if len(codes) else ['core']


def validate_config(config: dict, profiles=None, context=None):
    if profiles is None:
        profiles = profiles_from_config(config)
    normalized = normalize_config(config, profiles)
    result = validate_configuration(normalized, profiles, context)
    return {
        'valid': result['valid'],
        'errors': result['errors'],
        'warnings': result['warnings'],
        'config': result['config'],
    }


def generate_default_config(profiles):
    config = get_default_values(profiles)
    if 'indexer-services' in profiles:
        for key in PASSWORD_FIELDS:
            config[key] = generate_secure_password()
    return config


def format_env_value(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return ''
    value = str(value)
    multiline = '\n' in value or '\r' in value
    # Single quotes keep $ literal for docker compose and dotenv alike
    if '$' in value and not multiline:
        escaped = value.replace('\\', '\\\\').replace("'", "\\'")
        return f"'{escaped}'"
    if multiline or any(c in value for c in ' #"\'\t\\'):
        escaped = value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n').replace('\r', '\\r')
        return f'"{escaped}"'
    return value


def _parse_custom_env_vars(text):
    pairs = []
    for line in str(text or '').splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        pairs.append((key.strip(), value.strip()))
    return pairs


"""

Writes the .env for a selection:

    header (time, profiles)
    COMPOSE_PROFILES, so a bare "docker compose up" starts the same services
    one section per selected profile, in field-definition order
    common settings
    developer settings when developer mode is on
    custom variables (unknown keys and CUSTOM_ENV_VARS lines)

Empty optional values are left out. A key is written at most once.

"""

def generate_env_file(config: dict, profiles):
    profiles = sort_profile_codes(resolve_profile_dependencies(profiles))
    written = set()
    lines = [
        "# Kaspa All-in-One Configuration",
        f"# Generated by Installation Wizard on {get_current_utc_time()}",
        f"# Profiles: {', '.join(profiles)}",
        "",
        f"COMPOSE_PROFILES={','.join(profiles)}",
    ]
    written.add('COMPOSE_PROFILES')

    def write_section(title, fields):
        section = []
        for field in fields:
            key = field['key']
            if key in written or key == 'CUSTOM_ENV_VARS':
                continue
            value = config.get(key)
            if value is None or value == '':
                if not field['required']:
                    continue
                value = field['default']
            written.add(key)
            section.append(f"{key}={format_env_value(value)}")
        if len(section):
            lines.append("")
            lines.append(f"# {title}")
            lines.extend(section)

    for code in profiles:
        write_section(SECTION_TITLES.get(code, code), PROFILE_CONFIG_FIELDS[code])

    visible = get_fields_for_profiles(profiles)
    visible_keys = [f['key'] for f in visible]
    common = [f for f in PROFILE_CONFIG_FIELDS['common'] if f['key'] in visible_keys]
    write_section("Common settings", common)

    if is_truthy(config.get('DEVELOPER_MODE')):
        developer = [f for f in PROFILE_CONFIG_FIELDS['developer'] if f['key'] in visible_keys]
        write_section("Developer mode", developer)
    else:
        # Developer keys are ignored unless developer mode is on
        for field in PROFILE_CONFIG_FIELDS['developer']:
            written.add(field['key'])

    custom = []
    for key, value in config.items():
        if key in written or key in DEPRECATED_FIELDS or key == 'CUSTOM_ENV_VARS':
            continue
        if get_field_by_key(key):
            # Belongs to a profile that isn't selected
            continue
        if not ENV_KEY.match(str(key)):
            continue
        if value is None or value == '' or isinstance(value, (dict, list)):
            continue
        written.add(key)
        custom.append(f"{key}={format_env_value(value)}")
    for key, value in _parse_custom_env_vars(config.get('CUSTOM_ENV_VARS')):
        if key in written:
            continue
        written.add(key)
        custom.append(f"{key}={format_env_value(value)}")
    if len(custom):
        lines.append("")
        lines.append("# Custom variables")
        lines.extend(custom)

    return '\n'.join(lines) + '\n'


def _write_text(content, path):
    try:
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as fhand:
            fhand.write(content)
        return {'success': True, 'path': path}
    except OSError as e:
        print(f"[CONFIG] Could not write {path}: {e}", file=sys.stderr)
        return {'success': False, 'path': path, 'error': str(e)}


def save_env_file(content, path=None):
    return _write_text(content, path or get_paths()['env'])


def load_env_file(path=None):
    path = path or get_paths()['env']
    if not os.path.exists(path):
        return {'success': False, 'error': f"No configuration file at {path}"}
    try:
        values = dotenv_values(path, interpolate=False)
    except OSError as e:
        return {'success': False, 'error': str(e)}
    config = {k: (v if v is not None else '') for k, v in values.items()}
    return {'success': True, 'config': config, 'profiles': profiles_from_config(config)}


def _compose_header(profiles):
    return (
        "# Kaspa All-in-One docker-compose file\n"
        f"# Generated by Installation Wizard on {get_current_utc_time()}\n"
        f"# Profiles: {', '.join(profiles)}\n"
    )


"""

Builds docker-compose.yml from the selected profiles. Only their services are written,
each tagged with "profiles: [<profile id>]" so docker compose activates it with --profile.

"""

def generate_docker_compose(config: dict, profiles):
    for code in profiles:
        get_profile_by_code(code)  # raises on unknown profiles
    selected = sort_profile_codes(resolve_profile_dependencies(profiles))

    services = {}
    volumes = {}
    for code in selected:
        profile = get_profile_by_code(code)
        services.update(profile.get_compose_services(config, selected))
        volumes.update(profile.get_compose_volumes(config))

    compose = {
        'name': COMPOSE_PROJECT_NAME,
        'services': services,
        'networks': {
            DEFAULT_NETWORK: {'driver': 'bridge', 'name': DEFAULT_NETWORK},
        },
    }
    if len(volumes):
        compose['volumes'] = volumes

    return _compose_header(selected) + yaml.safe_dump(compose, sort_keys=False, default_flow_style=False)


def save_docker_compose(content, path=None):
    return _write_text(content, path or get_paths()['compose'])


# Debug tooling layered over the main file; None when developer mode is off
def generate_docker_compose_override(config: dict, profiles):
    if not is_truthy(config.get('DEVELOPER_MODE')):
        return None

    selected = sort_profile_codes(resolve_profile_dependencies(profiles))
    services = {}
    volumes = {}

    if is_truthy(config.get('ENABLE_PORTAINER', True)):
        services['portainer'] = {
            'image': PORTAINER_IMAGE,
            'container_name': 'kaspa-portainer',
            'restart': 'unless-stopped',
            'ports': [port_mapping('PORTAINER_PORT', get_value(config, 'PORTAINER_PORT', 9000), 9000)],
            'volumes': ['/var/run/docker.sock:/var/run/docker.sock', 'portainer-data:/data'],
            'networks': [DEFAULT_NETWORK],
        }
        volumes['portainer-data'] = {}

    if 'indexer-services' in selected and is_truthy(config.get('ENABLE_PGADMIN', True)):
        services['pgadmin'] = {
            'image': PGADMIN_IMAGE,
            'container_name': 'kaspa-pgadmin',
            'restart': 'unless-stopped',
            'profiles': ['indexer-services'],
            'ports': [port_mapping('PGADMIN_PORT', get_value(config, 'PGADMIN_PORT', 5050), 80)],
            'environment': {
                'PGADMIN_DEFAULT_EMAIL': get_value(config, 'PGADMIN_EMAIL', 'admin@kaspa.local'),
                'PGADMIN_DEFAULT_PASSWORD': '${PGADMIN_PASSWORD:-${POSTGRES_PASSWORD}}',
            },
            'volumes': ['pgadmin-data:/var/lib/pgadmin'],
            'depends_on': ['timescaledb'],
            'networks': [DEFAULT_NETWORK],
        }
        volumes['pgadmin-data'] = {}

    log_level = get_value(config, 'LOG_LEVEL', 'debug')
    for code in selected:
        if code not in ('core', 'archive-node', 'indexer-services'):
            continue
        for name in get_profile_by_code(code).containers:
            if name == 'timescaledb':
                continue
            services[name] = {'environment': {'LOG_LEVEL': log_level}}

    override = {'services': services}
    if len(volumes):
        override['volumes'] = volumes

    header = (
        "# Developer mode overrides, merged over docker-compose.yml by docker compose\n"
        f"# Generated by Installation Wizard on {get_current_utc_time()}\n"
    )
    return header + yaml.safe_dump(override, sort_keys=False, default_flow_style=False)


def save_docker_compose_override(content, path=None):
    return _write_text(content, path or get_paths()['compose_override'])


def remove_docker_compose_override(path=None):
    path = path or get_paths()['compose_override']
    if not os.path.exists(path):
        return {'success': True, 'removed': False}
    try:
        os.remove(path)
    except OSError as e:
        return {'success': False, 'removed': False, 'error': str(e)}
    return {'success': True, 'removed': True}


# Writes .env, compose and (depending on developer mode) the override in one go
def write_project_files(config: dict, profiles, root=None):
    paths = get_paths(root)
    env_result = save_env_file(generate_env_file(config, profiles), paths['env'])
    if not env_result['success']:
        return env_result
    compose_result = save_docker_compose(generate_docker_compose(config, profiles), paths['compose'])
    if not compose_result['success']:
        return compose_result
    override = generate_docker_compose_override(config, profiles)
    if override:
        override_result = save_docker_compose_override(override, paths['compose_override'])
    else:
        override_result = remove_docker_compose_override(paths['compose_override'])
    if not override_result['success']:
        return override_result
    return {
        'success': True,
        'envPath': paths['env'],
        'composePath': paths['compose'],
        'overridePath': paths['compose_override'] if override else None,
    }
