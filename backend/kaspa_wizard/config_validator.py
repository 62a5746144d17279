import os
import re
from urllib.parse import urlparse

from .config_fields import get_fields_for_profiles, get_field_by_key, migrate_configuration
from .address_validator import validate_kaspa_address, detect_network_from_address
from .paths import get_paths
from .utils import is_truthy


# One .env line per setting (textareas are split into lines of their own)
CONTROL_CHARACTERS = re.compile(r'[\x00-\x1f\x7f]')

# Host ports that must not collide with each other
PORT_FIELDS = [
    'KASPA_NODE_RPC_PORT',
    'KASPA_NODE_P2P_PORT',
    'KASPA_NODE_WRPC_BORSH_PORT',
    'KASPA_NODE_WRPC_JSON_PORT',
    'TIMESCALEDB_PORT',
    'KASIA_INDEXER_PORT',
    'K_INDEXER_PORT',
    'SIMPLY_KASPA_INDEXER_PORT',
    'KASIA_APP_PORT',
    'KSOCIAL_APP_PORT',
    'EXPLORER_PORT',
    'STRATUM_PORT',
    'PORTAINER_PORT',
    'PGADMIN_PORT',
]

CRITICAL_ERROR_TYPES = ('required', 'port_conflict')

CUSTOM_ENV_LINE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*=.*$')
INVALID_PATH_CHARS = re.compile(r'[<>"|?*]')


def _is_empty(value):
    return value is None or (isinstance(value, str) and value.strip() == '')


# Booleans come in as real bools from JSON and as 'true' / 'false' from .env
def _condition_met(config: dict, condition: dict):
    expected = condition['value']
    actual = config.get(condition['field'])
    if isinstance(expected, bool):
        return is_truthy(actual) == expected
    return actual == expected


def _check_type(field, value):
    if field['type'] == 'number':
        try:
            int(str(value).strip())
        except ValueError:
            return {'field': field['key'], 'message': f"{field['label']} must be a number", 'type': 'type'}
    elif field['type'] == 'boolean':
        if not isinstance(value, bool) and str(value).strip().lower() not in ('true', 'false', '1', '0', 'yes', 'no'):
            return {'field': field['key'], 'message': f"{field['label']} must be true or false", 'type': 'type'}
    return None


def _apply_rule(field, value, rule, config):
    key = field['key']
    rule_type = rule['type']

    if rule_type == 'range':
        try:
            num = float(value)
        except (TypeError, ValueError):
            num = None
        if num is None or num < rule['min'] or num > rule['max']:
            return {'field': key, 'message': rule.get('message') or f"Must be between {rule['min']} and {rule['max']}", 'type': 'range'}

    elif rule_type == 'enum':
        if value not in rule['values']:
            return {'field': key, 'message': rule.get('message') or f"Must be one of: {', '.join(rule['values'])}", 'type': 'enum'}

    elif rule_type == 'pattern':
        if not re.match(rule['pattern'], str(value)):
            return {'field': key, 'message': rule.get('message') or f"{field['label']} format is invalid", 'type': 'pattern'}

    elif rule_type == 'minLength':
        if len(str(value)) < rule['min']:
            return {'field': key, 'message': rule.get('message') or f"{field['label']} must be at least {rule['min']} characters", 'type': 'minLength'}

    elif rule_type == 'path':
        if INVALID_PATH_CHARS.search(str(value)):
            return {'field': key, 'message': rule.get('message') or f"{field['label']} contains invalid characters", 'type': 'path'}

    elif rule_type == 'url':
        parsed = urlparse(str(value))
        if not parsed.scheme or not parsed.netloc:
            return {'field': key, 'message': rule.get('message') or f"{field['label']} must be a valid URL", 'type': 'url_format'}
        if rule.get('protocols') and parsed.scheme not in rule['protocols']:
            return {'field': key, 'message': rule.get('message') or f"{field['label']} must use one of these protocols: {', '.join(rule['protocols'])}", 'type': 'url_protocol'}

    elif rule_type == 'kaspaAddress':
        result = validate_kaspa_address(
            str(value),
            network=config.get('KASPA_NETWORK') or 'mainnet',
            network_aware=rule.get('networkAware', False)
        )
        if not result['valid']:
            return {'field': key, 'message': result.get('error') or rule.get('message'), 'type': 'kaspaAddress', 'network': result.get('network')}

    return None


def _validate_field_def(field, value, config):
    errors = []

    if field.get('dependsOn') and not _condition_met(config, field['dependsOn']) and not field.get('conditionalRequired'):
        return errors

    required = field['required']
    message = f"{field['label']} is required"
    if field.get('conditionalRequired') and _condition_met(config, field['conditionalRequired']):
        required = True
        message = field['conditionalRequired'].get('message') or message

    if _is_empty(value):
        if required:
            errors.append({'field': field['key'], 'message': message, 'type': 'required'})
        return errors

    if field['type'] != 'textarea' and isinstance(value, str) and CONTROL_CHARACTERS.search(value):
        errors.append({'field': field['key'], 'message': f"{field['label']} must be a single line of text", 'type': 'control_characters'})
        return errors

    type_error = _check_type(field, value)
    if type_error:
        errors.append(type_error)
        return errors

    for rule in field['validation']:
        rule_error = _apply_rule(field, value, rule, config)
        if rule_error:
            errors.append(rule_error)

    return errors


def validate_port_conflicts(config: dict, relevant_keys=None):
    errors = []
    port_map = {}
    for key in PORT_FIELDS:
        if relevant_keys is not None and key not in relevant_keys:
            continue
        value = config.get(key)
        if _is_empty(value):
            continue
        try:
            port = int(str(value).strip())
        except ValueError:
            continue
        if port in port_map:
            errors.append({
                'field': key,
                'message': f"Port {port} is already used by {port_map[port]}",
                'type': 'port_conflict',
                'conflictsWith': port_map[port],
            })
        else:
            port_map[port] = key
    return errors


def _installation_exists():
    paths = get_paths()
    return os.path.exists(paths['compose']) or os.path.exists(paths['installation_state'])


# Mainnet and testnet data directories can't be reused across networks
def validate_network_change(config: dict, previous_config=None, has_installation=None):
    if not previous_config:
        return []
    current = config.get('KASPA_NETWORK') or 'mainnet'
    previous = previous_config.get('KASPA_NETWORK') or 'mainnet'
    if current == previous:
        return []
    if has_installation is None:
        has_installation = _installation_exists()
    return [{
        'field': 'KASPA_NETWORK',
        'message': f"Changing network from {previous} to {current} requires a fresh installation. Mainnet and testnet data are incompatible.",
        'type': 'network_change',
        'severity': 'critical' if has_installation else 'high',
        'previousValue': previous,
        'newValue': current,
    }]


def validate_custom_env_vars(text):
    errors = []
    if _is_empty(text):
        return errors
    for i, line in enumerate(str(text).splitlines()):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        if not CUSTOM_ENV_LINE.match(line):
            errors.append({
                'field': 'CUSTOM_ENV_VARS',
                'message': f"Line {i+1} must look like KEY=value",
                'type': 'custom_env',
                'line': i + 1,
            })
    return errors


def _cross_field_warnings(config: dict, profiles):
    warnings = []
    mode = config.get('INDEXER_CONNECTION_MODE')
    if 'kaspa-user-applications' in profiles:
        if mode == 'local' and 'indexer-services' not in profiles:
            warnings.append({
                'field': 'INDEXER_CONNECTION_MODE',
                'message': 'Local indexers were requested but the Indexer Services profile is not selected; the apps will not find them',
                'type': 'indexer_unavailable',
            })
        if mode == 'mixed' and not is_truthy(config.get('MIXED_INDEXER_CONFIRMED')):
            warnings.append({
                'field': 'INDEXER_CONNECTION_MODE',
                'message': 'Some apps will use local indexers and some public ones; confirm this is intended',
                'type': 'mixed_indexers',
            })

    if config.get('MINING_ADDRESS'):
        detected = detect_network_from_address(config['MINING_ADDRESS'])
        configured = config.get('KASPA_NETWORK') or 'mainnet'
        if detected and detected != configured:
            warnings.append({
                'field': 'MINING_ADDRESS',
                'message': f"Mining address appears to be for {detected}, but node is configured for {configured}",
                'type': 'network_mismatch',
            })

    if is_truthy(config.get('PUBLIC_NODE')) and _is_empty(config.get('EXTERNAL_IP')) and any(p in profiles for p in ('core', 'archive-node')):
        warnings.append({
            'field': 'EXTERNAL_IP',
            'message': 'Public node without an external IP; peers will rely on auto-detection',
            'type': 'missing_recommended',
        })
    return warnings


def get_validation_summary(errors, warnings):
    errors_by_type = {}
    for error in errors:
        errors_by_type[error.get('type', 'other')] = errors_by_type.get(error.get('type', 'other'), 0) + 1
    return {
        'totalErrors': len(errors),
        'totalWarnings': len(warnings),
        'errorsByType': errors_by_type,
        'criticalErrors': len([x for x in errors if x.get('type') in CRITICAL_ERROR_TYPES]),
    }


"""

Validates a whole configuration for a profile selection.

context (optional):
    previousConfig - the configuration currently installed, for the network change check
    hasInstallation - overrides the on-disk check used to grade the network change warning

Returns {valid, errors, warnings, summary, config} where config has the deprecated keys stripped.

"""

def validate_configuration(config, profiles, context=None):
    context = context or {}

    if not isinstance(config, dict):
        errors = [{'field': 'config', 'message': 'Configuration object is required', 'type': 'required'}]
        return {'valid': False, 'errors': errors, 'warnings': [], 'summary': get_validation_summary(errors, []), 'config': config}

    if not isinstance(profiles, list) or not len(profiles):
        errors = [{'field': 'profiles', 'message': 'At least one profile must be selected', 'type': 'required'}]
        return {'valid': False, 'errors': errors, 'warnings': [], 'summary': get_validation_summary(errors, []), 'config': config}

    migrated, warnings = migrate_configuration(config)
    errors = []

    fields = get_fields_for_profiles(profiles)
    for field in fields:
        errors.extend(_validate_field_def(field, migrated.get(field['key']), migrated))

    errors.extend(validate_port_conflicts(migrated, relevant_keys=[f['key'] for f in fields]))
    errors.extend(validate_custom_env_vars(migrated.get('CUSTOM_ENV_VARS')))

    warnings.extend(_cross_field_warnings(migrated, profiles))
    warnings.extend(validate_network_change(migrated, context.get('previousConfig'), context.get('hasInstallation')))

    return {
        'valid': len(errors) == 0,
        'errors': errors,
        'warnings': warnings,
        'summary': get_validation_summary(errors, warnings),
        'config': migrated,
    }


# Unknown keys are accepted as-is (they end up in the custom section of .env)
def validate_field(key, value, config=None, profiles=None):
    config = {**(config or {}), key: value}
    field = None
    if profiles:
        matches = [f for f in get_fields_for_profiles(profiles) if f['key'] == key]
        field = matches[0] if len(matches) else None
    if not field:
        field = get_field_by_key(key)
    if not field:
        return {'valid': True, 'errors': [], 'field': key}

    errors = _validate_field_def(field, value, config)
    if key == 'CUSTOM_ENV_VARS':
        errors.extend(validate_custom_env_vars(value))
    return {'valid': len(errors) == 0, 'errors': errors, 'field': key}
