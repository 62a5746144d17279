import copy
import sys

from .configs.conn_config import (
    REMOTE_KASIA_INDEXER_URL,
    REMOTE_KSOCIAL_INDEXER_URL,
    REMOTE_KASPA_NODE_WBORSH_URL,
)
from .profiles.profiles import PROFILE_CODES

"""

Every key the wizard knows how to put in .env, grouped by the profile that asks for it.

Field:
    key, label, type (number, text, password, boolean, select, textarea), default, required,
    validation: list of rules, each {'type': 'range' | 'enum' | 'pattern' | 'minLength' | 'path' | 'url' | 'kaspaAddress', ...}
    category (basic, advanced), group, visibleForProfiles
    dependsOn: {'field', 'value'} - only relevant when that other field has that value
    conditionalRequired: {'field', 'value', 'message'} - required when that other field has that value

Patterns are stored as strings so the definitions can be sent to the browser as-is.

"""

ALL_PROFILES = list(PROFILE_CODES)
NODE_PROFILES = ['core', 'archive-node']

PORT_RULE = {'type': 'range', 'min': 1024, 'max': 65535, 'message': 'Port must be between 1024 and 65535'}
HTTP_URL_PATTERN = {'type': 'pattern', 'pattern': r'^https?://.+', 'message': 'Must be a valid HTTP or HTTPS URL'}
WS_URL_PATTERN = {'type': 'pattern', 'pattern': r'^wss?://.+', 'message': 'Must be a valid WebSocket URL (ws:// or wss://)'}
HTTP_URL_RULE = {'type': 'url', 'protocols': ['http', 'https'], 'message': 'Must be a valid HTTP or HTTPS URL'}
PATH_RULE = {'type': 'path', 'message': 'Must be a valid path'}
PASSWORD_RULE = {'type': 'minLength', 'min': 12, 'message': 'Password must be at least 12 characters'}


def _field(key, label, type, default, profiles, group, required=False, validation=None, category='basic', tooltip='', **kwargs):
    field = {
        'key': key,
        'label': label,
        'type': type,
        'default': default,
        'required': required,
        'validation': validation or [],
        'category': category,
        'group': group,
        'visibleForProfiles': profiles,
        'tooltip': tooltip,
    }
    field.update(kwargs)
    return field


def _node_fields(profile, label_prefix, data_key, data_default):
    return [
        _field('KASPA_NODE_RPC_PORT', f'{label_prefix} RPC Port', 'number', 16110, [profile], 'kaspa-node', required=True, validation=[PORT_RULE],
               tooltip='Port for RPC connections to the node'),
        _field('KASPA_NODE_P2P_PORT', f'{label_prefix} P2P Port', 'number', 16111, [profile], 'kaspa-node', required=True, validation=[PORT_RULE],
               tooltip='Port for peer-to-peer connections'),
        _field('KASPA_NETWORK', 'Network', 'select', 'mainnet', [profile], 'kaspa-node', required=True,
               validation=[{'type': 'enum', 'values': ['mainnet', 'testnet'], 'message': 'Network must be either mainnet or testnet'}],
               options=['mainnet', 'testnet'],
               tooltip='Kaspa network to connect to (changing this requires fresh installation)'),
        _field(data_key, 'Data Directory', 'text', data_default, [profile], 'kaspa-node', validation=[PATH_RULE], category='advanced',
               tooltip='Host directory for node data; the default keeps it in a Docker volume'),
    ]


def _connection_select(key, label):
    return _field(key, label, 'select', 'auto', ['kaspa-user-applications'], 'indexer-endpoints', category='advanced',
                  validation=[{'type': 'enum', 'values': ['auto', 'local', 'public'], 'message': 'Must be one of: auto, local, public'}],
                  options=['auto', 'local', 'public'],
                  dependsOn={'field': 'INDEXER_CONNECTION_MODE', 'value': 'mixed'})


PROFILE_CONFIG_FIELDS = {
    'core': _node_fields('core', 'Kaspa Node', 'KASPA_DATA_DIR', '/data/kaspa'),

    'archive-node': _node_fields('archive-node', 'Archive Node', 'KASPA_ARCHIVE_DATA_DIR', '/data/kaspa-archive'),

    'kaspa-user-applications': [
        _field('INDEXER_CONNECTION_MODE', 'Indexer Connection Mode', 'select', 'auto', ['kaspa-user-applications'], 'indexer-endpoints', required=True,
               validation=[{'type': 'enum', 'values': ['auto', 'local', 'public', 'mixed'], 'message': 'Must be one of: auto, local, public, mixed'}],
               options=['auto', 'local', 'public', 'mixed'],
               tooltip='How applications connect to indexers: auto (detect local), local (force local), public (force public), mixed (per-service configuration)'),
        _field('REMOTE_KASIA_INDEXER_URL', 'Kasia Indexer URL', 'text', REMOTE_KASIA_INDEXER_URL, ['kaspa-user-applications'], 'indexer-endpoints',
               validation=[HTTP_URL_PATTERN]),
        _connection_select('KASIA_INDEXER_CONNECTION', 'Kasia Indexer Connection'),
        _field('REMOTE_KSOCIAL_INDEXER_URL', 'K-Social Indexer URL', 'text', REMOTE_KSOCIAL_INDEXER_URL, ['kaspa-user-applications'], 'indexer-endpoints',
               validation=[HTTP_URL_PATTERN]),
        _connection_select('KSOCIAL_INDEXER_CONNECTION', 'K-Social Indexer Connection'),
        _field('REMOTE_KASPA_NODE_WBORSH_URL', 'Kaspa Node wRPC URL', 'text', REMOTE_KASPA_NODE_WBORSH_URL, ['kaspa-user-applications'], 'indexer-endpoints',
               validation=[WS_URL_PATTERN]),
        _connection_select('KASPA_NODE_CONNECTION', 'Kaspa Node Connection'),
        _field('KASIA_APP_PORT', 'Kasia App Port', 'number', 3002, ['kaspa-user-applications'], 'applications', validation=[PORT_RULE], category='advanced'),
        _field('KSOCIAL_APP_PORT', 'K-Social App Port', 'number', 3003, ['kaspa-user-applications'], 'applications', validation=[PORT_RULE], category='advanced'),
        _field('EXPLORER_PORT', 'Explorer Port', 'number', 3008, ['kaspa-user-applications'], 'applications', validation=[PORT_RULE], category='advanced'),
    ],

    'indexer-services': [
        _field('POSTGRES_USER', 'Database User', 'text', 'kaspa', ['indexer-services'], 'database', required=True),
        _field('POSTGRES_PASSWORD', 'Database Password', 'password', '', ['indexer-services'], 'database', required=True, validation=[PASSWORD_RULE],
               tooltip='PostgreSQL superuser password (will be auto-generated if left empty)'),
        _field('K_SOCIAL_DB_PASSWORD', 'K-Social Database Password', 'password', '', ['indexer-services'], 'database', required=True, validation=[PASSWORD_RULE],
               tooltip='Password for the K-Social indexer database role (will be auto-generated if left empty)'),
        _field('SIMPLY_KASPA_DB_PASSWORD', 'Simply Kaspa Database Password', 'password', '', ['indexer-services'], 'database', required=True, validation=[PASSWORD_RULE],
               tooltip='Password for the Simply Kaspa indexer database role (will be auto-generated if left empty)'),
        _field('TIMESCALEDB_PORT', 'TimescaleDB Port', 'number', 5432, ['indexer-services'], 'database', validation=[PORT_RULE], category='advanced'),
        _field('TIMESCALEDB_DATA_DIR', 'TimescaleDB Data Directory', 'text', '/data/timescaledb', ['indexer-services'], 'database', validation=[PATH_RULE], category='advanced'),
        _field('KASIA_INDEXER_PORT', 'Kasia Indexer Port', 'number', 3004, ['indexer-services'], 'indexers', validation=[PORT_RULE], category='advanced'),
        _field('K_INDEXER_PORT', 'K-Indexer Port', 'number', 3005, ['indexer-services'], 'indexers', validation=[PORT_RULE], category='advanced'),
        _field('SIMPLY_KASPA_INDEXER_PORT', 'Simply Kaspa Indexer Port', 'number', 3006, ['indexer-services'], 'indexers', validation=[PORT_RULE], category='advanced'),
        _field('USE_PUBLIC_KASPA_NETWORK', 'Use Public Kaspa Network', 'boolean', False, ['indexer-services'], 'network', category='advanced',
               tooltip='Allow indexer services to connect to the public Kaspa network when no local node is available'),
    ],

    'mining': [
        _field('STRATUM_PORT', 'Stratum Port', 'number', 5555, ['mining'], 'mining', required=True, validation=[PORT_RULE]),
        _field('MINING_ADDRESS', 'Mining Address', 'text', '', ['mining'], 'mining', required=True,
               validation=[{'type': 'kaspaAddress', 'networkAware': True, 'message': 'Must be a valid Kaspa address for the selected network'}],
               placeholder='kaspa:qr...'),
        _field('MIN_SHARE_DIFF', 'Minimum Share Difficulty', 'number', 4, ['mining'], 'mining', category='advanced',
               validation=[{'type': 'range', 'min': 1, 'max': 1000000000, 'message': 'Must be a positive number'}]),
    ],

    'common': [
        _field('EXTERNAL_IP', 'External IP Address', 'text', '', ['core', 'archive-node', 'mining'], 'network',
               validation=[{'type': 'pattern', 'pattern': r'^(\d{1,3}\.){3}\d{1,3}$', 'message': 'Must be a valid IPv4 address'}],
               tooltip="Your server's external IP address (auto-detected if left empty)"),
        _field('PUBLIC_NODE', 'Public Node', 'boolean', False, NODE_PROFILES, 'network', tooltip='Make this node publicly accessible'),
        _field('WALLET_CONNECTIVITY_ENABLED', 'Enable Wallet Connectivity', 'boolean', False, ['core', 'archive-node', 'mining'], 'wallet'),
        _field('KASPA_NODE_WRPC_BORSH_PORT', 'wRPC Borsh Port', 'number', 17110, NODE_PROFILES, 'wallet', validation=[PORT_RULE], category='advanced',
               dependsOn={'field': 'WALLET_CONNECTIVITY_ENABLED', 'value': True}),
        _field('KASPA_NODE_WRPC_JSON_PORT', 'wRPC JSON Port', 'number', 18110, NODE_PROFILES, 'wallet', validation=[PORT_RULE], category='advanced',
               dependsOn={'field': 'WALLET_CONNECTIVITY_ENABLED', 'value': True}),
        _field('MINING_ADDRESS', 'Mining/Receive Address', 'text', '', ['core', 'archive-node', 'mining'], 'wallet',
               validation=[{'type': 'kaspaAddress', 'networkAware': True, 'message': 'Must be a valid Kaspa address for the selected network'}],
               conditionalRequired={'field': 'WALLET_CONNECTIVITY_ENABLED', 'value': True, 'message': 'Mining address is required when wallet connectivity is enabled'},
               dependsOn={'field': 'WALLET_CONNECTIVITY_ENABLED', 'value': True},
               placeholder='kaspa:qr...'),
        _field('KASIA_INDEXER_URL', 'Kasia Indexer URL', 'text', '', ['kaspa-user-applications'], 'indexer-endpoints', validation=[HTTP_URL_RULE], category='advanced'),
        _field('K_INDEXER_URL', 'K-Indexer URL', 'text', '', ['kaspa-user-applications'], 'indexer-endpoints', validation=[HTTP_URL_RULE], category='advanced'),
        _field('SIMPLY_KASPA_INDEXER_URL', 'Simply Kaspa Indexer URL', 'text', '', ['kaspa-user-applications'], 'indexer-endpoints', validation=[HTTP_URL_RULE], category='advanced'),
        _field('MIXED_INDEXER_CONFIRMED', 'Mixed Indexer Configuration Confirmed', 'boolean', False, ['kaspa-user-applications'], 'indexer-endpoints', category='advanced'),
        _field('CUSTOM_ENV_VARS', 'Custom Environment Variables', 'textarea', '', ALL_PROFILES, 'advanced', category='advanced',
               tooltip='Additional environment variables (one per line, format: KEY=value)'),
        _field('CONFIGURATION_TEMPLATE', 'Configuration Template', 'text', 'custom', ALL_PROFILES, 'templates', category='advanced'),
    ],

    'developer': [
        _field('DEVELOPER_MODE', 'Developer Mode', 'boolean', False, ALL_PROFILES, 'developer', category='advanced'),
        _field('LOG_LEVEL', 'Log Level', 'select', 'info', ALL_PROFILES, 'developer', category='advanced',
               validation=[{'type': 'enum', 'values': ['error', 'warn', 'info', 'debug', 'trace'], 'message': 'Must be one of: error, warn, info, debug, trace'}],
               options=['error', 'warn', 'info', 'debug', 'trace']),
        _field('ENABLE_PORTAINER', 'Enable Portainer', 'boolean', False, ALL_PROFILES, 'developer', category='advanced',
               dependsOn={'field': 'DEVELOPER_MODE', 'value': True}),
        _field('PORTAINER_PORT', 'Portainer Port', 'number', 9000, ALL_PROFILES, 'developer', validation=[PORT_RULE], category='advanced',
               dependsOn={'field': 'DEVELOPER_MODE', 'value': True}),
        _field('ENABLE_PGADMIN', 'Enable pgAdmin', 'boolean', False, ['indexer-services'], 'developer', category='advanced',
               dependsOn={'field': 'DEVELOPER_MODE', 'value': True}),
        _field('PGADMIN_PORT', 'pgAdmin Port', 'number', 5050, ['indexer-services'], 'developer', validation=[PORT_RULE], category='advanced',
               dependsOn={'field': 'DEVELOPER_MODE', 'value': True}),
        _field('PGADMIN_EMAIL', 'pgAdmin Email', 'text', 'admin@kaspa.local', ['indexer-services'], 'developer', category='advanced',
               validation=[{'type': 'pattern', 'pattern': r'^[^@\s]+@[^@\s]+$', 'message': 'Must be an email address'}],
               dependsOn={'field': 'DEVELOPER_MODE', 'value': True}),
        _field('PGADMIN_PASSWORD', 'pgAdmin Password', 'password', '', ['indexer-services'], 'developer', category='advanced',
               dependsOn={'field': 'DEVELOPER_MODE', 'value': True}),
        _field('ENABLE_LOG_ACCESS', 'Enable Log Access', 'boolean', False, ALL_PROFILES, 'developer', category='advanced',
               dependsOn={'field': 'DEVELOPER_MODE', 'value': True}),
    ],
}

FIELD_CATEGORIES = {
    'basic': {'id': 'basic', 'label': 'Basic Configuration', 'description': 'Essential settings for your installation', 'order': 1},
    'advanced': {'id': 'advanced', 'label': 'Advanced Options', 'description': 'Optional advanced configuration', 'order': 2},
}

FIELD_GROUPS = {
    'kaspa-node': {'id': 'kaspa-node', 'label': 'Kaspa Node Settings', 'order': 1},
    'indexer-endpoints': {'id': 'indexer-endpoints', 'label': 'Indexer Endpoints', 'order': 2},
    'network': {'id': 'network', 'label': 'Network Configuration', 'order': 3},
    'database': {'id': 'database', 'label': 'Database Configuration', 'order': 4},
    'indexers': {'id': 'indexers', 'label': 'Indexer Services', 'order': 5},
    'applications': {'id': 'applications', 'label': 'Applications', 'order': 6},
    'mining': {'id': 'mining', 'label': 'Mining', 'order': 7},
    'wallet': {'id': 'wallet', 'label': 'Wallet Connectivity', 'order': 8},
    'developer': {'id': 'developer', 'label': 'Developer Tools', 'order': 9},
    'advanced': {'id': 'advanced', 'label': 'Advanced', 'order': 10},
    'templates': {'id': 'templates', 'label': 'Templates', 'order': 11},
}

# Wallet secrets used to be accepted by the server; they never are now
DEPRECATED_FIELDS = {
    'WALLET_SEED_PHRASE': 'Seed phrases are now handled entirely in the browser. They are never sent to the server.',
    'WALLET_PASSWORD': 'Wallet passwords are now used only for client-side backup encryption. They are never sent to the server.',
    'WALLET_FILE': 'Wallet file uploads have been removed. Import wallets in the browser instead.',
    'WALLET_PRIVATE_KEY': 'Private keys are now handled entirely in the browser. They are never sent to the server.',
    'WALLET_PATH': 'Wallet data is no longer stored on the server.',
}


# Fields for the selected profiles, in profile order, then common and developer fields.
# A key shows up once; the profile's own definition beats the common one.
def get_fields_for_profiles(profiles):
    fields = []
    seen = set()
    ordered = [x for x in PROFILE_CODES if x in profiles]
    for code in ordered:
        for field in PROFILE_CONFIG_FIELDS[code]:
            if field['key'] not in seen:
                seen.add(field['key'])
                fields.append(field)
    for field in PROFILE_CONFIG_FIELDS['common'] + PROFILE_CONFIG_FIELDS['developer']:
        if field['key'] in seen:
            continue
        if any(p in profiles for p in field['visibleForProfiles']):
            seen.add(field['key'])
            fields.append(field)
    return copy.deepcopy(fields)


def get_field_by_key(key):
    for section in PROFILE_CONFIG_FIELDS.values():
        for field in section:
            if field['key'] == key:
                return copy.deepcopy(field)
    return None


def get_fields_by_category(fields):
    grouped = {}
    for field in fields:
        grouped.setdefault(field['category'], []).append(field)
    return grouped


def get_fields_by_group(fields):
    grouped = {}
    for field in fields:
        grouped.setdefault(field['group'], []).append(field)
    return dict(sorted(grouped.items(), key=lambda x: FIELD_GROUPS.get(x[0], {}).get('order', 99)))


def get_default_values(profiles):
    return {f['key']: f['default'] for f in get_fields_for_profiles(profiles)}


# Returns (config without deprecated keys, deprecation warnings)
def migrate_configuration(config: dict):
    migrated = dict(config)
    warnings = []
    for key, message in DEPRECATED_FIELDS.items():
        if key in migrated:
            print(f"[CONFIG] Dropping deprecated field {key}", file=sys.stderr)
            del migrated[key]
            warnings.append({
                'field': key,
                'message': message,
                'type': 'deprecation',
                'action': 'removed',
            })
    return migrated, warnings
