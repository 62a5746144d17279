from .profile import Profile, get_value, port_mapping, env_fallback
from ..configs.conn_config import (
    REMOTE_KASIA_INDEXER_URL,
    REMOTE_KSOCIAL_INDEXER_URL,
    REMOTE_KASPA_NODE_WBORSH_URL,
    REMOTE_SIMPLY_KASPA_INDEXER_URL,
    LOCAL_KASIA_INDEXER_URL,
    LOCAL_KSOCIAL_INDEXER_URL,
    LOCAL_SIMPLY_KASPA_INDEXER_URL,
)


def node_service_name(selected: list):
    if 'core' in selected:
        return 'kaspa-node'
    if 'archive-node' in selected:
        return 'kaspa-archive-node'
    return None


"""

Where do the apps get their data from?

INDEXER_CONNECTION_MODE:
    auto   - local if the matching service is part of this install, public otherwise
    local  - always local (the validator warns if the service isn't selected)
    public - always the public endpoints
    mixed  - per service, via KASIA_INDEXER_CONNECTION, KSOCIAL_INDEXER_CONNECTION, KASPA_NODE_CONNECTION

Public URLs are written as ${REMOTE_...:-default} so they can be changed in .env without regenerating compose.

"""

def _connection_for(config: dict, service_key, locally_available):
    mode = get_value(config, 'INDEXER_CONNECTION_MODE', 'auto')
    if mode == 'mixed':
        mode = get_value(config, service_key, 'auto')
    if mode == 'auto':
        return 'local' if locally_available else 'public'
    return mode


def resolve_app_endpoints(config: dict, selected: list):
    has_indexers = 'indexer-services' in selected
    node_service = node_service_name(selected)

    kasia_conn = _connection_for(config, 'KASIA_INDEXER_CONNECTION', has_indexers)
    ksocial_conn = _connection_for(config, 'KSOCIAL_INDEXER_CONNECTION', has_indexers)
    node_conn = _connection_for(config, 'KASPA_NODE_CONNECTION', node_service is not None)

    endpoints = {}
    if kasia_conn == 'local':
        endpoints['kasia_indexer'] = get_value(config, 'KASIA_INDEXER_URL', LOCAL_KASIA_INDEXER_URL)
    else:
        endpoints['kasia_indexer'] = env_fallback('REMOTE_KASIA_INDEXER_URL', get_value(config, 'REMOTE_KASIA_INDEXER_URL', REMOTE_KASIA_INDEXER_URL))

    if ksocial_conn == 'local':
        endpoints['k_social_indexer'] = get_value(config, 'K_INDEXER_URL', LOCAL_KSOCIAL_INDEXER_URL)
    else:
        endpoints['k_social_indexer'] = env_fallback('REMOTE_KSOCIAL_INDEXER_URL', get_value(config, 'REMOTE_KSOCIAL_INDEXER_URL', REMOTE_KSOCIAL_INDEXER_URL))

    # The explorer follows the K-Social choice; there's no separate switch for it
    if ksocial_conn == 'local':
        endpoints['simply_kaspa_indexer'] = get_value(config, 'SIMPLY_KASPA_INDEXER_URL', LOCAL_SIMPLY_KASPA_INDEXER_URL)
    else:
        endpoints['simply_kaspa_indexer'] = REMOTE_SIMPLY_KASPA_INDEXER_URL

    if node_conn == 'local' and node_service:
        endpoints['kaspa_node'] = f"ws://{node_service}:17110"
    else:
        endpoints['kaspa_node'] = env_fallback('REMOTE_KASPA_NODE_WBORSH_URL', get_value(config, 'REMOTE_KASPA_NODE_WBORSH_URL', REMOTE_KASPA_NODE_WBORSH_URL))

    endpoints['modes'] = {'kasia_indexer': kasia_conn, 'k_social_indexer': ksocial_conn, 'kaspa_node': node_conn}
    return endpoints


class UserApplications(Profile):
    code = 'kaspa-user-applications'
    name = 'Kaspa User Applications'
    description = 'User-facing apps (Kasia, K-Social, Kaspa Explorer)'
    category = 'optional'
    standalone = True

    services = [
        {'name': 'kasia-app', 'required': False, 'startupOrder': 3, 'description': 'Kasia messaging app'},
        {'name': 'k-social-app', 'required': False, 'startupOrder': 3, 'description': 'K-Social app'},
        {'name': 'kaspa-explorer', 'required': False, 'startupOrder': 3, 'description': 'Kaspa blockchain explorer'},
    ]

    resources = {
        'minMemory': 4, 'minCpu': 2, 'minDisk': 50,
        'recommendedMemory': 8, 'recommendedCpu': 4, 'recommendedDisk': 200
    }

    ports = [3002, 3003, 3008]

    configuration = {
        'required': [],
        'optional': ['INDEXER_CONNECTION_MODE', 'REMOTE_KASIA_INDEXER_URL', 'REMOTE_KSOCIAL_INDEXER_URL', 'REMOTE_KASPA_NODE_WBORSH_URL']
    }

    containers = ['kasia-app', 'k-social', 'kaspa-explorer']
    build_services = ['kasia-app', 'k-social', 'kaspa-explorer']

    def get_compose_services(self, config: dict, selected: list):
        endpoints = resolve_app_endpoints(config, selected)
        network = get_value(config, 'KASPA_NETWORK', 'mainnet')

        local_deps_kasia = []
        local_deps_social = []
        if endpoints['modes']['kasia_indexer'] == 'local' and 'indexer-services' in selected:
            local_deps_kasia.append('kasia-indexer')
        if endpoints['modes']['k_social_indexer'] == 'local' and 'indexer-services' in selected:
            local_deps_social.append('k-indexer')

        kasia = self._base_service('kasia-app', build={'context': './services/kasia', 'dockerfile': 'Dockerfile'})
        kasia['ports'] = [port_mapping('KASIA_APP_PORT', get_value(config, 'KASIA_APP_PORT', 3002), 3000)]
        kasia['environment'] = [
            f"VITE_INDEXER_MAINNET_URL={endpoints['kasia_indexer']}",
            f"VITE_DEFAULT_MAINNET_KASPA_NODE_URL={endpoints['kaspa_node']}",
            f"VITE_DEFAULT_KASPA_NETWORK={network}",
        ]
        if local_deps_kasia:
            kasia['depends_on'] = local_deps_kasia

        social = self._base_service('k-social', build={'context': './services/k-social', 'dockerfile': 'Dockerfile'})
        social['ports'] = [port_mapping('KSOCIAL_APP_PORT', get_value(config, 'KSOCIAL_APP_PORT', 3003), 3000)]
        social['environment'] = [
            f"VITE_K_INDEXER_URL={endpoints['k_social_indexer']}",
            f"VITE_KASPA_NODE_URL={endpoints['kaspa_node']}",
            f"VITE_KASPA_NETWORK={network}",
        ]
        if local_deps_social:
            social['depends_on'] = local_deps_social

        explorer = self._base_service('kaspa-explorer', build={'context': './services/kaspa-explorer', 'dockerfile': 'Dockerfile'})
        explorer['ports'] = [port_mapping('EXPLORER_PORT', get_value(config, 'EXPLORER_PORT', 3008), 80)]
        explorer['environment'] = [
            f"API_URL={endpoints['simply_kaspa_indexer']}",
            f"KASPA_NETWORK={network}",
        ]
        if local_deps_social:
            explorer['depends_on'] = ['simply-kaspa-indexer']

        return {'kasia-app': kasia, 'k-social': social, 'kaspa-explorer': explorer}
