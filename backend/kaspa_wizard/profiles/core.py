from .profile import (
    Profile,
    get_value,
    port_mapping,
    data_volume,
    is_testnet,
    is_public_node,
)

KASPA_NODE_IMAGE = 'kaspanet/rusty-kaspad:latest'


# Shared by the pruned and the archive node; they differ by flags, data directory and container name
def kaspad_command(config: dict, archive=False):
    flags = [
        'kaspad',
        '--utxoindex',
        '--appdir=/app/data',
        '--rpclisten=0.0.0.0:16110',
        '--listen=0.0.0.0:16111',
        '--rpclisten-borsh=0.0.0.0:17110',
        '--rpclisten-json=0.0.0.0:18110',
    ]
    if is_testnet(config):
        flags.append('--testnet')
    if archive:
        flags.append('--nopruning')
    if is_public_node(config) and get_value(config, 'EXTERNAL_IP'):
        flags.append(f"--externalip={get_value(config, 'EXTERNAL_IP')}")
    return ' '.join(flags)


def kaspad_ports(config: dict):
    return [
        port_mapping('KASPA_NODE_RPC_PORT', get_value(config, 'KASPA_NODE_RPC_PORT', 16110), 16110),
        port_mapping('KASPA_NODE_P2P_PORT', get_value(config, 'KASPA_NODE_P2P_PORT', 16111), 16111),
        port_mapping('KASPA_NODE_WRPC_BORSH_PORT', get_value(config, 'KASPA_NODE_WRPC_BORSH_PORT', 17110), 17110),
        port_mapping('KASPA_NODE_WRPC_JSON_PORT', get_value(config, 'KASPA_NODE_WRPC_JSON_PORT', 18110), 18110),
    ]


class Core(Profile):
    code = 'core'
    name = 'Core Profile'
    description = 'Kaspa node (public/private) with optional wallet'
    category = 'essential'
    required = True

    services = [
        {'name': 'kaspa-node', 'required': True, 'startupOrder': 1, 'description': 'Kaspa blockchain node'},
        {'name': 'wallet', 'required': False, 'startupOrder': 1, 'description': 'Kaspa wallet (optional)'},
    ]

    resources = {
        'minMemory': 4, 'minCpu': 2, 'minDisk': 100,
        'recommendedMemory': 8, 'recommendedCpu': 4, 'recommendedDisk': 500
    }

    ports = [16110, 16111, 3001, 80, 443]

    configuration = {
        'required': [],
        'optional': ['KASPA_NODE_RPC_PORT', 'KASPA_NODE_P2P_PORT', 'KASPA_NETWORK', 'PUBLIC_NODE', 'EXTERNAL_IP']
    }

    containers = ['kaspa-node']

    def get_images(self, config: dict):
        return [get_value(config, 'KASPA_NODE_IMAGE', KASPA_NODE_IMAGE)]

    def get_compose_services(self, config: dict, selected: list):
        node = self._base_service('kaspa-node', image=self.get_images(config)[0])
        node['ports'] = kaspad_ports(config)
        volume, _ = data_volume(config, 'KASPA_DATA_DIR', '/data/kaspa', 'kaspa-data', '/app/data')
        node['volumes'] = [volume]
        node['command'] = kaspad_command(config)
        node['environment'] = [f"LOG_LEVEL={get_value(config, 'LOG_LEVEL', 'info')}"]
        return {'kaspa-node': node}

    def get_compose_volumes(self, config: dict):
        _, named = data_volume(config, 'KASPA_DATA_DIR', '/data/kaspa', 'kaspa-data', '/app/data')
        return {named: {}} if named else {}
