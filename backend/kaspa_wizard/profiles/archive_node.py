from .profile import Profile, get_value, data_volume
from .core import KASPA_NODE_IMAGE, kaspad_command, kaspad_ports


class ArchiveNode(Profile):
    code = 'archive-node'
    name = 'Archive Node Profile'
    description = 'Non-pruning Kaspa node keeping the complete blockchain history'
    category = 'advanced'

    services = [
        {'name': 'kaspa-archive-node', 'required': True, 'startupOrder': 1, 'description': 'Non-pruning Kaspa node'},
    ]

    # Runs on the same ports as the pruned node
    conflicts = ['core']

    resources = {
        'minMemory': 16, 'minCpu': 8, 'minDisk': 1000,
        'recommendedMemory': 32, 'recommendedCpu': 16, 'recommendedDisk': 5000
    }

    ports = [16110, 16111]

    configuration = {
        'required': [],
        'optional': ['KASPA_NODE_RPC_PORT', 'KASPA_NODE_P2P_PORT', 'KASPA_NETWORK', 'KASPA_ARCHIVE_DATA_DIR']
    }

    containers = ['kaspa-archive-node']

    def get_images(self, config: dict):
        return [get_value(config, 'KASPA_NODE_IMAGE', KASPA_NODE_IMAGE)]

    def get_compose_services(self, config: dict, selected: list):
        node = self._base_service('kaspa-archive-node', image=self.get_images(config)[0])
        node['ports'] = kaspad_ports(config)
        volume, _ = data_volume(config, 'KASPA_ARCHIVE_DATA_DIR', '/data/kaspa-archive', 'kaspa-archive-data', '/app/data')
        node['volumes'] = [volume]
        node['command'] = kaspad_command(config, archive=True)
        node['environment'] = [f"LOG_LEVEL={get_value(config, 'LOG_LEVEL', 'info')}"]
        return {'kaspa-archive-node': node}

    def get_compose_volumes(self, config: dict):
        _, named = data_volume(config, 'KASPA_ARCHIVE_DATA_DIR', '/data/kaspa-archive', 'kaspa-archive-data', '/app/data')
        return {named: {}} if named else {}
