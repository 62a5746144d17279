from .profile import Profile, get_value, port_mapping
from .user_applications import node_service_name


class Mining(Profile):
    code = 'mining'
    name = 'Mining Profile'
    description = 'Stratum bridge for pointing miners at the local node'
    category = 'advanced'

    services = [
        {'name': 'kaspa-stratum', 'required': True, 'startupOrder': 3, 'description': 'Kaspa stratum bridge'},
    ]

    # Needs a node to mine against, pruned or archive
    prerequisites = ['core', 'archive-node']

    resources = {
        'minMemory': 2, 'minCpu': 2, 'minDisk': 10,
        'recommendedMemory': 4, 'recommendedCpu': 4, 'recommendedDisk': 50
    }

    ports = [5555]

    configuration = {
        'required': ['STRATUM_PORT', 'MINING_ADDRESS'],
        'optional': ['MIN_SHARE_DIFF']
    }

    containers = ['kaspa-stratum']
    build_services = ['kaspa-stratum']

    def get_compose_services(self, config: dict, selected: list):
        node_service = node_service_name(selected) or 'kaspa-node'

        stratum = self._base_service('kaspa-stratum', build={'context': './services/kaspa-stratum', 'dockerfile': 'Dockerfile'})
        stratum['ports'] = [port_mapping('STRATUM_PORT', get_value(config, 'STRATUM_PORT', 5555), 5555)]
        stratum['environment'] = [
            "MINING_ADDRESS=${MINING_ADDRESS}",
            f"KASPA_RPC_SERVER={node_service}:16110",
            f"MIN_SHARE_DIFF={get_value(config, 'MIN_SHARE_DIFF', 4)}",
        ]
        stratum['depends_on'] = [node_service]
        return {'kaspa-stratum': stratum}
