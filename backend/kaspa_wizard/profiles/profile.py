from abc import ABC
import copy

from ..utils import is_truthy


# The networks / volumes every profile's services attach to
DEFAULT_NETWORK = 'kaspa-network'


class Profile(ABC):
    code: str = None  # e.g., "core" or "indexer-services"
    name: str = None
    description: str = ""
    category: str = 'optional'  # essential, optional or advanced
    required: bool = False  # the wizard pre-selects required profiles
    standalone: bool = False  # can run without a local node, against public endpoints

    # Each service is {'name', 'required', 'startupOrder', 'description'}
    services: list = []

    dependencies: list = []  # every one of these must also be selected
    prerequisites: list = []  # at least one of these must also be selected
    conflicts: list = []  # none of these may be selected alongside

    # In GB / cores
    resources: dict = {
        'minMemory': 0, 'minCpu': 0, 'minDisk': 0,
        'recommendedMemory': 0, 'recommendedCpu': 0, 'recommendedDisk': 0
    }

    ports: list = []  # host ports the profile's containers bind

    # Env keys that must (or may) be set when the profile is selected
    configuration: dict = {'required': [], 'optional': []}

    # Compose service name -> container name; also what the docker manager checks after deploy
    containers: list = []

    # Locally built services; everything else is pulled
    build_services: list = []

    def __init__(self) -> None:
        pass

    def to_json(self):
        return {
            'id': self.code,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'required': self.required,
            'services': copy.deepcopy(self.services),
            'dependencies': list(self.dependencies),
            'prerequisites': list(self.prerequisites),
            'conflicts': list(self.conflicts),
            'resources': dict(self.resources),
            'ports': list(self.ports),
            'configuration': copy.deepcopy(self.configuration),
        }

    # Images that docker compose would pull for this profile, given the config
    def get_images(self, config: dict):
        return []

    # Returns a dict of compose service name -> service definition.
    # selected is the full list of selected profile codes, since some services wire themselves differently depending on what else is running.
    def get_compose_services(self, config: dict, selected: list):
        return {}

    # Named volumes the services above reference
    def get_compose_volumes(self, config: dict):
        return {}

    # Shared pieces
    def _base_service(self, container_name, image=None, build=None):
        service = {}
        if image:
            service['image'] = image
        if build:
            service['build'] = build
        service['container_name'] = container_name
        service['restart'] = 'unless-stopped'
        service['profiles'] = [self.code]
        service['networks'] = [DEFAULT_NETWORK]
        return service


def get_value(config: dict, key, default=None):
    val = config.get(key)
    if val is None or val == '':
        return default
    return val


# "${KEY:-default}:container" so a user can change the host port in .env without regenerating compose
def port_mapping(key, default, container_port):
    return f"${{{key}:-{default}}}:{container_port}"


def env_fallback(key, default):
    return f"${{{key}:-{default}}}"


# A custom data directory becomes a bind mount; the default stays a named volume
def data_volume(config: dict, key, default_dir, volume_name, mount_point):
    data_dir = get_value(config, key)
    if data_dir and data_dir != default_dir:
        return f"{data_dir}:{mount_point}", None
    return f"{volume_name}:{mount_point}", volume_name


def is_testnet(config: dict):
    return get_value(config, 'KASPA_NETWORK', 'mainnet') == 'testnet'


def is_public_node(config: dict):
    return is_truthy(config.get('PUBLIC_NODE'))
