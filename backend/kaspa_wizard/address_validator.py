import re

"""

Structural checks for Kaspa addresses: prefix, bech32 alphabet and length.
No checksum verification; the browser does that before anything gets here.

"""

NETWORK_PREFIXES = {
    'mainnet': 'kaspa:',
    'testnet': 'kaspatest:',
    'devnet': 'kaspadev:',
    'simnet': 'kaspasim:',
}

VALID_PREFIXES = list(NETWORK_PREFIXES.values())

BECH32_CHARS = 'qpzry9x8gf2tvdw0s3jn54khce6mua7l'
ADDRESS_REGEX = re.compile(f"^(kaspa|kaspatest|kaspadev|kaspasim):[{BECH32_CHARS}]{{58,}}$")

MIN_ADDRESS_LENGTH = 64
MAX_ADDRESS_LENGTH = 90


def get_network_prefix(network):
    # testnet-10, testnet-11, ...
    if network and network.startswith('testnet'):
        network = 'testnet'
    return NETWORK_PREFIXES.get(network)


def detect_network_from_address(address):
    if not address:
        return None
    lower = address.strip().lower()
    # kaspa: is a prefix of nothing else since the colon comes right after
    for network, prefix in NETWORK_PREFIXES.items():
        if lower.startswith(prefix):
            return network
    return None


def validate_kaspa_address(address, network=None, network_aware=False):
    if not address or not isinstance(address, str):
        return {'valid': False, 'error': 'Address is required'}

    normalized = address.strip().lower()

    if not any(normalized.startswith(p) for p in VALID_PREFIXES):
        return {
            'valid': False,
            'error': f"Invalid address prefix. Must start with one of: {', '.join(VALID_PREFIXES)}"
        }

    detected = detect_network_from_address(normalized)

    if network_aware and network:
        expected = get_network_prefix(network)
        if expected and not normalized.startswith(expected):
            return {
                'valid': False,
                'network': detected,
                'error': f"Address is for {detected}, but configuration is set to {network}. Please use a {expected} address."
            }

    if not ADDRESS_REGEX.match(normalized):
        return {
            'valid': False,
            'network': detected,
            'error': f"Invalid address format. Kaspa addresses use bech32 encoding (characters: {BECH32_CHARS})."
        }

    if len(normalized) < MIN_ADDRESS_LENGTH or len(normalized) > MAX_ADDRESS_LENGTH:
        return {
            'valid': False,
            'network': detected,
            'error': f"Invalid address length: {len(normalized)}. Expected {MIN_ADDRESS_LENGTH}-{MAX_ADDRESS_LENGTH} characters."
        }

    return {'valid': True, 'network': detected, 'normalizedAddress': normalized}
