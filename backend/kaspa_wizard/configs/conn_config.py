from .settings import SETTINGS

"""

Public endpoints used when a user does not run a service locally (e.g., the apps without a local indexer).
Each can be overridden in settings.yml under "remote".

"""

_remote = SETTINGS.get('remote', {}) if isinstance(SETTINGS.get('remote'), dict) else {}

REMOTE_KASIA_INDEXER_URL = _remote.get('kasia_indexer', 'https://indexer.kasia.fyi/')
REMOTE_KSOCIAL_INDEXER_URL = _remote.get('k_social_indexer', 'https://indexer0.kaspatalk.net/')
REMOTE_KASPA_NODE_WBORSH_URL = _remote.get('kaspa_node_wborsh', 'wss://wrpc.kasia.fyi')
REMOTE_SIMPLY_KASPA_INDEXER_URL = _remote.get('simply_kaspa_indexer', 'https://api.kaspa.org')

# Addresses of the local services inside the compose network
LOCAL_KASIA_INDEXER_URL = 'http://kasia-indexer:8080/'
LOCAL_KSOCIAL_INDEXER_URL = 'http://k-indexer:8080/'
LOCAL_SIMPLY_KASPA_INDEXER_URL = 'http://simply-kaspa-indexer:8080'
LOCAL_KASPA_NODE_WBORSH_URL = 'ws://kaspa-node:17110'

# Probed by the connectivity check
CONNECTIVITY_DNS_HOST = _remote.get('dns_probe_host', 'google.com')
CONNECTIVITY_HTTP_URL = _remote.get('http_probe_url', 'https://www.google.com')
CONNECTIVITY_CDN_URLS = _remote.get('cdn_probe_urls', [
    'https://cdn.jsdelivr.net',
    'https://fonts.googleapis.com',
    'https://unpkg.com',
])
