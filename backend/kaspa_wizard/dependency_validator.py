import sys
import time
import socket
import requests
from urllib.parse import urlparse
from concurrent.futures import ThreadPoolExecutor

from .configs.conn_config import CONNECTIVITY_DNS_HOST, CONNECTIVITY_HTTP_URL, CONNECTIVITY_CDN_URLS
from .configs.user_config import DEPENDENCY_CHECK_TIMEOUT

"""

Checks that the external things a service needs at runtime (remote indexers, CDNs, the public
wRPC node) can be reached from this machine before we start it.

"""

USER_AGENT = 'Kaspa-AIO-Dependency-Validator/1.0'

# Timeouts are in seconds
SERVICE_DEPENDENCIES = {
    'kaspa-explorer': [
        {'name': 'Google Fonts API', 'url': 'https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap', 'type': 'stylesheet', 'critical': False, 'timeout': 5},
        {'name': 'Google Fonts Static', 'url': 'https://fonts.gstatic.com', 'type': 'font-cdn', 'critical': False, 'timeout': 5},
        {'name': 'jsDelivr CDN', 'url': 'https://cdn.jsdelivr.net', 'type': 'script-cdn', 'critical': False, 'timeout': 5},
        {'name': 'Kaspa API', 'url': 'https://api.kaspa.org/info', 'type': 'api', 'critical': True, 'timeout': 10},
    ],
    'kasia-app': [
        {'name': 'Kasia Indexer API', 'url': 'https://indexer.kasia.fyi/health', 'type': 'api', 'critical': True, 'timeout': 10},
        {'name': 'Kasia wRPC Node', 'url': 'wss://wrpc.kasia.fyi', 'type': 'websocket', 'critical': True, 'timeout': 10},
    ],
    'k-social': [
        {'name': 'K-Social Indexer API', 'url': 'https://indexer.kaspatalk.net/health', 'type': 'api', 'critical': True, 'timeout': 10},
    ],
    'simply-kaspa-indexer': [
        {'name': 'Kaspa Node RPC', 'url': 'http://kaspa-node:16110', 'type': 'rpc', 'critical': True, 'timeout': 5, 'internal': True},
    ],
    'kasia-indexer': [
        {'name': 'Kaspa Node wRPC', 'url': 'ws://kaspa-node:17110', 'type': 'websocket', 'critical': True, 'timeout': 5, 'internal': True},
    ],
}

# Statuses that still prove a websocket / rpc endpoint is listening
PROBE_OK_STATUSES = (400, 404, 426)


def _http_equivalent(url):
    parsed = urlparse(url)
    scheme = {'wss': 'https', 'ws': 'http'}.get(parsed.scheme, parsed.scheme)
    return parsed._replace(scheme=scheme).geturl()


def _head(url, timeout):
    return requests.head(url, timeout=timeout, allow_redirects=True, headers={'User-Agent': USER_AGENT})


def validate_http_dependency(dependency, timeout_multiplier=1):
    timeout = dependency.get('timeout', DEPENDENCY_CHECK_TIMEOUT) * timeout_multiplier
    try:
        response = _head(dependency['url'], timeout)
    except requests.exceptions.Timeout:
        return {'available': False, 'status_code': None, 'error': f"Request timeout after {timeout}s"}
    except requests.exceptions.ConnectionError as e:
        return {'available': False, 'status_code': None, 'error': f"Connection failed: {e}"}
    except requests.exceptions.RequestException as e:
        return {'available': False, 'status_code': None, 'error': str(e)}

    available = 200 <= response.status_code < 400
    return {
        'available': available,
        'status_code': response.status_code,
        'error': None if available else f"HTTP {response.status_code}",
    }


# DNS first, then an HTTP request to the same host; a websocket server answering 400/404/426 is up
def validate_socket_dependency(dependency, timeout_multiplier=1):
    timeout = dependency.get('timeout', DEPENDENCY_CHECK_TIMEOUT) * timeout_multiplier
    parsed = urlparse(dependency['url'])
    try:
        socket.getaddrinfo(parsed.hostname, parsed.port)
    except socket.gaierror as e:
        return {'available': False, 'status_code': None, 'error': f"DNS lookup failed (ENOTFOUND): {e}"}

    try:
        response = _head(_http_equivalent(dependency['url']), timeout)
    except requests.exceptions.Timeout:
        return {'available': False, 'status_code': None, 'error': f"Connection timeout after {timeout}s"}
    except requests.exceptions.RequestException as e:
        return {'available': False, 'status_code': None, 'error': f"Connection failed: {e}"}

    code = response.status_code
    available = 200 <= code < 400 or code in PROBE_OK_STATUSES
    return {
        'available': available,
        'status_code': code,
        'error': None if available else f"HTTP {code}",
    }


def generate_guidance(dependency, result):
    guidance = {
        'severity': 'critical' if dependency.get('critical') else 'warning',
        'impact': 'Service may not function properly' if dependency.get('critical') else 'Some features may be limited',
        'suggestions': [],
    }
    error = (result.get('error') or '').lower()
    status_code = result.get('status_code') or 0

    if 'timeout' in error:
        guidance['suggestions'] += [
            'Check internet connectivity',
            'Verify firewall settings allow outbound connections',
            'Consider increasing timeout values if network is slow',
        ]
    elif 'enotfound' in error or 'dns' in error:
        guidance['suggestions'] += [
            'Check DNS resolution',
            'Verify internet connectivity',
            'Try using alternative DNS servers',
        ]
    elif status_code >= 500:
        guidance['suggestions'] += [
            'External service is experiencing issues',
            'Try again later',
            'Check service status page if available',
        ]
    elif status_code in (401, 403):
        guidance['suggestions'] += [
            'Access denied - check API keys or authentication',
            'Verify service configuration',
        ]

    dep_type = dependency.get('type')
    if dep_type == 'api' and dependency.get('critical'):
        guidance['suggestions'] += [
            'Consider using local indexer services instead of remote APIs',
            'Enable indexer-services profile for local data',
        ]
    elif dep_type in ('stylesheet', 'font-cdn'):
        guidance['suggestions'] += [
            'Service will work without external fonts/styles',
            'Consider hosting fonts locally for better reliability',
        ]
    elif dep_type == 'script-cdn':
        guidance['suggestions'] += [
            'Consider hosting JavaScript libraries locally',
            'Use npm packages instead of CDN versions',
        ]
    elif dep_type == 'websocket':
        guidance['suggestions'] += [
            'Check WebSocket proxy configuration',
            'Verify firewall allows WebSocket connections',
        ]
    return guidance


def validate_single_dependency(dependency, timeout_multiplier=1, include_guidance=True):
    start = time.time()
    if dependency['type'] in ('websocket', 'rpc'):
        result = validate_socket_dependency(dependency, timeout_multiplier)
    else:
        result = validate_http_dependency(dependency, timeout_multiplier)
    return {
        'name': dependency['name'],
        'url': dependency['url'],
        'type': dependency['type'],
        'critical': dependency['critical'],
        'available': result['available'],
        'status_code': result['status_code'],
        'response_time': int((time.time() - start) * 1000),
        'error': result['error'],
        'guidance': None if result['available'] or not include_guidance else generate_guidance(dependency, result),
    }


def validate_service_dependencies(service, timeout_multiplier=1, include_guidance=True):
    dependencies = SERVICE_DEPENDENCIES.get(service, [])
    if not len(dependencies):
        return {
            'service': service,
            'valid': True,
            'canStart': True,
            'dependencies': [],
            'summary': {'total': 0, 'available': 0, 'unavailable': 0, 'critical_failures': 0},
            'message': 'No external dependencies defined for this service',
        }

    print(f"[DEPENDENCIES] Validating {len(dependencies)} dependencies for {service}", file=sys.stderr)
    with ThreadPoolExecutor(max_workers=len(dependencies)) as executor:
        results = list(executor.map(lambda dep: validate_single_dependency(dep, timeout_multiplier, include_guidance), dependencies))

    unavailable = [x for x in results if not x['available']]
    critical_failures = len([x for x in unavailable if x['critical']])
    valid = critical_failures == 0
    if not valid:
        print(f"[DEPENDENCIES] {service}: {critical_failures} critical dependencies unavailable", file=sys.stderr)

    return {
        'service': service,
        'valid': valid,
        'canStart': valid,
        'dependencies': results,
        'summary': {
            'total': len(results),
            'available': len(results) - len(unavailable),
            'unavailable': len(unavailable),
            'critical_failures': critical_failures,
        },
        'message': 'All critical dependencies are available' if valid else f"{critical_failures} critical dependencies are unavailable",
    }


def test_internet_connectivity():
    details = []

    dns_ok = False
    try:
        socket.getaddrinfo(CONNECTIVITY_DNS_HOST, None)
        dns_ok = True
        details.append({'test': 'DNS Resolution', 'status': 'success', 'message': 'DNS working'})
    except socket.gaierror as e:
        details.append({'test': 'DNS Resolution', 'status': 'failed', 'message': str(e)})

    http = validate_http_dependency({'url': CONNECTIVITY_HTTP_URL, 'timeout': 5})
    details.append({
        'test': 'HTTP Connectivity',
        'status': 'success' if http['available'] else 'failed',
        'message': 'HTTP working' if http['available'] else http['error'],
    })

    cdn_success = 0
    for url in CONNECTIVITY_CDN_URLS:
        cdn = validate_http_dependency({'url': url, 'timeout': 5})
        if cdn['available']:
            cdn_success += 1
        details.append({
            'test': f"CDN Access ({urlparse(url).hostname})",
            'status': 'success' if cdn['available'] else 'failed',
            'message': 'Accessible' if cdn['available'] else cdn['error'],
        })

    return {
        'connected': dns_ok and http['available'],
        'partial': dns_ok or http['available'],
        'cdn_available': cdn_success > 0,
        'results': {
            'dns_resolution': dns_ok,
            'http_connectivity': http['available'],
            'cdn_accessibility': cdn_success > 0,
            'details': details,
        },
    }


def generate_overall_recommendations(service_results, connectivity):
    recommendations = []
    if not connectivity['connected']:
        recommendations.append({
            'priority': 'critical',
            'category': 'connectivity',
            'title': 'Internet Connectivity Issues',
            'message': 'Basic internet connectivity is not working',
            'actions': [
                'Check network connection',
                'Verify DNS settings',
                'Check firewall configuration',
                'Contact network administrator if needed',
            ],
        })

    if not connectivity['cdn_available']:
        recommendations.append({
            'priority': 'warning',
            'category': 'cdn',
            'title': 'CDN Access Limited',
            'message': 'Some CDN services are not accessible',
            'actions': [
                'External fonts and scripts may not load',
                'Consider hosting assets locally',
                'Check if corporate firewall blocks CDNs',
            ],
        })

    failed = [x for x in service_results if not x['valid']]
    if len(failed):
        recommendations.append({
            'priority': 'high',
            'category': 'services',
            'title': 'Service Dependencies Unavailable',
            'message': f"{len(failed)} services have critical dependency failures",
            'actions': [
                'Review individual service dependency reports',
                'Consider using local services instead of remote APIs',
                'Enable indexer-services profile for local data processing',
            ],
        })

    app_services = ('kaspa-explorer', 'kasia-app', 'k-social')
    if any(x['service'] in app_services for x in failed):
        recommendations.append({
            'priority': 'high',
            'category': 'configuration',
            'title': 'User Applications May Need Local Services',
            'message': 'Remote APIs are unavailable for user applications',
            'actions': [
                'Enable indexer-services profile to use local indexers',
                'Enable core profile to run local Kaspa node',
                'This will provide local alternatives to remote services',
            ],
        })
    return recommendations


def validate_multiple_services(services, timeout_multiplier=1, include_guidance=True):
    connectivity = test_internet_connectivity()
    results = [validate_service_dependencies(x, timeout_multiplier, include_guidance) for x in services]
    total_critical = sum(x['summary']['critical_failures'] for x in results)
    return {
        'valid': total_critical == 0 and connectivity['connected'],
        'connectivity': connectivity,
        'services': results,
        'summary': {
            'services_tested': len(services),
            'services_valid': len([x for x in results if x['valid']]),
            'total_critical_failures': total_critical,
            'internet_connected': connectivity['connected'],
            'cdn_available': connectivity['cdn_available'],
        },
        'recommendations': generate_overall_recommendations(results, connectivity),
    }


def get_service_dependency_summary(service):
    result = validate_service_dependencies(service)
    return {
        'service': service,
        'status': 'healthy' if result['valid'] else 'issues',
        'critical_issues': result['summary']['critical_failures'],
        'total_dependencies': result['summary']['total'],
        'available_dependencies': result['summary']['available'],
        'message': result['message'],
    }


# Which services to check before starting the given profiles
def services_for_profiles(profiles):
    services = []
    if 'kaspa-user-applications' in profiles:
        services += ['kaspa-explorer', 'kasia-app', 'k-social']
    if 'indexer-services' in profiles:
        services += ['simply-kaspa-indexer', 'kasia-indexer']
    return services
