import socket

import pytest
import requests

from kaspa_wizard import dependency_validator as dv


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def head(monkeypatch):
    """Answers HEAD requests from a {url: status or exception} table; anything else is a 200."""
    table = {}
    seen = []

    def fake_head(url, timeout):
        seen.append(url)
        answer = table.get(url, 200)
        if isinstance(answer, Exception):
            raise answer
        return FakeResponse(answer)

    monkeypatch.setattr(dv, '_head', fake_head)
    monkeypatch.setattr(dv.socket, 'getaddrinfo', lambda host, port: [('resolved',)])
    fake_head.table = table
    fake_head.seen = seen
    return fake_head


def test_http_statuses(head):
    head.table['https://a.example'] = 503
    head.table['https://b.example'] = 301
    assert dv.validate_http_dependency({'url': 'https://a.example'}) == {'available': False, 'status_code': 503, 'error': 'HTTP 503'}
    assert dv.validate_http_dependency({'url': 'https://b.example'})['available']


def test_http_timeout(head):
    head.table['https://slow.example'] = requests.exceptions.Timeout()
    result = dv.validate_http_dependency({'url': 'https://slow.example', 'timeout': 5}, timeout_multiplier=2)
    assert result['error'] == 'Request timeout after 10s'


@pytest.mark.parametrize('status', [400, 404, 426])
def test_websocket_upgrade_refusals_count_as_up(head, status):
    head.table['https://wrpc.kasia.fyi'] = status
    result = dv.validate_socket_dependency({'url': 'wss://wrpc.kasia.fyi', 'timeout': 5})
    assert result['available']
    assert head.seen == ['https://wrpc.kasia.fyi']


def test_websocket_server_error(head):
    head.table['http://kaspa-node:17110'] = 502
    assert not dv.validate_socket_dependency({'url': 'ws://kaspa-node:17110'})['available']


def test_dns_failure(head, monkeypatch):
    def no_dns(host, port):
        raise socket.gaierror(-2, 'Name or service not known')
    monkeypatch.setattr(dv.socket, 'getaddrinfo', no_dns)

    dependency = {'name': 'Kasia wRPC Node', 'url': 'wss://wrpc.kasia.fyi', 'type': 'websocket', 'critical': True}
    result = dv.validate_single_dependency(dependency)
    assert not result['available']
    assert 'ENOTFOUND' in result['error']
    assert result['guidance']['severity'] == 'critical'
    assert 'Check DNS resolution' in result['guidance']['suggestions']
    assert 'Check WebSocket proxy configuration' in result['guidance']['suggestions']
    assert head.seen == []


def test_guidance_for_optional_cdn():
    guidance = dv.generate_guidance({'type': 'font-cdn', 'critical': False}, {'error': 'HTTP 403', 'status_code': 403})
    assert guidance['severity'] == 'warning'
    assert guidance['suggestions'][0] == 'Access denied - check API keys or authentication'
    assert 'Service will work without external fonts/styles' in guidance['suggestions']


class TestServices:
    def test_service_without_dependencies(self, head):
        result = dv.validate_service_dependencies('timescaledb')
        assert result['canStart']
        assert result['summary']['total'] == 0

    def test_all_available(self, head):
        result = dv.validate_service_dependencies('kaspa-explorer')
        assert result['valid']
        assert result['summary'] == {'total': 4, 'available': 4, 'unavailable': 0, 'critical_failures': 0}
        assert all(x['guidance'] is None for x in result['dependencies'])

    def test_non_critical_failure_still_starts(self, head):
        head.table['https://cdn.jsdelivr.net'] = 500
        result = dv.validate_service_dependencies('kaspa-explorer')
        assert result['canStart']
        assert result['summary']['unavailable'] == 1

    def test_critical_failure_blocks_start(self, head):
        head.table['https://indexer.kaspatalk.net/health'] = requests.exceptions.ConnectionError('refused')
        result = dv.validate_service_dependencies('k-social')
        assert not result['canStart']
        assert result['message'] == '1 critical dependencies are unavailable'
        summary = dv.get_service_dependency_summary('k-social')
        assert summary['status'] == 'issues'

    def test_multiple_services(self, head):
        head.table['https://indexer.kaspatalk.net/health'] = 500
        result = dv.validate_multiple_services(['kasia-app', 'k-social'])
        assert not result['valid']
        assert result['connectivity']['connected']
        assert result['summary']['services_valid'] == 1
        categories = [x['category'] for x in result['recommendations']]
        assert categories == ['services', 'configuration']


def test_services_for_profiles():
    assert dv.services_for_profiles(['core']) == []
    assert dv.services_for_profiles(['kaspa-user-applications', 'indexer-services']) == [
        'kaspa-explorer', 'kasia-app', 'k-social', 'simply-kaspa-indexer', 'kasia-indexer',
    ]
