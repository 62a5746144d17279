import socket
from collections import namedtuple

import pytest

from kaspa_wizard import system_check
from kaspa_wizard.docker_manager import CommandResult

GB = 1024 ** 3

FakeMemory = namedtuple('FakeMemory', ['total', 'available'])
FakeDisk = namedtuple('FakeDisk', ['total', 'used', 'free'])


@pytest.fixture
def docker_commands(monkeypatch):
    """Maps the docker subcommand to (returncode, stdout)."""
    answers = {
        '--version': (0, 'Docker version 27.3.1, build ce12230\n'),
        'compose': (0, 'Docker Compose version v2.29.7\n'),
    }

    def fake_run_cmd(argv, cwd=None, timeout=None):
        code, out = answers[argv[1]]
        return CommandResult(argv=list(argv), returncode=code, stdout=out, stderr='' if code == 0 else 'not found')

    monkeypatch.setattr(system_check, 'run_cmd', fake_run_cmd)
    return answers


@pytest.fixture
def machine(monkeypatch):
    specs = {'memory': 16 * GB, 'cpu': 8, 'disk': 500 * GB}
    monkeypatch.setattr(system_check.psutil, 'virtual_memory', lambda: FakeMemory(specs['memory'], specs['memory'] // 2))
    monkeypatch.setattr(system_check.psutil, 'cpu_count', lambda logical=True: specs['cpu'])
    monkeypatch.setattr(system_check.psutil, 'disk_usage', lambda path: FakeDisk(1000 * GB, 1000 * GB - specs['disk'], specs['disk']))
    return specs


def test_docker_versions(docker_commands):
    assert system_check.check_docker()['version'] == '27.3.1'
    assert system_check.check_docker_compose()['version'] == '2.29.7'


def test_docker_missing(docker_commands):
    docker_commands['--version'] = (127, '')
    result = system_check.check_docker()
    assert not result['installed']
    assert 'remediation' in result


def test_resources_ok(machine, tmp_path):
    resources = system_check.check_system_resources(str(tmp_path))
    assert resources['memory']['meetsMinimum']
    assert resources['memory']['totalGB'] == '16.00'
    assert resources['cpu']['message'] == 'CPU: 8 cores - OK'
    assert resources['disk']['availableGB'] == '500.00'


def test_small_machine_warns(machine, tmp_path):
    machine['memory'] = 2 * GB
    machine['cpu'] = 1
    resources = system_check.check_system_resources(str(tmp_path))
    assert not resources['memory']['meetsMinimum']
    assert 'WARNING' in resources['cpu']['message']


def test_disk_check_failure(machine, monkeypatch, tmp_path):
    def broken(path):
        raise OSError('no such device')
    monkeypatch.setattr(system_check.psutil, 'disk_usage', broken)
    resources = system_check.check_system_resources(str(tmp_path))
    assert resources['disk'] == {'meetsMinimum': None, 'message': 'Unable to check disk space'}


def test_port_in_use():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('0.0.0.0', 0))
    sock.listen(1)
    port = sock.getsockname()[1]
    try:
        result = system_check.check_port_availability([port])
        assert not result[str(port)]['available']
        assert result[str(port)]['message'] == f"Port {port} is already in use"
    finally:
        sock.close()


def test_free_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('0.0.0.0', 0))
    port = sock.getsockname()[1]
    sock.close()
    assert system_check.is_port_available(port)['available']


class TestFullCheck:
    def test_success(self, docker_commands, machine, app_context):
        result = system_check.run_full_check()
        assert result['summary'] == {'status': 'success', 'message': 'All system checks passed', 'canProceed': True}
        assert result['ports'] == {}

    def test_resource_warning_can_still_proceed(self, docker_commands, machine, app_context):
        machine['disk'] = 10 * GB
        summary = system_check.run_full_check()['summary']
        assert summary['status'] == 'warning'
        assert summary['canProceed']

    def test_no_compose_blocks(self, docker_commands, machine, app_context):
        docker_commands['compose'] = (1, '')
        summary = system_check.run_full_check()['summary']
        assert summary['status'] == 'error'
        assert not summary['canProceed']
