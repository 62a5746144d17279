import json
import os

import pytest

from kaspa_wizard import installation_state as istate
from kaspa_wizard.paths import get_paths
from kaspa_wizard.exceptions import StateNotFound


def _validation(running=True):
    return {
        'services': [{'name': 'kaspa-node', 'exists': True, 'running': running, 'status': 'running' if running else 'exited'}],
        'summary': {'total': 1, 'running': 1 if running else 0, 'stopped': 0 if running else 1, 'missing': 0},
    }


def test_no_state_file(project_root):
    assert istate.read_state(project_root) is None
    assert not istate.has_installation(project_root)


def test_save_after_install(project_root, home_node_config):
    state = istate.save_installation_state(['core'], home_node_config, _validation(), project_root)
    assert state['phase'] == 'complete'
    assert state['profiles'] == {'selected': ['core'], 'count': 1}
    assert state['configuration']['network'] == 'mainnet'
    assert state['summary']['running'] == 1
    assert istate.has_installation(project_root)

    again = istate.save_installation_state(['core'], home_node_config, _validation(False), project_root)
    assert again['installedAt'] == state['installedAt']
    assert again['summary']['stopped'] == 1


def test_passwords_are_not_recorded(project_root):
    config = {'POSTGRES_PASSWORD': 'secret-secret-secret', 'KASPA_NETWORK': 'testnet'}
    istate.save_installation_state(['core', 'indexer-services'], config, _validation(), project_root)
    with open(get_paths(project_root)['installation_state']) as fhand:
        assert 'secret-secret-secret' not in fhand.read()


def test_malformed_state_is_ignored(project_root):
    path = get_paths(project_root)['installation_state']
    os.makedirs(os.path.dirname(path))
    with open(path, 'w') as fhand:
        json.dump({'version': '1.0.0', 'phase': 'complete'}, fhand)
    assert istate.read_state(project_root) is None

    with open(path, 'w') as fhand:
        fhand.write('{not json')
    assert istate.read_state(project_root) is None


def test_update_requires_existing_state(project_root):
    with pytest.raises(StateNotFound):
        istate.update_state({'phase': 'error'}, project_root)


def test_wizard_running_flag(project_root, home_node_config):
    assert istate.set_wizard_running(False, root=project_root) is None

    state = istate.set_wizard_running(True, ['core'], home_node_config, project_root)
    assert state['wizardRunning']
    assert state['phase'] == 'installing'
    # Mid-install isn't an installation yet
    assert not istate.has_installation(project_root)

    assert istate.update_state({'phase': 'error'}, project_root)['phase'] == 'error'


def test_clear_state(project_root, home_node_config):
    istate.save_installation_state(['core'], home_node_config, _validation(), project_root)
    assert istate.clear_state(project_root)
    assert not istate.clear_state(project_root)
