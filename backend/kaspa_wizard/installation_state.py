import os
import sys
import json

from .paths import get_paths
from .utils import get_current_utc_time, read_json_file, write_json_file, is_truthy
from .configs.user_config import STATE_VERSION
from .configs.str_constants import PHASE_INSTALLING, PHASE_COMPLETE
from .exceptions import StateNotFound

"""

.kaspa-aio/installation-state.json records what was installed. The dashboard and the wizard's
mode detection both read it, so a file that doesn't have the expected shape is treated as absent.

"""

REQUIRED_FIELDS = ['version', 'installedAt', 'lastModified', 'phase', 'profiles', 'configuration', 'services', 'summary']
SUMMARY_FIELDS = ['total', 'running', 'stopped', 'missing']


def _state_path(root=None):
    return get_paths(root)['installation_state']


def is_valid_state(state):
    if not isinstance(state, dict):
        return False
    if any(k not in state for k in REQUIRED_FIELDS):
        return False
    profiles = state['profiles']
    if not isinstance(profiles, dict) or not isinstance(profiles.get('selected'), list) or not isinstance(profiles.get('count'), int):
        return False
    if not isinstance(state['configuration'], dict) or not isinstance(state['services'], list):
        return False
    summary = state['summary']
    if not isinstance(summary, dict) or any(not isinstance(summary.get(k), int) for k in SUMMARY_FIELDS):
        return False
    return True


def read_state(root=None):
    path = _state_path(root)
    try:
        state = read_json_file(path)
    except (json.JSONDecodeError, OSError) as e:
        print(f"[STATE] Could not read installation state: {e}", file=sys.stderr)
        return None
    if state is None:
        return None
    if not is_valid_state(state):
        print(f"[STATE] Ignoring malformed installation state at {path}", file=sys.stderr)
        return None
    return state


def write_state(state: dict, root=None):
    state = {**state, 'lastModified': get_current_utc_time()}
    write_json_file(_state_path(root), state)
    return state


# Shallow merge into the existing state
def update_state(updates: dict, root=None):
    state = read_state(root)
    if state is None:
        raise StateNotFound("No installation state to update")
    return write_state({**state, **updates}, root)


def has_installation(root=None):
    state = read_state(root)
    return state is not None and state['phase'] == PHASE_COMPLETE


def create_minimal_state(profiles, config: dict):
    now = get_current_utc_time()
    return {
        'version': STATE_VERSION,
        'installedAt': now,
        'lastModified': now,
        'phase': PHASE_INSTALLING,
        'profiles': {'selected': list(profiles), 'count': len(profiles)},
        'configuration': summarize_configuration(config, profiles),
        'services': [],
        'summary': {'total': 0, 'running': 0, 'stopped': 0, 'missing': 0},
    }


# Just the facts the dashboard needs; no passwords
def summarize_configuration(config: dict, profiles):
    return {
        'network': config.get('KASPA_NETWORK') or 'mainnet',
        'publicNode': is_truthy(config.get('PUBLIC_NODE')),
        'hasIndexers': 'indexer-services' in profiles,
        'hasArchive': 'archive-node' in profiles,
        'hasMining': 'mining' in profiles,
    }


def set_wizard_running(running: bool, profiles=None, config=None, root=None):
    state = read_state(root)
    if state is None:
        if not running:
            return None
        state = create_minimal_state(profiles or [], config or {})
    state['wizardRunning'] = running
    return write_state(state, root)


# Called once docker reports back after an install
def save_installation_state(profiles, config: dict, validation: dict, root=None):
    existing = read_state(root)
    services = [{
        'name': x['name'],
        'running': x['running'],
        'exists': x['exists'],
        'status': x['status'],
    } for x in validation.get('services', [])]
    state = {
        **(existing or {}),
        'version': STATE_VERSION,
        'installedAt': existing['installedAt'] if existing else get_current_utc_time(),
        'phase': PHASE_COMPLETE,
        'profiles': {'selected': list(profiles), 'count': len(profiles)},
        'configuration': summarize_configuration(config, profiles),
        'services': services,
        'summary': dict(validation.get('summary') or {'total': 0, 'running': 0, 'stopped': 0, 'missing': 0}),
        'wizardRunning': False,
    }
    return write_state(state, root)


def clear_state(root=None):
    path = _state_path(root)
    if os.path.exists(path):
        os.remove(path)
        return True
    return False
