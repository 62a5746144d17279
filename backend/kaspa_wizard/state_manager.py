import os
import sys
import json
import time
import shutil

from .paths import get_paths
from .utils import get_current_utc_time, get_unique_id, seconds_since, read_json_file, write_json_file
from .configs.user_config import STATE_VERSION, MAX_STATE_HISTORY, MAX_RESUME_AGE_HOURS
from .configs.str_constants import PHASE_COMPLETE
from .exceptions import StateNotFound, InvalidStateError


SNAPSHOT_PREFIX = 'state-'


"""

The wizard's own progress, so a user who closes the browser (or whose machine reboots mid-sync)
can pick up where they were. Every save also drops a snapshot in .kaspa-aio/state-history.

"""

class WizardStateManager():

    def __init__(self, root=None) -> None:
        paths = get_paths(root)
        self.state_file = paths['wizard_state']
        self.history_dir = paths['state_history']

    def create_initial_state(self):
        now = get_current_utc_time()
        return {
            'installationId': f"install-{int(time.time() * 1000)}",
            'version': STATE_VERSION,
            'startedAt': now,
            'lastActivity': now,
            'currentStep': 0,
            'completedSteps': [],
            'phase': 'preparing',  # preparing, building, starting, syncing, validating, complete
            'profiles': {
                'selected': [],
                'configuration': {},
            },
            'services': [],
            'syncOperations': [],
            'userDecisions': [],
            'resumable': True,
            'resumePoint': 'welcome',
            'backgroundTasks': [],
        }

    def save_state(self, state: dict):
        if not isinstance(state, dict):
            raise InvalidStateError()
        state['lastActivity'] = get_current_utc_time()
        write_json_file(self.state_file, state)
        self._snapshot(state)
        return {'timestamp': state['lastActivity'], 'stateFile': self.state_file, 'state': state}

    # None when there is nothing saved (or it can't be parsed)
    def load_state(self):
        try:
            state = read_json_file(self.state_file)
        except json.JSONDecodeError as e:
            print(f"[STATE] Wizard state is corrupt: {e}", file=sys.stderr)
            return None
        if state is not None and not isinstance(state, dict):
            print(f"[STATE] Ignoring wizard state of type {type(state).__name__}", file=sys.stderr)
            return None
        return state

    # Saved states may be partial; missing or mistyped keys fall back to the initial values
    def _with_defaults(self, state):
        full = self.create_initial_state()
        for key, value in state.items():
            if isinstance(full.get(key), (list, dict)) and not isinstance(value, type(full[key])):
                continue
            full[key] = value
        return full

    def _load_or_initial(self):
        state = self.load_state()
        return self._with_defaults(state) if state else self.create_initial_state()

    def _load_or_raise(self):
        state = self.load_state()
        if state is None:
            raise StateNotFound()
        return self._with_defaults(state)

    def can_resume(self):
        state = self.load_state()
        if not state:
            return {'canResume': False, 'reason': 'No saved state found'}

        if state.get('phase') == PHASE_COMPLETE:
            return {'canResume': False, 'reason': 'Installation already complete'}

        if not state.get('resumable'):
            return {'canResume': False, 'reason': 'Installation marked as non-resumable'}

        hours = seconds_since(state['lastActivity']) / 3600
        if hours > MAX_RESUME_AGE_HOURS:
            return {
                'canResume': False,
                'reason': f"State is too old (>{MAX_RESUME_AGE_HOURS} hours)",
                'hoursSinceActivity': int(hours),
            }

        return {
            'canResume': True,
            'state': state,
            'hoursSinceActivity': int(hours),
            'lastActivity': state['lastActivity'],
            'currentStep': state.get('currentStep'),
            'phase': state.get('phase'),
            'backgroundTasks': state.get('backgroundTasks', []),
        }

    def update_step(self, step_number, step_name):
        state = self._load_or_initial()
        state['currentStep'] = step_number
        state['resumePoint'] = step_name
        if step_name not in state['completedSteps']:
            state['completedSteps'].append(step_name)
        return self.save_state(state)

    def update_profiles(self, selected, configuration=None):
        state = self._load_or_initial()
        state['profiles'] = {'selected': list(selected), 'configuration': configuration or {}}
        return self.save_state(state)

    def update_service_status(self, name, status, details=None):
        state = self._load_or_initial()
        matches = [x for x in state['services'] if x['name'] == name]
        if len(matches):
            service = matches[0]
        else:
            service = {'name': name, 'status': 'pending', 'logs': []}
            state['services'].append(service)
        service.update(details or {})
        service['status'] = status
        service['lastUpdated'] = get_current_utc_time()
        return self.save_state(state)

    def _new_sync_operation(self, operation: dict):
        return {
            'id': f"sync-{get_unique_id()}",
            'status': 'pending',
            'progress': 0,
            'startedAt': get_current_utc_time(),
            'canContinueInBackground': operation.get('canContinueInBackground', True) is not False,
            **operation,
        }

    def add_sync_operation(self, operation: dict):
        state = self._load_or_initial()
        sync_op = self._new_sync_operation(operation)
        state['syncOperations'].append(sync_op)
        result = self.save_state(state)
        return {**result, 'operation': sync_op}

    def update_sync_operation(self, sync_id, updates: dict):
        state = self._load_or_raise()
        matches = [x for x in state.get('syncOperations', []) if x['id'] == sync_id]
        if not len(matches):
            raise StateNotFound(f"Sync operation '{sync_id}' not found")
        matches[0].update(updates)
        matches[0]['lastUpdated'] = get_current_utc_time()
        return self.save_state(state)

    def record_decision(self, decision, context=None):
        state = self._load_or_initial()
        state['userDecisions'].append({
            'timestamp': get_current_utc_time(),
            'decision': decision,
            'context': context,
        })
        return self.save_state(state)

    # A task with a type is also tracked as a sync operation
    def add_background_task(self, task_id, task_info=None):
        state = self._load_or_initial()
        if task_id not in state['backgroundTasks']:
            state['backgroundTasks'].append(task_id)
        if task_info and task_info.get('type'):
            state['syncOperations'].append(self._new_sync_operation({**task_info, 'id': task_id}))
        return self.save_state(state)

    def remove_background_task(self, task_id):
        state = self._load_or_raise()
        state['backgroundTasks'] = [x for x in state.get('backgroundTasks', []) if x != task_id]
        return self.save_state(state)

    def update_phase(self, phase):
        state = self._load_or_initial()
        state['phase'] = phase
        if phase == PHASE_COMPLETE:
            state['resumable'] = False
        return self.save_state(state)

    def mark_complete(self):
        state = self._load_or_raise()
        state['phase'] = PHASE_COMPLETE
        state['resumable'] = False
        state['completedAt'] = get_current_utc_time()
        return self.save_state(state)

    def clear_state(self):
        existed = os.path.exists(self.state_file)
        if existed:
            os.remove(self.state_file)
        shutil.rmtree(self.history_dir, ignore_errors=True)
        return {'message': 'Wizard state cleared' if existed else 'No state to clear'}

    #
    # Snapshots
    #

    def _snapshot(self, state):
        os.makedirs(self.history_dir, exist_ok=True)
        # Microseconds so that two saves in the same request don't collide
        stamp = time.time_ns() // 1000
        write_json_file(os.path.join(self.history_dir, f"{SNAPSHOT_PREFIX}{stamp}.json"), state)
        self._cleanup_snapshots()

    def _list_snapshots(self):
        if not os.path.isdir(self.history_dir):
            return []
        snapshots = []
        for name in os.listdir(self.history_dir):
            if not name.startswith(SNAPSHOT_PREFIX) or not name.endswith('.json'):
                continue
            try:
                stamp = int(name[len(SNAPSHOT_PREFIX):-len('.json')])
            except ValueError:
                continue
            snapshots.append((stamp, os.path.join(self.history_dir, name)))
        return sorted(snapshots, reverse=True)

    def _cleanup_snapshots(self):
        for _, path in self._list_snapshots()[MAX_STATE_HISTORY:]:
            try:
                os.remove(path)
            except OSError as e:
                print(f"[STATE] Could not remove old snapshot {path}: {e}", file=sys.stderr)

    def get_state_history(self):
        history = []
        for stamp, path in self._list_snapshots():
            entry = {'timestamp': stamp, 'date': time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(stamp / 1e6))}
            try:
                snapshot = read_json_file(path, default={})
                entry.update({
                    'phase': snapshot.get('phase'),
                    'currentStep': snapshot.get('currentStep'),
                    'profiles': (snapshot.get('profiles') or {}).get('selected', []),
                })
            except json.JSONDecodeError:
                entry['error'] = 'Failed to read snapshot'
            history.append(entry)
        return history

    def get_state_summary(self):
        state = self._load_or_raise()
        return {
            'installationId': state.get('installationId'),
            'startedAt': state.get('startedAt'),
            'lastActivity': state.get('lastActivity'),
            'currentStep': state.get('currentStep'),
            'phase': state.get('phase'),
            'profiles': (state.get('profiles') or {}).get('selected', []),
            'servicesCount': len(state.get('services', [])),
            'syncOperationsCount': len(state.get('syncOperations', [])),
            'backgroundTasksCount': len(state.get('backgroundTasks', [])),
            'resumable': state.get('resumable'),
            'completedSteps': state.get('completedSteps', []),
        }
