import os
import sys
import time
import shutil
from dotenv import dotenv_values

from .paths import get_paths
from .config_generator import load_env_file, format_env_value
from .utils import get_current_utc_time, format_age, format_bytes, read_json_file, write_json_file
from .configs.user_config import MAX_HISTORY_ENTRIES, MAX_CHECKPOINTS, DEFAULT_HISTORY_LIMIT
from .configs.str_constants import BACKUP_HISTORY_FILE, CHECKPOINTS_FILE, ENV_BACKUP_PREFIX
from .exceptions import BackupNotFound, CheckpointNotFound
from .state_manager import WizardStateManager
from . import installation_state

"""

Configuration history for undo / restore, kept in .kaspa-backups/:

    history.json           {"entries": [...]}, newest first, at most MAX_HISTORY_ENTRIES
    .env.v-<timestamp>     a copy of .env per entry
    checkpoints.json       {"checkpoints": [...]}, newest first, at most MAX_CHECKPOINTS
    checkpoint-<id>.json   whatever the wizard wanted to remember at that stage

"""


def _timestamp_id():
    return str(time.time_ns() // 1000)


def _env_content_from_config(config: dict, profiles):
    lines = [
        "# Kaspa All-in-One Configuration",
        f"# Generated: {get_current_utc_time()}",
        f"# Profiles: {', '.join(profiles or [])}",
        "",
    ]
    for key, value in (config or {}).items():
        lines.append(f"{key}={format_env_value(value)}")
    return '\n'.join(lines) + '\n'


def find_differences(config1: dict, config2: dict):
    return {
        'added': [{'key': k, 'value': config2[k]} for k in config2 if k not in config1],
        'removed': [{'key': k, 'value': config1[k]} for k in config1 if k not in config2],
        'changed': [{'key': k, 'oldValue': config1[k], 'newValue': config2[k]} for k in config1 if k in config2 and config1[k] != config2[k]],
    }


class RollbackManager():

    def __init__(self, root=None) -> None:
        self.root = root
        self.paths = get_paths(root)
        self.backup_dir = self.paths['backups']
        self.history_file = os.path.join(self.backup_dir, BACKUP_HISTORY_FILE)
        self.checkpoint_file = os.path.join(self.backup_dir, CHECKPOINTS_FILE)

    def _backup_path(self, filename):
        return os.path.join(self.backup_dir, filename)

    def _load_history(self):
        data = read_json_file(self.history_file, default=None)
        if not isinstance(data, dict) or not isinstance(data.get('entries'), list):
            return {'entries': []}
        return data

    def _load_checkpoints(self):
        data = read_json_file(self.checkpoint_file, default=None)
        if not isinstance(data, dict) or not isinstance(data.get('checkpoints'), list):
            return {'checkpoints': []}
        return data

    def _remove_quietly(self, path):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            print(f"[ROLLBACK] Could not remove {path}: {e}", file=sys.stderr)

    #
    # Versions
    #

    # Backs up the current .env (or, if there isn't one yet, the given config)
    def save_version(self, config: dict, profiles, metadata=None):
        os.makedirs(self.backup_dir, exist_ok=True)
        metadata = metadata or {}

        stamp = _timestamp_id()
        while os.path.exists(self._backup_path(f"{ENV_BACKUP_PREFIX}{stamp}")):
            stamp = _timestamp_id()
        version_id = f"v-{stamp}"
        backup_filename = f"{ENV_BACKUP_PREFIX}{stamp}"

        if os.path.exists(self.paths['env']):
            shutil.copyfile(self.paths['env'], self._backup_path(backup_filename))
        else:
            with open(self._backup_path(backup_filename), 'w') as fhand:
                fhand.write(_env_content_from_config(config, profiles))

        entry = {
            'versionId': version_id,
            'timestamp': get_current_utc_time(),
            'backupFilename': backup_filename,
            'profiles': list(profiles or []),
            'metadata': {
                **metadata,
                'configKeys': list((config or {}).keys()),
                'action': metadata.get('action', 'manual-save'),
            }
        }

        history = self._load_history()
        history['entries'].insert(0, entry)
        for old in history['entries'][MAX_HISTORY_ENTRIES:]:
            self._remove_quietly(self._backup_path(old['backupFilename']))
        history['entries'] = history['entries'][:MAX_HISTORY_ENTRIES]
        write_json_file(self.history_file, history)

        print(f"[ROLLBACK] Saved configuration version {version_id} ({entry['metadata']['action']})", file=sys.stderr)
        return {'versionId': version_id, 'timestamp': entry['timestamp'], 'entry': entry}

    # Call before overwriting .env so undo can bring it back; None when there is nothing yet
    def backup_current(self, metadata=None):
        current = load_env_file(self.paths['env'])
        if not current['success']:
            return None
        return self.save_version(current['config'], current['profiles'], metadata)

    def get_history(self, limit=DEFAULT_HISTORY_LIMIT):
        history = self._load_history()
        entries = []
        for entry in history['entries'][:limit]:
            path = self._backup_path(entry['backupFilename'])
            size = os.path.getsize(path) if os.path.exists(path) else 0
            entries.append({
                **entry,
                'size': size,
                'age': format_age(entry['timestamp']),
                'canRestore': size > 0,
            })
        return {'entries': entries, 'total': len(history['entries'])}

    def _get_entry(self, version_id):
        matches = [x for x in self._load_history()['entries'] if x['versionId'] == version_id]
        if not len(matches):
            raise BackupNotFound(f"Version '{version_id}' not found")
        return matches[0]

    def restore_version(self, version_id):
        entry = self._get_entry(version_id)
        backup_path = self._backup_path(entry['backupFilename'])
        if not os.path.exists(backup_path):
            raise BackupNotFound("Backup file not found")

        if os.path.exists(self.paths['env']):
            current = dotenv_values(self.paths['env'], interpolate=False)
            self.save_version(dict(current), entry['profiles'], {
                'action': 'pre-restore-backup',
                'restoringFrom': version_id,
            })

        shutil.copyfile(backup_path, self.paths['env'])
        print(f"[ROLLBACK] Restored .env from {version_id}", file=sys.stderr)
        return {
            'versionId': version_id,
            'timestamp': entry['timestamp'],
            'profiles': entry['profiles'],
            'requiresRestart': True,
        }

    def get_latest_version(self):
        entries = self._load_history()['entries']
        if not len(entries):
            raise BackupNotFound("No previous versions available")
        return entries[0]

    def undo(self):
        latest = self.get_latest_version()
        return self.restore_version(latest['versionId'])

    def load_version_config(self, version_id):
        entry = self._get_entry(version_id)
        path = self._backup_path(entry['backupFilename'])
        if not os.path.exists(path):
            return {}
        return {k: (v if v is not None else '') for k, v in dotenv_values(path, interpolate=False).items()}

    def compare_versions(self, version_id1, version_id2):
        v1 = self._get_entry(version_id1)
        v2 = self._get_entry(version_id2)
        differences = find_differences(self.load_version_config(version_id1), self.load_version_config(version_id2))
        return {
            'version1': {'versionId': v1['versionId'], 'timestamp': v1['timestamp'], 'profiles': v1['profiles']},
            'version2': {'versionId': v2['versionId'], 'timestamp': v2['timestamp'], 'profiles': v2['profiles']},
            'differences': differences,
        }

    #
    # Checkpoints
    #

    def _checkpoint_path(self, checkpoint_id):
        return self._backup_path(f"checkpoint-{checkpoint_id}.json")

    def create_checkpoint(self, stage, data=None):
        os.makedirs(self.backup_dir, exist_ok=True)
        timestamp = get_current_utc_time()
        checkpoint_id = f"cp-{_timestamp_id()}"
        while os.path.exists(self._checkpoint_path(checkpoint_id)):
            checkpoint_id = f"cp-{_timestamp_id()}"
        write_json_file(self._checkpoint_path(checkpoint_id), {
            'checkpointId': checkpoint_id,
            'timestamp': timestamp,
            'stage': stage,
            'data': {**(data or {}), 'timestamp': timestamp},
        })

        checkpoints = self._load_checkpoints()
        checkpoints['checkpoints'].insert(0, {'checkpointId': checkpoint_id, 'timestamp': timestamp, 'stage': stage})
        for old in checkpoints['checkpoints'][MAX_CHECKPOINTS:]:
            self._remove_quietly(self._checkpoint_path(old['checkpointId']))
        checkpoints['checkpoints'] = checkpoints['checkpoints'][:MAX_CHECKPOINTS]
        write_json_file(self.checkpoint_file, checkpoints)

        return {'checkpointId': checkpoint_id, 'timestamp': timestamp, 'stage': stage}

    def get_checkpoints(self):
        enriched = []
        for cp in self._load_checkpoints()['checkpoints']:
            payload = read_json_file(self._checkpoint_path(cp['checkpointId']), default={}) or {}
            enriched.append({**cp, 'age': format_age(cp['timestamp']), 'data': payload.get('data', {})})
        return enriched

    def restore_checkpoint(self, checkpoint_id):
        matches = [x for x in self._load_checkpoints()['checkpoints'] if x['checkpointId'] == checkpoint_id]
        if not len(matches):
            raise CheckpointNotFound()
        payload = read_json_file(self._checkpoint_path(checkpoint_id))
        if payload is None:
            raise CheckpointNotFound("Checkpoint file not found")
        return {
            'checkpointId': checkpoint_id,
            'stage': matches[0]['stage'],
            'data': payload.get('data', {}),
            'timestamp': matches[0]['timestamp'],
        }

    def delete_checkpoint(self, checkpoint_id):
        checkpoints = self._load_checkpoints()
        remaining = [x for x in checkpoints['checkpoints'] if x['checkpointId'] != checkpoint_id]
        if len(remaining) == len(checkpoints['checkpoints']):
            raise CheckpointNotFound()
        self._remove_quietly(self._checkpoint_path(checkpoint_id))
        write_json_file(self.checkpoint_file, {'checkpoints': remaining})
        return {'checkpointId': checkpoint_id}

    #
    # Everything else
    #

    def start_over(self, delete_config=False, clear_state=True):
        removed = []
        if os.path.isdir(self.backup_dir):
            shutil.rmtree(self.backup_dir)
            removed.append(self.backup_dir)

        if delete_config:
            for key in ('env', 'compose', 'compose_override'):
                if os.path.exists(self.paths[key]):
                    os.remove(self.paths[key])
                    removed.append(self.paths[key])

        if clear_state:
            WizardStateManager(self.root).clear_state()
            if installation_state.clear_state(self.root):
                removed.append(self.paths['installation_state'])
            removed.append(self.paths['wizard_state'])

        print(f"[ROLLBACK] Start over: removed {len(removed)} item(s)", file=sys.stderr)
        return {'message': 'All backups and history cleaned up', 'removed': removed}

    def get_storage_usage(self):
        total_size = 0
        file_count = 0
        if os.path.isdir(self.backup_dir):
            for name in os.listdir(self.backup_dir):
                path = os.path.join(self.backup_dir, name)
                if os.path.isfile(path):
                    total_size += os.path.getsize(path)
                    file_count += 1
        return {
            'totalSize': total_size,
            'fileCount': file_count,
            'totalSizeMB': f"{total_size / 1024 / 1024:.2f}",
            'formatted': format_bytes(total_size),
            'backupDir': self.backup_dir,
        }
