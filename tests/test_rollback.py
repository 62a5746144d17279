import os

import pytest

from kaspa_wizard.rollback_manager import RollbackManager, find_differences
from kaspa_wizard.state_manager import WizardStateManager
from kaspa_wizard.installation_state import save_installation_state, read_state
from kaspa_wizard.paths import get_paths
from kaspa_wizard.exceptions import BackupNotFound, CheckpointNotFound


@pytest.fixture
def manager(project_root):
    return RollbackManager(project_root)


def _write_env(root, content):
    with open(get_paths(root)['env'], 'w') as fhand:
        fhand.write(content)


def _read_env(root):
    with open(get_paths(root)['env']) as fhand:
        return fhand.read()


def test_find_differences():
    diff = find_differences({'A': '1', 'B': '2'}, {'B': '3', 'C': '4'})
    assert diff == {
        'added': [{'key': 'C', 'value': '4'}],
        'removed': [{'key': 'A', 'value': '1'}],
        'changed': [{'key': 'B', 'oldValue': '2', 'newValue': '3'}],
    }


class TestVersions:
    def test_save_without_env_writes_config(self, manager, project_root):
        result = manager.save_version({'KASPA_NETWORK': 'mainnet'}, ['core'], {'action': 'install'})
        assert result['versionId'].startswith('v-')
        assert manager.load_version_config(result['versionId']) == {'KASPA_NETWORK': 'mainnet'}
        assert result['entry']['metadata'] == {'action': 'install', 'configKeys': ['KASPA_NETWORK']}

    def test_history_is_newest_first(self, manager, project_root):
        _write_env(project_root, 'KASPA_NETWORK=mainnet\n')
        first = manager.save_version({}, ['core'])
        second = manager.save_version({}, ['core'])
        history = manager.get_history()
        assert [x['versionId'] for x in history['entries']] == [second['versionId'], first['versionId']]
        assert history['entries'][0]['canRestore']
        assert history['entries'][0]['metadata']['action'] == 'manual-save'
        assert manager.get_history(limit=1)['total'] == 2

    def test_restore_backs_up_current_env_first(self, manager, project_root):
        _write_env(project_root, 'KASPA_NETWORK=mainnet\n')
        saved = manager.save_version({}, ['core'])
        _write_env(project_root, 'KASPA_NETWORK=testnet\n')

        result = manager.restore_version(saved['versionId'])
        assert result['requiresRestart']
        assert _read_env(project_root) == 'KASPA_NETWORK=mainnet\n'

        latest = manager.get_latest_version()
        assert latest['metadata']['action'] == 'pre-restore-backup'
        assert manager.load_version_config(latest['versionId']) == {'KASPA_NETWORK': 'testnet'}

    def test_undo_twice_returns_to_the_change(self, manager, project_root):
        _write_env(project_root, 'A=1\n')
        manager.save_version({}, ['core'])
        _write_env(project_root, 'A=2\n')

        manager.undo()
        assert _read_env(project_root) == 'A=1\n'
        manager.undo()
        assert _read_env(project_root) == 'A=2\n'

    def test_backup_current(self, manager, project_root):
        assert manager.backup_current({'action': 'config-save'}) is None
        assert manager.get_history()['total'] == 0

        _write_env(project_root, 'COMPOSE_PROFILES=core,mining\nKASPA_NETWORK=testnet\n')
        saved = manager.backup_current({'action': 'config-save'})
        assert saved['entry']['profiles'] == ['core', 'mining']
        assert saved['entry']['metadata']['action'] == 'config-save'

        _write_env(project_root, 'KASPA_NETWORK=mainnet\n')
        manager.undo()
        assert _read_env(project_root) == 'COMPOSE_PROFILES=core,mining\nKASPA_NETWORK=testnet\n'

    def test_undo_with_no_history(self, manager):
        with pytest.raises(BackupNotFound):
            manager.undo()

    def test_restore_unknown_version(self, manager):
        with pytest.raises(BackupNotFound):
            manager.restore_version('v-123')

    def test_compare(self, manager, project_root):
        _write_env(project_root, 'A=1\nB=2\n')
        v1 = manager.save_version({}, ['core'])
        _write_env(project_root, 'A=1\nB=3\n')
        v2 = manager.save_version({}, ['core', 'mining'])
        result = manager.compare_versions(v1['versionId'], v2['versionId'])
        assert result['differences']['changed'] == [{'key': 'B', 'oldValue': '2', 'newValue': '3'}]
        assert result['version2']['profiles'] == ['core', 'mining']

    def test_history_is_capped(self, manager, monkeypatch):
        monkeypatch.setattr('kaspa_wizard.rollback_manager.MAX_HISTORY_ENTRIES', 3)
        for i in range(5):
            manager.save_version({'N': i}, ['core'])
        assert manager.get_history()['total'] == 3
        backups = [x for x in os.listdir(manager.backup_dir) if x.startswith('.env.v-')]
        assert len(backups) == 3


class TestCheckpoints:
    def test_create_and_restore(self, manager):
        cp = manager.create_checkpoint('configure', {'profiles': ['core']})
        restored = manager.restore_checkpoint(cp['checkpointId'])
        assert restored['stage'] == 'configure'
        assert restored['data']['profiles'] == ['core']
        assert manager.get_checkpoints()[0]['age'] == 'just now'

    def test_delete(self, manager):
        cp = manager.create_checkpoint('review')
        manager.delete_checkpoint(cp['checkpointId'])
        assert manager.get_checkpoints() == []
        with pytest.raises(CheckpointNotFound):
            manager.restore_checkpoint(cp['checkpointId'])
        with pytest.raises(CheckpointNotFound):
            manager.delete_checkpoint(cp['checkpointId'])


class TestStartOver:
    def test_keeps_config_by_default(self, manager, project_root, home_node_config):
        _write_env(project_root, 'A=1\n')
        manager.save_version({}, ['core'])
        WizardStateManager(project_root).update_step(1, 'checklist')
        save_installation_state(['core'], home_node_config, {'services': [], 'summary': {'total': 0, 'running': 0, 'stopped': 0, 'missing': 0}}, project_root)

        manager.start_over()
        assert not os.path.exists(manager.backup_dir)
        assert os.path.exists(get_paths(project_root)['env'])
        assert WizardStateManager(project_root).load_state() is None
        assert read_state(project_root) is None

    def test_delete_config(self, manager, project_root):
        _write_env(project_root, 'A=1\n')
        result = manager.start_over(delete_config=True, clear_state=False)
        assert get_paths(project_root)['env'] in result['removed']
        assert not os.path.exists(get_paths(project_root)['env'])


def test_storage_usage(manager):
    assert manager.get_storage_usage()['fileCount'] == 0
    manager.save_version({'A': '1'}, ['core'])
    usage = manager.get_storage_usage()
    # The backup and history.json
    assert usage['fileCount'] == 2
    assert usage['totalSize'] > 0
