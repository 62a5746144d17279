import os

from kaspa_wizard.paths import get_paths
from kaspa_wizard import installation_state

from conftest import VALID_MAINNET_ADDRESS


def test_index(client):
    response = client.get('/')
    assert b'Kaspa All-in-One' in response.data


class TestProfilesApi:
    def test_list(self, client):
        response = client.get('/api/profiles')
        assert response.status_code == 200
        assert response.json['response'] == 'success'
        assert len(response.json['profiles']) == 5

    def test_one_and_unknown(self, client):
        assert client.get('/api/profiles/mining').json['profile']['id'] == 'mining'
        response = client.get('/api/profiles/lightning')
        assert response.status_code == 404
        assert response.json['response'] == 'failed'

    def test_validate_selection(self, client):
        response = client.post('/api/profiles/validate-selection', json={'profiles': ['core', 'archive-node']})
        assert not response.json['valid']
        assert response.json['conflicts'][0]['type'] == 'profile'

    def test_profiles_must_be_a_list(self, client):
        response = client.post('/api/profiles/requirements', json={'profiles': 'core'})
        assert response.status_code == 400

    def test_templates(self, client):
        ids = [x['id'] for x in client.get('/api/profiles/templates/all').json['templates']]
        assert 'home-node' in ids
        applied = client.post('/api/profiles/templates/home-node/apply', json={'baseConfig': {'X': '1'}}).json
        assert applied['config']['X'] == '1'
        assert client.get('/api/profiles/templates/nope').status_code == 404

    def test_custom_template_lifecycle(self, client, project_root):
        body = {'id': 'mine', 'name': 'Mine', 'description': 'd', 'profiles': ['core'], 'config': {'KASPA_NETWORK': 'mainnet'}}
        assert client.post('/api/profiles/templates', json=body).status_code == 200
        assert os.path.exists(get_paths(project_root)['custom_templates'])
        assert client.get('/api/profiles/templates/mine').json['template']['custom']
        assert client.delete('/api/profiles/templates/mine').status_code == 200
        assert client.delete('/api/profiles/templates/home-node').status_code == 400

    def test_developer_mode_apply(self, client):
        response = client.post('/api/profiles/developer-mode/apply', json={'config': {}, 'enabled': True})
        assert response.json['config']['LOG_LEVEL'] == 'debug'


class TestConfigApi:
    def test_validate_bare_config(self, client, home_node_config):
        response = client.post('/api/config/validate', json=home_node_config)
        assert response.json['valid']

    def test_save_writes_files(self, client, project_root, home_node_config):
        response = client.post('/api/config/save', json={'config': home_node_config, 'profiles': ['core']})
        assert response.status_code == 200
        assert response.json['versionId'] is None  # nothing to back up yet
        paths = get_paths(project_root)
        assert os.path.exists(paths['env'])
        assert os.path.exists(paths['compose'])

        loaded = client.get('/api/config/load').json
        assert loaded['profiles'] == ['core']
        assert loaded['config']['KASPA_NODE_RPC_PORT'] == '16110'

    def test_second_save_backs_up_the_first(self, client, home_node_config):
        client.post('/api/config/save', json={'config': {**home_node_config, 'KASPA_NETWORK': 'testnet'}, 'profiles': ['core']})
        response = client.post('/api/config/save', json={'config': home_node_config, 'profiles': ['core']})
        assert response.json['versionId'].startswith('v-')
        assert client.get('/api/config/load').json['config']['KASPA_NETWORK'] == 'mainnet'

        assert client.post('/api/rollback/undo').status_code == 200
        assert client.get('/api/config/load').json['config']['KASPA_NETWORK'] == 'testnet'

    def test_multiline_value_rejected(self, client, project_root, home_node_config):
        config = {**home_node_config, 'CONFIGURATION_TEMPLATE': 'custom\nKASPA_NETWORK=testnet'}
        response = client.post('/api/config/save', json={'config': config, 'profiles': ['core']})
        assert response.status_code == 400
        assert response.json['errors'][0]['field'] == 'CONFIGURATION_TEMPLATE'
        assert not os.path.exists(get_paths(project_root)['env'])

    def test_save_rejects_invalid(self, client, project_root):
        response = client.post('/api/config/save', json={'config': {}, 'profiles': ['core', 'mining']})
        assert response.status_code == 400
        assert response.json['errors'][0]['field'] == 'MINING_ADDRESS'
        assert not os.path.exists(get_paths(project_root)['env'])

    def test_load_without_env(self, client):
        assert client.get('/api/config/load').status_code == 404

    def test_generate(self, client):
        body = {'config': {'MINING_ADDRESS': VALID_MAINNET_ADDRESS}, 'profiles': ['core', 'mining']}
        content = client.post('/api/config/generate', json=body).json['content']
        assert f"MINING_ADDRESS={VALID_MAINNET_ADDRESS}" in content

    def test_password(self, client):
        assert len(client.get('/api/config/password?length=24').json['password']) == 24
        assert client.get('/api/config/password?length=4').status_code == 400

    def test_fields(self, client):
        response = client.get('/api/config/fields?profiles=mining').json
        assert 'MINING_ADDRESS' in [x['key'] for x in response['fields']]


class TestWizardApi:
    def test_load_without_state(self, client):
        response = client.get('/api/wizard/load')
        assert response.status_code == 404
        assert response.json['state'] is None

    def test_step_then_resume(self, client):
        assert client.post('/api/wizard/update-step', json={'stepNumber': 2, 'stepName': 'profiles'}).status_code == 200
        response = client.get('/api/wizard/can-resume').json
        assert response['canResume']
        assert response['currentStep'] == 2

    def test_partial_saved_state(self, client):
        assert client.post('/api/wizard/save', json={'state': {'currentStep': 1}}).status_code == 200
        response = client.post('/api/wizard/update-step', json={'stepNumber': 2, 'stepName': 'profiles'})
        assert response.status_code == 200
        assert response.json['state']['completedSteps'] == ['profiles']

    def test_update_step_requires_fields(self, client):
        assert client.post('/api/wizard/update-step', json={'stepNumber': 2}).status_code == 400

    def test_invalid_phase(self, client):
        response = client.post('/api/wizard/phase', json={'phase': 'dancing'})
        assert response.status_code == 400
        assert 'syncing' in response.json['validPhases']

    def test_summary_without_state(self, client):
        assert client.get('/api/wizard/summary').status_code == 404

    def test_mode_initial(self, client):
        response = client.get('/api/wizard/mode').json
        assert response['mode'] == 'initial'
        assert not response['canReconfigure']

    def test_mode_reconfigure_after_install(self, client, project_root, home_node_config):
        client.post('/api/config/save', json={'config': home_node_config, 'profiles': ['core']})
        installation_state.save_installation_state(['core'], home_node_config, {'services': [], 'summary': {'total': 0, 'running': 0, 'stopped': 0, 'missing': 0}}, project_root)
        response = client.get('/api/wizard/mode').json
        assert response['mode'] == 'reconfigure'
        assert response['canUpdate']

        current = client.get('/api/wizard/current-config').json
        assert current['profiles'] == ['core']

    def test_mode_from_url(self, client):
        assert client.get('/api/wizard/mode?mode=update').json['mode'] == 'update'


class TestRollbackApi:
    def test_undo_without_history(self, client):
        assert client.post('/api/rollback/undo').status_code == 404

    def test_restore_with_restart(self, client, docker_manager, home_node_config):
        client.post('/api/config/save', json={'config': home_node_config, 'profiles': ['core']})
        client.post('/api/config/save', json={'config': home_node_config, 'profiles': ['core']})
        version_id = client.get('/api/rollback/history').json['entries'][0]['versionId']
        response = client.post('/api/rollback/restore', json={'versionId': version_id, 'restartServices': True})
        assert response.json['restart']['success']
        assert ('start', ['core']) in docker_manager.calls

    def test_checkpoints(self, client):
        cp = client.post('/api/rollback/checkpoint', json={'stage': 'review', 'data': {'a': 1}}).json
        restored = client.post('/api/rollback/restore-checkpoint', json={'checkpointId': cp['checkpointId']}).json
        assert restored['data']['a'] == 1
        assert client.delete('/api/rollback/checkpoint/cp-nope').status_code == 404

    def test_start_over(self, client, docker_manager, project_root, home_node_config):
        client.post('/api/config/save', json={'config': home_node_config, 'profiles': ['core']})
        docker_manager.running.add('kaspa-node')

        response = client.post('/api/rollback/start-over', json={'deleteData': True, 'deleteConfig': True})
        assert response.status_code == 200
        assert response.json['response'] == 'success'
        assert [x['action'] for x in response.json['actions']] == ['stop-services', 'remove-containers', 'delete-backups']
        assert not os.path.exists(get_paths(project_root)['env'])
        assert docker_manager.calls[-1][0] == 'remove'


class TestInstallApi:
    def test_pull(self, client, docker_manager):
        response = client.post('/api/install/pull', json={'profiles': ['core']})
        assert response.json['response'] == 'success'
        assert response.json['results'][0]['image'] == 'kaspanet/rusty-kaspad:latest'

    def test_deploy_failure(self, client, docker_manager):
        docker_manager.start_error = 'port is already allocated'
        response = client.post('/api/install/deploy', json={'profiles': ['core']})
        assert response.status_code == 500
        assert response.json['details']['error'] == 'port is already allocated'

    def test_logs(self, client, docker_manager):
        docker_manager.logs['kaspa-node'] = 'synced\n'
        assert client.get('/api/install/logs/kaspa-node').json['logs'] == 'synced\n'
        assert client.get('/api/install/logs/nothing').json['response'] == 'failed'

    def test_remove_requires_services(self, client):
        assert client.post('/api/install/remove', json={'services': []}).status_code == 400


def test_dependency_health(client):
    assert client.get('/api/dependencies/health').json['status'] == 'healthy'


def test_startup_check_without_remote_services(client):
    response = client.post('/api/dependencies/startup-check', json={'profiles': ['core']}).json
    assert response['services'] == []
    assert response['validation']['valid']


def test_system_check_rejects_bad_ports(client):
    assert client.get('/api/system-check?ports=abc').status_code == 400
    assert client.get('/api/system-check?ports=0').status_code == 400


def test_port_check_range(client):
    assert client.post('/api/system-check/ports', json={'ports': [70000]}).status_code == 400
    assert client.post('/api/system-check/ports', json={'ports': [True]}).status_code == 400
