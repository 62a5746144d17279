from kaspa_wizard.address_validator import validate_kaspa_address, detect_network_from_address, get_network_prefix
from kaspa_wizard.config_validator import (
    validate_configuration,
    validate_field,
    validate_port_conflicts,
    validate_network_change,
    validate_custom_env_vars,
)
from kaspa_wizard.config_fields import get_fields_for_profiles, migrate_configuration
from kaspa_wizard.config_generator import validate_config, generate_default_config

from conftest import VALID_MAINNET_ADDRESS, VALID_TESTNET_ADDRESS


class TestAddresses:
    def test_valid_mainnet(self):
        result = validate_kaspa_address(VALID_MAINNET_ADDRESS)
        assert result['valid']
        assert result['network'] == 'mainnet'

    def test_uppercase_is_normalized(self):
        result = validate_kaspa_address(VALID_MAINNET_ADDRESS.upper())
        assert result['valid']
        assert result['normalizedAddress'] == VALID_MAINNET_ADDRESS

    def test_bad_prefix(self):
        result = validate_kaspa_address('bitcoin:' + 'q' * 60)
        assert not result['valid']
        assert 'prefix' in result['error']

    def test_non_bech32_characters(self):
        result = validate_kaspa_address('kaspa:' + 'b' * 60)
        assert not result['valid']
        assert 'bech32' in result['error']

    def test_too_short(self):
        assert not validate_kaspa_address('kaspa:qqq')['valid']

    def test_network_mismatch(self):
        result = validate_kaspa_address(VALID_TESTNET_ADDRESS, network='mainnet', network_aware=True)
        assert not result['valid']
        assert result['network'] == 'testnet'

    def test_testnet_variants_share_a_prefix(self):
        assert get_network_prefix('testnet-10') == 'kaspatest:'
        assert validate_kaspa_address(VALID_TESTNET_ADDRESS, network='testnet-11', network_aware=True)['valid']

    def test_detect_network(self):
        assert detect_network_from_address(VALID_TESTNET_ADDRESS) == 'testnet'
        assert detect_network_from_address('nonsense') is None


class TestConfiguration:
    def test_home_node_defaults_are_valid(self, home_node_config):
        result = validate_config(home_node_config, ['core'])
        assert result['valid'], result['errors']

    def test_profiles_required(self, home_node_config):
        result = validate_configuration(home_node_config, [])
        assert not result['valid']
        assert result['errors'][0]['field'] == 'profiles'

    def test_port_out_of_range(self, home_node_config):
        result = validate_config({**home_node_config, 'KASPA_NODE_RPC_PORT': 80}, ['core'])
        assert not result['valid']
        assert result['errors'][0]['type'] == 'range'

    def test_port_must_be_a_number(self, home_node_config):
        result = validate_configuration({**home_node_config, 'KASPA_NODE_RPC_PORT': 'abc'}, ['core'])
        assert [x['type'] for x in result['errors']] == ['type']

    def test_port_conflict(self, home_node_config):
        result = validate_config({**home_node_config, 'KASPA_NODE_P2P_PORT': 16110}, ['core'])
        conflicts = [x for x in result['errors'] if x['type'] == 'port_conflict']
        assert len(conflicts) == 1
        assert conflicts[0]['conflictsWith'] == 'KASPA_NODE_RPC_PORT'

    def test_port_conflicts_ignore_unselected_profiles(self):
        config = {'KASPA_NODE_RPC_PORT': 3002, 'KASIA_APP_PORT': 3002}
        assert validate_port_conflicts(config, relevant_keys=['KASPA_NODE_RPC_PORT']) == []
        assert len(validate_port_conflicts(config)) == 1

    def test_invalid_network(self, home_node_config):
        result = validate_config({**home_node_config, 'KASPA_NETWORK': 'devnet'}, ['core'])
        assert result['errors'][0]['type'] == 'enum'

    def test_mining_requires_address(self):
        config = generate_default_config(['core', 'mining'])
        result = validate_config(config, ['core', 'mining'])
        assert not result['valid']
        assert result['errors'][0]['field'] == 'MINING_ADDRESS'
        assert result['errors'][0]['type'] == 'required'

    def test_mining_address_must_match_network(self):
        config = {**generate_default_config(['core', 'mining']), 'KASPA_NETWORK': 'testnet', 'MINING_ADDRESS': VALID_MAINNET_ADDRESS}
        result = validate_config(config, ['core', 'mining'])
        assert [x['type'] for x in result['errors']] == ['kaspaAddress']

    def test_wallet_connectivity_makes_address_required(self, home_node_config):
        result = validate_config({**home_node_config, 'WALLET_CONNECTIVITY_ENABLED': 'true'}, ['core'])
        errors = [x for x in result['errors'] if x['field'] == 'MINING_ADDRESS']
        assert errors[0]['message'] == 'Mining address is required when wallet connectivity is enabled'

    def test_wallet_ports_only_checked_when_enabled(self, home_node_config):
        config = {**home_node_config, 'KASPA_NODE_WRPC_BORSH_PORT': 80}
        assert validate_config(config, ['core'])['valid']
        enabled = {**config, 'WALLET_CONNECTIVITY_ENABLED': True, 'MINING_ADDRESS': VALID_MAINNET_ADDRESS}
        assert not validate_config(enabled, ['core'])['valid']

    def test_indexer_passwords(self):
        config = generate_default_config(['core', 'indexer-services'])
        assert validate_config(config, ['core', 'indexer-services'])['valid']
        short = {**config, 'POSTGRES_PASSWORD': 'short'}
        result = validate_config(short, ['core', 'indexer-services'])
        assert result['errors'][0]['type'] == 'minLength'

    def test_local_indexers_without_indexer_profile_warns(self):
        result = validate_config({'INDEXER_CONNECTION_MODE': 'local'}, ['kaspa-user-applications'])
        assert result['valid']
        assert 'indexer_unavailable' in [x['type'] for x in result['warnings']]

    def test_public_node_without_ip_warns(self, home_node_config):
        result = validate_config({**home_node_config, 'PUBLIC_NODE': 'true'}, ['core'])
        assert 'missing_recommended' in [x['type'] for x in result['warnings']]

    def test_bad_external_ip(self, home_node_config):
        result = validate_config({**home_node_config, 'EXTERNAL_IP': 'my-house'}, ['core'])
        assert result['errors'][0]['field'] == 'EXTERNAL_IP'

    def test_deprecated_wallet_fields_are_stripped(self, home_node_config):
        result = validate_config({**home_node_config, 'WALLET_SEED_PHRASE': 'abandon abandon'}, ['core'])
        assert result['valid']
        assert 'WALLET_SEED_PHRASE' not in result['config']
        assert result['warnings'][0]['type'] == 'deprecation'


class TestFields:
    def test_field_visibility_follows_profiles(self):
        keys = [x['key'] for x in get_fields_for_profiles(['kaspa-user-applications'])]
        assert 'INDEXER_CONNECTION_MODE' in keys
        assert 'KASPA_NODE_RPC_PORT' not in keys
        assert 'PGADMIN_PORT' not in keys

    def test_keys_are_unique(self):
        keys = [x['key'] for x in get_fields_for_profiles(['core', 'mining'])]
        assert len(keys) == len(set(keys))

    def test_profile_definition_wins_over_common(self):
        mining = [x for x in get_fields_for_profiles(['core', 'mining']) if x['key'] == 'MINING_ADDRESS'][0]
        assert mining['required'] is True
        assert 'dependsOn' not in mining

    def test_migrate(self):
        config, warnings = migrate_configuration({'WALLET_PATH': '/x', 'KASPA_NETWORK': 'mainnet'})
        assert config == {'KASPA_NETWORK': 'mainnet'}
        assert warnings[0]['field'] == 'WALLET_PATH'


class TestSingleField:
    def test_known_field(self):
        result = validate_field('STRATUM_PORT', 99, profiles=['mining'])
        assert not result['valid']

    def test_unknown_field_is_accepted(self):
        assert validate_field('MY_OWN_THING', 'whatever')['valid']

    def test_multiline_values_rejected(self):
        result = validate_field('POSTGRES_USER', 'kaspa\nKASPA_NETWORK=testnet', profiles=['indexer-services'])
        assert not result['valid']
        assert result['errors'][0]['type'] == 'control_characters'

    def test_custom_env_vars(self):
        assert validate_field('CUSTOM_ENV_VARS', 'FOO=bar\n# comment\n\nBAZ=1')['valid']
        errors = validate_custom_env_vars('FOO=bar\nnot a pair')
        assert errors[0]['line'] == 2


class TestNetworkChange:
    def test_no_previous_config(self):
        assert validate_network_change({'KASPA_NETWORK': 'testnet'}, None) == []

    def test_change_after_install_is_critical(self):
        warnings = validate_network_change({'KASPA_NETWORK': 'testnet'}, {'KASPA_NETWORK': 'mainnet'}, has_installation=True)
        assert warnings[0]['severity'] == 'critical'
        assert warnings[0]['previousValue'] == 'mainnet'

    def test_change_before_install_is_high(self):
        warnings = validate_network_change({'KASPA_NETWORK': 'testnet'}, {}, has_installation=False)
        assert warnings == []
        warnings = validate_network_change({'KASPA_NETWORK': 'testnet'}, {'KASPA_NETWORK': 'mainnet'}, has_installation=False)
        assert warnings[0]['severity'] == 'high'
