import pytest

from kaspa_wizard.profiles.templates import (
    BUILTIN_TEMPLATES,
    get_all_templates,
    get_template,
    get_templates_by_category,
    get_templates_by_use_case,
    search_templates_by_tags,
    apply_template,
    validate_template,
    get_template_recommendations,
    create_custom_template,
    save_custom_template,
    delete_custom_template,
)
from kaspa_wizard.exceptions import TemplateNotFound, BuiltinTemplateError, UnknownProfileError


@pytest.fixture
def templates_path(tmp_path):
    return str(tmp_path / 'custom-templates.json')


def test_builtin_templates_are_listed(templates_path):
    ids = [x['id'] for x in get_all_templates(templates_path)]
    assert ids == list(BUILTIN_TEMPLATES.keys())


def test_every_builtin_template_validates(templates_path):
    for template in get_all_templates(templates_path):
        result = validate_template(template)
        assert result['valid'], (template['id'], result['errors'])


def test_unknown_template(templates_path):
    with pytest.raises(TemplateNotFound):
        get_template('space-station', templates_path)


def test_filters(templates_path):
    assert [x['id'] for x in get_templates_by_category('beginner', templates_path)] == ['beginner-setup']
    assert 'mining-setup' in [x['id'] for x in get_templates_by_use_case('mining', templates_path)]
    tagged = [x['id'] for x in search_templates_by_tags(['testnet', 'solo'], templates_path)]
    assert set(tagged) == {'developer-setup', 'mining-setup'}


def test_apply_template_overrides_base_config(templates_path):
    config = apply_template('home-node', {'KASPA_NETWORK': 'testnet', 'EXTRA': 'kept'}, templates_path)
    assert config['KASPA_NETWORK'] == 'mainnet'
    assert config['EXTRA'] == 'kept'


def test_developer_template_turns_on_developer_mode(templates_path):
    config = apply_template('developer-setup', {}, templates_path)
    assert config['DEVELOPER_MODE'] == 'true'
    assert config['LOG_LEVEL'] == 'debug'


def test_template_with_conflicting_profiles_is_invalid():
    result = validate_template({'id': 'x', 'profiles': ['core', 'archive-node']})
    assert not result['valid']
    assert 'conflicts' in result['errors'][0]


def test_template_with_unknown_profile_is_invalid():
    result = validate_template({'id': 'x', 'profiles': ['core', 'lightning']})
    assert result['errors'] == ['Template references unknown profile: lightning']


class TestRecommendations:
    def test_small_machine_cannot_run_full_node(self, templates_path):
        recs = get_template_recommendations({'memory': 8, 'cpu': 4, 'disk': 500}, 'personal', templates_path)
        by_id = {x['template']['id']: x for x in recs}
        assert by_id['full-node']['suitability'] == 'insufficient'
        assert not by_id['full-node']['recommended']
        assert by_id['beginner-setup']['recommended']

    def test_sorted_by_score(self, templates_path):
        recs = get_template_recommendations({'memory': 64, 'cpu': 16, 'disk': 4000}, 'mining', templates_path)
        scores = [x['score'] for x in recs]
        assert scores == sorted(scores, reverse=True)
        assert recs[0]['template']['id'] == 'mining-setup'


class TestCustomTemplates:
    def test_create_save_and_delete(self, templates_path):
        template = create_custom_template({
            'id': 'my-node',
            'name': 'My Node',
            'description': 'Node and apps',
            'profiles': ['core', 'kaspa-user-applications'],
            'config': {'KASPA_NETWORK': 'testnet'},
            'metadata': {'tags': ['mine']},
        })
        assert template['custom']
        assert template['resources']['minMemory'] == 8
        save_custom_template(template, templates_path)

        assert get_template('my-node', templates_path)['name'] == 'My Node'
        assert [x['id'] for x in search_templates_by_tags(['mine'], templates_path)] == ['my-node']

        delete_custom_template('my-node', templates_path)
        with pytest.raises(TemplateNotFound):
            get_template('my-node', templates_path)

    def test_missing_fields(self):
        with pytest.raises(ValueError):
            create_custom_template({'id': 'x', 'name': 'X'})

    def test_unknown_profile(self):
        with pytest.raises(UnknownProfileError):
            create_custom_template({'id': 'x', 'name': 'X', 'description': 'd', 'profiles': ['lightning'], 'config': {'A': 1}})

    def test_builtins_are_protected(self, templates_path):
        with pytest.raises(BuiltinTemplateError):
            save_custom_template({'id': 'home-node'}, templates_path)
        with pytest.raises(BuiltinTemplateError):
            delete_custom_template('home-node', templates_path)

    def test_delete_missing(self, templates_path):
        with pytest.raises(TemplateNotFound):
            delete_custom_template('nope', templates_path)
