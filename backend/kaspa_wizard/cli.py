import click
from flask.cli import with_appcontext
from .profiles.templates import apply_template, get_template
from .config_generator import (
    validate_config,
    generate_default_config,
    load_env_file,
    write_project_files,
)
from .state_manager import WizardStateManager
from . import installation_state
from .paths import get_paths
from .exceptions import TemplateNotFound


@click.command('generate-config')
@with_appcontext
@click.option('--template', 'template_id', default=None, help="Start from a deployment template, e.g. home-node")
@click.option('--profile', 'profiles', multiple=True, help="Profile to include; repeat for more than one")
def generate_config_command(template_id, profiles):
    """Write .env and docker-compose.yml into the project root."""
    profiles = list(profiles)
    if template_id:
        try:
            template = get_template(template_id)
        except TemplateNotFound as e:
            raise click.ClickException(str(e))
        profiles = profiles or list(template['profiles'])
        config = apply_template(template_id, generate_default_config(profiles))
    else:
        if not len(profiles):
            raise click.UsageError("Pass --template or at least one --profile")
        config = generate_default_config(profiles)

    validation = validate_config(config, profiles)
    if not validation['valid']:
        for error in validation['errors']:
            click.echo(f"  {error.get('field', '')}: {error['message']}", err=True)
        raise click.ClickException("Configuration is invalid; nothing was written.")

    result = write_project_files(validation['config'], profiles)
    if not result['success']:
        raise click.ClickException(f"Could not write configuration: {result.get('error')}")
    click.echo(f"Wrote {result['envPath']} and {result['composePath']} for profiles: {', '.join(profiles)}")


@click.command('validate-config')
@with_appcontext
def validate_config_command():
    """Validate the project's current .env against the profiles it was generated for."""
    env = load_env_file()
    if not env['success']:
        raise click.ClickException(env['error'])

    result = validate_config(env['config'], env['profiles'])
    for warning in result['warnings']:
        click.echo(f"warning: {warning.get('field', '')}: {warning['message']}")
    for error in result['errors']:
        click.echo(f"error: {error.get('field', '')}: {error['message']}", err=True)
    if not result['valid']:
        raise click.ClickException(f"{len(result['errors'])} error(s) in {get_paths()['env']}")
    click.echo(f"Configuration is valid for profiles: {', '.join(env['profiles'])}")


@click.command('clear-wizard-state')
@with_appcontext
@click.option('--installation', is_flag=True, help="Also remove the installation state")
def clear_wizard_state_command(installation):
    """Remove the saved wizard progress."""
    result = WizardStateManager().clear_state()
    click.echo(result['message'])
    if installation and installation_state.clear_state():
        click.echo('Installation state cleared')


def init_app(app):
    app.cli.add_command(generate_config_command)
    app.cli.add_command(validate_config_command)
    app.cli.add_command(clear_wizard_state_command)
