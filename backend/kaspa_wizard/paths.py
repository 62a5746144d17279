import os
from flask import current_app, has_app_context
from .configs.user_config import DEFAULT_PROJECT_ROOT
from .configs.str_constants import *


def get_project_root():
    if has_app_context() and current_app.config.get('PROJECT_ROOT'):
        return current_app.config['PROJECT_ROOT']
    return DEFAULT_PROJECT_ROOT


# Every file the wizard reads or writes, relative to a project root
def get_paths(root=None):
    root = root or get_project_root()
    state_dir = os.path.join(root, STATE_DIR)
    return {
        'root': root,
        'env': os.path.join(root, ENV_FILE),
        'compose': os.path.join(root, COMPOSE_FILE),
        'compose_override': os.path.join(root, COMPOSE_OVERRIDE_FILE),
        'state_dir': state_dir,
        'installation_state': os.path.join(state_dir, INSTALLATION_STATE_FILE),
        'wizard_state': os.path.join(state_dir, WIZARD_STATE_FILE),
        'state_history': os.path.join(state_dir, STATE_HISTORY_DIR),
        'custom_templates': os.path.join(state_dir, CUSTOM_TEMPLATES_FILE),
        'backups': os.path.join(root, BACKUP_DIR),
    }
