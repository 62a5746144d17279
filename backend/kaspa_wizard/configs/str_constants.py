"""

File and directory names shared by the generators, managers and the API.
The launcher scripts and the dashboard expect these exact names in the project root.

"""

ENV_FILE = '.env'
COMPOSE_FILE = 'docker-compose.yml'
COMPOSE_OVERRIDE_FILE = 'docker-compose.override.yml'

STATE_DIR = '.kaspa-aio'
INSTALLATION_STATE_FILE = 'installation-state.json'
WIZARD_STATE_FILE = 'wizard-state.json'
STATE_HISTORY_DIR = 'state-history'
CUSTOM_TEMPLATES_FILE = 'custom-templates.json'

BACKUP_DIR = '.kaspa-backups'
BACKUP_HISTORY_FILE = 'history.json'
CHECKPOINTS_FILE = 'checkpoints.json'
ENV_BACKUP_PREFIX = '.env.v-'

# Installation phases (installation-state.json "phase")
PHASE_INSTALLING = 'installing'
PHASE_COMPLETE = 'complete'
PHASE_ERROR = 'error'

# Install stages, as streamed to the browser
STAGE_INIT = 'init'
STAGE_CONFIG = 'config'
STAGE_PULL = 'pull'
STAGE_BUILD = 'build'
STAGE_DEPLOY = 'deploy'
STAGE_VALIDATE = 'validate'

# Compose project name; containers get the com.docker.compose.project label with this value
COMPOSE_PROJECT_NAME = 'all-in-one'
