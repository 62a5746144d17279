from .settings import SETTINGS
from . import secrets
import os

BACKEND_VERSION = '0.9.3'  # Viewable when a user goes to the root "/" endpoint of the backend

STATE_VERSION = '1.0.0'  # Written into installation-state.json and wizard-state.json

_wizard = SETTINGS.get('wizard', {}) if isinstance(SETTINGS.get('wizard'), dict) else {}

# Where .env and docker-compose.yml get written; the app config can override this per instance.
DEFAULT_PROJECT_ROOT = secrets.PROJECT_ROOT or _wizard.get('project_root') or os.getcwd()

WIZARD_AUTO_START = (secrets.WIZARD_AUTO_START or '').lower() == 'true'

SOCKETIO_ASYNC_MODE = _wizard.get('async_mode', 'gevent')

#
# Wizard state
#

MAX_STATE_HISTORY = 10  # snapshots kept in .kaspa-aio/state-history
MAX_RESUME_AGE_HOURS = 24  # a wizard session older than this can't be resumed

#
# Rollback
#

MAX_HISTORY_ENTRIES = _wizard.get('max_history_entries', 50)
MAX_CHECKPOINTS = _wizard.get('max_checkpoints', 10)
DEFAULT_HISTORY_LIMIT = 20

#
# Docker
#

COMPOSE_UP_TIMEOUT = 120  # in seconds, per attempt
COMPOSE_UP_RETRIES = 2
COMPOSE_RETRY_DELAY = 2  # in seconds, doubled each retry
PULL_TIMEOUT = 600  # in seconds, per image
BUILD_TIMEOUT = 1800  # in seconds, per service (the indexers take a while)
POST_START_SETTLE = _wizard.get('post_start_settle', 3)  # seconds to wait before checking containers after up -d
DEFAULT_LOG_LINES = 100

#
# Dependency checks
#

DEPENDENCY_CHECK_TIMEOUT = 5  # seconds, default for an external dependency that doesn't specify one

#
# System requirements (checked before install)
#

MIN_MEMORY_GB = 4
MIN_CPU_CORES = 2
MIN_DISK_GB = 100

HIGH_RESOURCE_MEMORY_GB = 32  # warn when the selected profiles need more than this

DEFAULT_PASSWORD_LENGTH = 32
