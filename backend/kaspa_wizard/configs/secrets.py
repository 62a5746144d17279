import os
from dotenv import load_dotenv

DOTENV_PATH = os.environ.get('KASPA_WIZARD_DOTENV', '/etc/kaspa-aio/wizard.env')
load_dotenv(DOTENV_PATH)  # Load in environment variables (a missing file is fine)

FLASK_SECRET_KEY = os.environ.get("FLASK_SECRET_KEY")  # For flask

# Where the generated .env / docker-compose.yml live. Set by the launcher scripts and systemd unit.
PROJECT_ROOT = os.environ.get("PROJECT_ROOT")

WIZARD_AUTO_START = os.environ.get("WIZARD_AUTO_START")

# Used by the docker SDK when the daemon isn't on the default socket
DOCKER_HOST = os.environ.get("DOCKER_HOST")
