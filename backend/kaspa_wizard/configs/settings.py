import os
import sys
import yaml

CONFIG_PATH = os.environ.get('KASPA_WIZARD_SETTINGS', '/etc/kaspa-aio/settings.yml')

def get_settings():
    try:
        with open(CONFIG_PATH, 'r') as file:
            config = yaml.safe_load(file)
            return config or {}
    except FileNotFoundError:
        # Settings are optional for the wizard; everything has a default.
        print(f"No settings file at {CONFIG_PATH}; using defaults", file=sys.stderr)
        return {}

SETTINGS = get_settings()
