import os
import sys

from .constants import APP_NAME, DATA_DIR_ENV


def _platform_data_dir():
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or os.path.join(os.path.expanduser("~"), "AppData", "Roaming")
    elif sys.platform == "darwin":
        base = os.path.join(os.path.expanduser("~"), "Library", "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, APP_NAME)


def get_data_dir(data_dir=None):
    # Explicit directory wins, then the environment, then the per-user app-data location.
    base = data_dir or os.environ.get(DATA_DIR_ENV) or _platform_data_dir()
    base = os.path.abspath(os.path.expanduser(str(base)))
    os.makedirs(base, exist_ok=True)
    return base


def is_within(path, directory):
    path = os.path.realpath(path)
    directory = os.path.realpath(directory)
    try:
        return os.path.commonpath([path, directory]) == directory
    except ValueError:
        # Different drives on Windows.
        return False
