import os

from .constants import DB_FILENAME, SOCKET_FILENAME


def get_data_dir():
    # Explicit override first, then the XDG data home.
    base = os.environ.get("KOPA_DATA_DIR")
    if not base:
        xdg = os.environ.get("XDG_DATA_HOME") or os.path.join(os.path.expanduser("~"), ".local", "share")
        base = os.path.join(xdg, "kopa")

    os.makedirs(base, exist_ok=True)
    return base


def get_db_path():
    return os.path.join(get_data_dir(), DB_FILENAME)


def get_socket_path():
    return os.path.join(get_data_dir(), SOCKET_FILENAME)
