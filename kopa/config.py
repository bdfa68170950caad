import logging
import os

from .pager import DEFAULT_PAGE_SIZE
from .watcher import DEFAULT_POLL_INTERVAL, DEFAULT_RETRY_BACKOFF

logger = logging.getLogger("Kopa")

DEFAULT_CONFIG = {
    "poll_interval": DEFAULT_POLL_INTERVAL,
    "retry_backoff": DEFAULT_RETRY_BACKOFF,
    "page_size": DEFAULT_PAGE_SIZE,
    "clipboard": "auto",
    "socket_path": "",
    "db_path": "",
    "http_socket": "",
    "http_port": 0,
    "log_level": "INFO",
}

ENV_PREFIX = "KOPA_"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _to_float(value, default, minimum):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if value >= minimum else default


def _to_int(value, default, minimum):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return value if value >= minimum else default


def normalize_config(config):
    merged = {**DEFAULT_CONFIG, **(config or {})}
    out = {
        "poll_interval": _to_float(merged["poll_interval"], DEFAULT_CONFIG["poll_interval"], 0.05),
        "retry_backoff": _to_float(merged["retry_backoff"], DEFAULT_CONFIG["retry_backoff"], 0.0),
        "page_size": _to_int(merged["page_size"], DEFAULT_CONFIG["page_size"], 1),
        "clipboard": str(merged["clipboard"] or "auto").strip().lower(),
        "socket_path": str(merged["socket_path"] or "").strip(),
        "db_path": str(merged["db_path"] or "").strip(),
        "http_socket": str(merged["http_socket"] or "").strip(),
        "http_port": _to_int(merged["http_port"], 0, 0),
        "log_level": str(merged["log_level"] or "INFO").strip().upper(),
    }
    if out["http_port"] > 65535:
        out["http_port"] = 0
    if out["log_level"] not in _LOG_LEVELS:
        out["log_level"] = DEFAULT_CONFIG["log_level"]
    return out


def config_from_env(environ=None):
    environ = os.environ if environ is None else environ
    found = {}
    for key in DEFAULT_CONFIG:
        value = environ.get(ENV_PREFIX + key.upper())
        if value is not None and value != "":
            found[key] = value
    return found


def load_config(overrides=None, environ=None):
    """Defaults, then ``KOPA_*`` environment variables, then explicit overrides."""
    config = {**DEFAULT_CONFIG, **config_from_env(environ)}
    for key, value in (overrides or {}).items():
        if value is not None and key in DEFAULT_CONFIG:
            config[key] = value
    return normalize_config(config)
