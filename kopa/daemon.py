import asyncio
import logging

from . import __version__
from .clipboard import get_clipboard
from .constants import APP_NAME, SCHEMA_VERSION
from .db import KopaStore
from .paths import get_socket_path
from .router import RequestRouter
from .watcher import ClipboardWatcher

logger = logging.getLogger("Kopa")


def _banner():
    title = f" {APP_NAME} Daemon "
    logger.info("=" * 30 + title + "=" * 30)
    logger.info(f"Version: {__version__}")
    logger.info(f"Schema version: {SCHEMA_VERSION}")


async def run_daemon(config, watch=True, store=None, clipboard=None):
    """Run the socket server (and the watcher thread) until cancelled."""
    _banner()
    store = store or KopaStore(db_path=config["db_path"] or None)
    clipboard = clipboard or get_clipboard(config["clipboard"])
    logger.info("Database: %s", store.db_path)

    watcher = None
    if watch:
        watcher = ClipboardWatcher(
            store,
            clipboard,
            poll_interval=config["poll_interval"],
            retry_backoff=config["retry_backoff"],
        )
        watcher.start()

    router = RequestRouter(store, clipboard, page_size=config["page_size"])
    http_runner = None
    try:
        if config["http_socket"] or config["http_port"]:
            from .api import start_http

            http_runner = await start_http(router, config["http_socket"], config["http_port"])
        await router.serve(config["socket_path"] or get_socket_path())
    finally:
        if http_runner is not None:
            await http_runner.cleanup()
        if watcher is not None:
            watcher.stop()
        logger.info("=" * (60 + len(f" {APP_NAME} Daemon ")))


def main(config, watch=True):
    try:
        asyncio.run(run_daemon(config, watch=watch))
    except KeyboardInterrupt:
        logger.info("stopped.")
    return 0
