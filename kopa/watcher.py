import logging
import threading
import time
from typing import Callable, Optional

from .utils import decode_clipboard_bytes, preview

logger = logging.getLogger("Kopa")

DEFAULT_POLL_INTERVAL = 0.3
DEFAULT_RETRY_BACKOFF = 1.0


class ClipboardWatcher:
    """Single writer: polls the clipboard and appends each new capture.

    Only immediately consecutive duplicates are dropped. A read that yields
    no text resets the comparison, so copying ``a``, clearing, and copying
    ``a`` again stores two entries.
    """

    def __init__(
        self,
        store,
        clipboard,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.clipboard = clipboard
        self.poll_interval = poll_interval
        self.retry_backoff = retry_backoff
        self.clock = clock
        self.last_seen: Optional[bytes] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> Optional[int]:
        contents = self.clipboard.read()
        if contents is None:
            self.last_seen = None
            return None

        contents = bytes(contents)
        if self.last_seen is not None and contents == self.last_seen:
            return None

        text = decode_clipboard_bytes(contents)
        entry_id = self.store.append_text(text, int(self.clock()))
        self.last_seen = contents
        logger.info("saved clip #%d: %s", entry_id, preview(text, 60))
        return entry_id

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        stop_event = stop_event or self._stop_event
        logger.info("watching clipboard every %.2fs", self.poll_interval)
        while not stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("clipboard watcher cycle failed; retrying in %.1fs", self.retry_backoff)
                stop_event.wait(self.retry_backoff)
                continue
            stop_event.wait(self.poll_interval)
        logger.info("clipboard watcher stopped")

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name="kopa-watcher", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
