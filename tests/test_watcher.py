import tempfile
import threading
import unittest
from pathlib import Path

from kopa.db import KopaStore
from kopa.errors import CapabilityFault
from kopa.watcher import ClipboardWatcher


class _ScriptedClipboard:
    """Replays a list of read results; exceptions in the list are raised."""

    def __init__(self, script, on_exhausted=None):
        self.script = list(script)
        self.on_exhausted = on_exhausted

    def read(self):
        if not self.script:
            if self.on_exhausted:
                self.on_exhausted()
            return None
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def write(self, text):
        raise AssertionError("watcher must never write the clipboard")


class ClipboardWatcherTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.store = KopaStore(db_path=str(Path(self.temp_dir.name) / "kopa.db"))
        self.now = 1000

    def tearDown(self):
        self.temp_dir.cleanup()

    def _watcher(self, script, **kwargs):
        kwargs.setdefault("clock", lambda: self.now)
        return ClipboardWatcher(self.store, _ScriptedClipboard(script), **kwargs)

    def _contents(self):
        return [e.content for e in self.store.list_entries(None, 100).entries]

    def test_consecutive_duplicates_are_stored_once(self):
        watcher = self._watcher([b"same", b"same"])

        self.assertIsNotNone(watcher.poll_once())
        self.assertIsNone(watcher.poll_once())

        self.assertEqual(self.store.count_entries(), 1)

    def test_empty_read_resets_duplicate_detection(self):
        watcher = self._watcher([b"same", None, b"same"])

        for _ in range(3):
            watcher.poll_once()

        self.assertEqual(self._contents(), ["same", "same"])

    def test_only_the_immediately_previous_value_is_compared(self):
        watcher = self._watcher([b"a", b"b", b"a"])

        for _ in range(3):
            watcher.poll_once()

        self.assertEqual(self.store.count_entries(), 3)

    def test_invalid_utf8_is_replaced_not_fatal(self):
        watcher = self._watcher([b"caf\xc3\xa9 \xff end"])

        entry_id = watcher.poll_once()

        self.assertEqual(self.store.get_text(entry_id), "caf\u00e9 \ufffd end")

    def test_created_at_comes_from_watcher_clock(self):
        self.now = 4242.9
        watcher = self._watcher([b"timed"])

        watcher.poll_once()

        self.assertEqual(self.store.list_entries().entries[0].created_at, 4242)

    def test_failed_append_does_not_mark_value_seen(self):
        watcher = self._watcher([b"retry me", b"retry me"])
        original = self.store.append_text
        calls = []

        def flaky(content, observed_at):
            calls.append(content)
            if len(calls) == 1:
                raise CapabilityFault("transient")
            return original(content, observed_at)

        self.store.append_text = flaky
        with self.assertRaises(CapabilityFault):
            watcher.poll_once()
        watcher.poll_once()

        self.assertEqual(self.store.count_entries(), 1)

    def test_run_forever_survives_errors_and_keeps_polling(self):
        stop = threading.Event()
        clipboard = _ScriptedClipboard(
            [CapabilityFault("clipboard went away"), b"after the failure", b"after the failure"],
            on_exhausted=stop.set,
        )
        watcher = ClipboardWatcher(self.store, clipboard, poll_interval=0, retry_backoff=0, clock=lambda: self.now)

        with self.assertLogs("Kopa", level="ERROR") as logs:
            watcher.run_forever(stop)

        self.assertEqual(self._contents(), ["after the failure"])
        self.assertTrue(any("retrying" in line for line in logs.output))

    def test_start_and_stop_thread(self):
        watcher = self._watcher([b"threaded"], poll_interval=0.01)

        thread = watcher.start()
        self.assertIs(watcher.start(), thread)
        for _ in range(200):
            if self.store.count_entries():
                break
            threading.Event().wait(0.01)
        watcher.stop()

        self.assertFalse(thread.is_alive())
        self.assertEqual(self._contents(), ["threaded"])


if __name__ == "__main__":
    unittest.main()
