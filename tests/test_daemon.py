import asyncio
import os
import tempfile
import threading
import unittest
from pathlib import Path

import aiohttp

from kopa.client import send_request
from kopa.config import load_config
from kopa.daemon import run_daemon
from kopa.db import KopaStore
from kopa.protocol import Entries, ListEntries


class _StaticClipboard:
    def __init__(self, value):
        self.value = value
        self.written = []

    def read(self):
        return self.value

    def write(self, text):
        self.written.append(text)


def _watcher_threads():
    return [t for t in threading.enumerate() if t.name == "kopa-watcher" and t.is_alive()]


class RunDaemonTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        base = Path(self.temp_dir.name)
        self.socket_path = str(base / "kopa.sock")
        self.http_socket = str(base / "kopa-http.sock")
        self.store = KopaStore(db_path=str(base / "kopa.db"))
        self.clipboard = _StaticClipboard(b"watched text")

    async def asyncTearDown(self):
        self.temp_dir.cleanup()

    async def _wait_for(self, predicate, timeout=5.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                self.fail("daemon did not reach the expected state in time")
            await asyncio.sleep(0.02)

    async def _cancel(self, task):
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

    async def test_serves_socket_and_stops_watcher_on_cancel(self):
        config = load_config({"socket_path": self.socket_path, "poll_interval": 0.05}, environ={})

        with self.assertLogs("Kopa", level="INFO") as logs:
            task = asyncio.create_task(
                run_daemon(config, watch=True, store=self.store, clipboard=self.clipboard)
            )
            await self._wait_for(lambda: os.path.exists(self.socket_path))
            await self._wait_for(lambda: self.store.count_entries() == 1)

            self.assertEqual(len(_watcher_threads()), 1)
            response = await send_request(ListEntries(), socket_path=self.socket_path)

            await self._cancel(task)

        self.assertIsInstance(response, Entries)
        self.assertEqual([e.content for e in response.entries], ["watched text"])
        self.assertEqual(_watcher_threads(), [])
        self.assertTrue(any("Kopa Daemon" in message for message in logs.output))

    async def test_without_watch_no_thread_is_started(self):
        config = load_config({"socket_path": self.socket_path}, environ={})

        with self.assertLogs("Kopa", level="INFO"):
            task = asyncio.create_task(
                run_daemon(config, watch=False, store=self.store, clipboard=self.clipboard)
            )
            await self._wait_for(lambda: os.path.exists(self.socket_path))

            self.assertEqual(_watcher_threads(), [])
            await self._cancel(task)

        self.assertEqual(self.store.count_entries(), 0)

    async def test_http_bridge_is_served_and_cleaned_up(self):
        config = load_config(
            {"socket_path": self.socket_path, "http_socket": self.http_socket},
            environ={},
        )

        with self.assertLogs("Kopa", level="INFO"):
            task = asyncio.create_task(
                run_daemon(config, watch=False, store=self.store, clipboard=self.clipboard)
            )
            await self._wait_for(lambda: os.path.exists(self.socket_path))

            async with aiohttp.ClientSession(connector=aiohttp.UnixConnector(path=self.http_socket)) as session:
                async with session.get("http://localhost/kopa/health") as resp:
                    self.assertEqual(resp.status, 200)
                    body = await resp.json()

            await self._cancel(task)

        self.assertTrue(body["ok"])
        with self.assertRaises(aiohttp.ClientConnectionError):
            async with aiohttp.ClientSession(connector=aiohttp.UnixConnector(path=self.http_socket)) as session:
                async with session.get("http://localhost/kopa/health"):
                    pass


if __name__ == "__main__":
    unittest.main()
