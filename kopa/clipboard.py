import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

import pyperclip

from .errors import CapabilityFault

logger = logging.getLogger("Kopa")


class ClipboardBackend(ABC):
    """Read and write the system clipboard as text.

    ``read`` returns ``None`` when there is simply nothing to read (empty
    clipboard, no seat, no text representation). Anything else that goes
    wrong raises ``CapabilityFault``.
    """

    name = "base"

    @abstractmethod
    def read(self) -> Optional[bytes]:
        pass

    @abstractmethod
    def write(self, text: str) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class _CommandClipboard(ClipboardBackend):
    read_command: tuple = ()
    write_command: tuple = ()
    # Lower-cased stderr fragments that mean "nothing to read", not a fault.
    empty_markers: tuple = ()
    timeout = 1.5

    def _run(self, command, data=None, capture=True):
        # The copy tools fork a selection owner that inherits our pipes.
        sink = subprocess.PIPE if capture else subprocess.DEVNULL
        try:
            return subprocess.run(
                list(command),
                input=data,
                stdout=sink,
                stderr=sink,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CapabilityFault(f"{command[0]} is not installed") from exc
        except subprocess.TimeoutExpired as exc:
            raise CapabilityFault(f"{command[0]} timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise CapabilityFault(f"{command[0]} failed: {exc}") from exc

    def read(self) -> Optional[bytes]:
        result = self._run(self.read_command)
        if result.returncode == 0:
            return result.stdout
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        if any(marker in stderr.lower() for marker in self.empty_markers):
            return None
        raise CapabilityFault(f"{self.read_command[0]} exited with {result.returncode}: {stderr[:200]}")

    def write(self, text: str) -> None:
        result = self._run(self.write_command, data=text.encode("utf-8"), capture=False)
        if result.returncode != 0:
            raise CapabilityFault(
                f"Failed to copy entry to clipboard: {self.write_command[0]} exited with {result.returncode}"
            )


class WaylandClipboard(_CommandClipboard):
    name = "wayland"
    read_command = ("wl-paste", "--no-newline", "--type", "text")
    write_command = ("wl-copy", "--type", "text/plain;charset=utf-8")
    empty_markers = ("nothing is copied", "no selection", "no suitable type", "clipboard is empty", "no seats")

    @staticmethod
    def available() -> bool:
        return bool(os.environ.get("WAYLAND_DISPLAY")) and shutil.which("wl-paste") is not None


class XclipClipboard(_CommandClipboard):
    name = "xclip"
    read_command = ("xclip", "-selection", "clipboard", "-out", "-target", "UTF8_STRING")
    write_command = ("xclip", "-selection", "clipboard", "-in")
    empty_markers = ("not available", "there is no owner")

    @staticmethod
    def available() -> bool:
        return bool(os.environ.get("DISPLAY")) and shutil.which("xclip") is not None


class PyperclipClipboard(ClipboardBackend):
    name = "pyperclip"

    def read(self) -> Optional[bytes]:
        try:
            text = pyperclip.paste()
        except pyperclip.PyperclipException as exc:
            raise CapabilityFault(f"Clipboard read failed: {exc}") from exc
        if not text:
            return None
        return text.encode("utf-8")

    def write(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise CapabilityFault(f"Failed to copy entry to clipboard: {exc}") from exc


BACKENDS = {
    WaylandClipboard.name: WaylandClipboard,
    XclipClipboard.name: XclipClipboard,
    PyperclipClipboard.name: PyperclipClipboard,
}


def get_clipboard(name="auto") -> ClipboardBackend:
    name = (name or "auto").strip().lower()
    if name == "auto":
        if WaylandClipboard.available():
            backend = WaylandClipboard()
        elif XclipClipboard.available():
            backend = XclipClipboard()
        else:
            backend = PyperclipClipboard()
        logger.info("clipboard backend: %s", backend.name)
        return backend
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(f"unknown clipboard backend {name!r}; choose from auto, {', '.join(BACKENDS)}") from None
