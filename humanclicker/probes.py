from __future__ import annotations
import ctypes
import logging
import os
import platform
import subprocess
from typing import Optional

PROBE_TIMEOUT_S: float = 1.0

_MAC_FRONTMOST_SCRIPT = (
    'tell application "System Events" to get bundle identifier of '
    "first application process whose frontmost is true"
)


class FrontmostAppProbe:
    """Answers "which application is frontmost" as an identifier string.

    `None` means nothing could be resolved; callers treat it as "not the
    allowed app". Probes are blocking and are run off the event loop.
    """

    def current(self) -> Optional[str]:
        raise NotImplementedError


class StaticAppProbe(FrontmostAppProbe):
    """Always reports the same identifier (tests, dry runs, CDP mode)."""

    def __init__(self, app_id: Optional[str] = None):
        self.app_id = app_id

    def current(self) -> Optional[str]:
        return self.app_id


def _run(args) -> Optional[str]:
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=PROBE_TIMEOUT_S,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logging.getLogger(__name__).debug("Probe command %s failed: %s", args[0], exc)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


class MacAppProbe(FrontmostAppProbe):
    """Bundle identifier of the frontmost process, via System Events."""

    def current(self) -> Optional[str]:
        return _run(["osascript", "-e", _MAC_FRONTMOST_SCRIPT])


class WindowsAppProbe(FrontmostAppProbe):
    """Executable name (e.g. ``notepad.exe``) owning the foreground window."""

    _PROCESS_QUERY_LIMITED_INFORMATION = 0x1000

    def current(self) -> Optional[str]:
        try:
            user32 = ctypes.windll.user32  # type: ignore[attr-defined]
            kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        except AttributeError:
            return None

        hwnd = user32.GetForegroundWindow()
        if not hwnd:
            return None
        pid = ctypes.c_ulong()
        user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        handle = kernel32.OpenProcess(
            self._PROCESS_QUERY_LIMITED_INFORMATION, False, pid.value
        )
        if not handle:
            return None
        try:
            size = ctypes.c_ulong(1024)
            buffer = ctypes.create_unicode_buffer(size.value)
            if not kernel32.QueryFullProcessImageNameW(
                handle, 0, buffer, ctypes.byref(size)
            ):
                return None
            return os.path.basename(buffer.value) or None
        finally:
            kernel32.CloseHandle(handle)


class X11AppProbe(FrontmostAppProbe):
    """Process name owning the focused X11 window (needs ``xdotool``)."""

    def current(self) -> Optional[str]:
        pid = _run(["xdotool", "getactivewindow", "getwindowpid"])
        if not pid or not pid.isdigit():
            return None
        try:
            with open(f"/proc/{pid}/comm", encoding="utf-8") as fh:
                return fh.read().strip() or None
        except OSError:
            return None


def default_app_probe() -> FrontmostAppProbe:
    """Pick the probe for the running platform."""
    system = platform.system()
    if system == "Darwin":
        return MacAppProbe()
    if system == "Windows":
        return WindowsAppProbe()
    return X11AppProbe()
