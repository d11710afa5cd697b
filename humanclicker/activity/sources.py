from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import logging
import threading
import time

from ..errors import MonitorUnavailable
from .config import acfg

Position = Tuple[float, float]


@dataclass(frozen=True)
class InputSignal:
    """One observed input event, as pushed into ActivityMonitor.feed()."""

    kind: str  # "move"|"button"|"key"|"scroll"
    x: Optional[float] = None
    y: Optional[float] = None
    injected: bool = False  # reported as synthetic by the OS hook

    @property
    def position(self) -> Optional[Position]:
        if self.x is None or self.y is None:
            return None
        return float(self.x), float(self.y)


InputSink = Callable[[InputSignal], None]

_controller_lock = threading.Lock()
_mouse_controller = None


def pynput_cursor_position() -> Optional[Position]:
    """Return the live pointer position, or None when it cannot be read."""
    global _mouse_controller
    try:
        with _controller_lock:
            if _mouse_controller is None:
                from pynput import mouse

                _mouse_controller = mouse.Controller()
            x, y = _mouse_controller.position
        return float(x), float(y)
    except Exception:
        logging.getLogger(__name__).debug(
            "Cursor position unavailable", exc_info=True
        )
        return None


def _injected(rest: tuple) -> bool:
    # Recent pynput releases append an `injected` flag to every callback.
    return bool(rest[0]) if rest else False


class PynputInputSource:
    """System-wide pointer and keyboard hooks feeding an InputSink.

    Callbacks run on pynput's listener threads; the sink must be thread-safe.
    start() waits for both listener threads to come up and stop() joins them,
    so neither belongs on an event loop thread.
    """

    def __init__(self, sink: InputSink):
        self._sink = sink
        self._mouse_listener = None
        self._keyboard_listener = None

    def start(self) -> None:
        try:
            from pynput import keyboard, mouse
        except Exception as exc:
            raise MonitorUnavailable(f"pynput backend unavailable: {exc}") from exc

        try:
            self._mouse_listener = mouse.Listener(
                on_move=self._on_move,
                on_click=self._on_click,
                on_scroll=self._on_scroll,
            )
            self._keyboard_listener = keyboard.Listener(
                on_press=self._on_key, on_release=self._on_key
            )
            self._mouse_listener.start()
            self._keyboard_listener.start()
            self._wait_ready(self._mouse_listener)
            self._wait_ready(self._keyboard_listener)
        except Exception as exc:
            self.stop()
            raise MonitorUnavailable(f"input listeners failed to start: {exc}") from exc

        # macOS: listeners start but receive nothing without Accessibility access
        if not getattr(self._mouse_listener, "IS_TRUSTED", True):
            self.stop()
            raise MonitorUnavailable(
                "process is not trusted to monitor input "
                "(grant Accessibility / Input Monitoring permission)"
            )

    @staticmethod
    def _wait_ready(listener) -> None:
        deadline = time.monotonic() + acfg.LISTENER_READY_TIMEOUT_S
        while not getattr(listener, "running", True) and listener.is_alive():
            if time.monotonic() >= deadline:
                break
            time.sleep(0.01)
        if not listener.is_alive():
            raise MonitorUnavailable("input listener thread exited during startup")

    def stop(self) -> None:
        for listener in (self._mouse_listener, self._keyboard_listener):
            if listener is None:
                continue
            try:
                listener.stop()
                if listener.is_alive() and listener is not threading.current_thread():
                    listener.join(acfg.LISTENER_JOIN_TIMEOUT_S)
            except Exception:
                logging.getLogger(__name__).debug(
                    "Listener stop failed", exc_info=True
                )
        self._mouse_listener = None
        self._keyboard_listener = None

    def _on_move(self, x, y, *rest) -> None:
        self._sink(InputSignal("move", x, y, _injected(rest)))

    def _on_click(self, x, y, button, pressed, *rest) -> None:
        if pressed:
            self._sink(InputSignal("button", x, y, _injected(rest)))

    def _on_scroll(self, x, y, dx, dy, *rest) -> None:
        self._sink(InputSignal("scroll", x, y, _injected(rest)))

    def _on_key(self, key, *rest) -> None:
        self._sink(InputSignal("key", injected=_injected(rest)))
