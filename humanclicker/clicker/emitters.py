from __future__ import annotations
import asyncio
import logging
import random
import threading
import time
from typing import Any, Optional, Protocol

from .config import ccfg


class ActionEmitter(Protocol):
    """Performs a click at a coordinate. No result, no error channel."""

    async def click(self, x: float, y: float) -> None:
        ...


class SystemClickEmitter:
    """Left click at the OS pointer through pynput.

    The pointer is never repositioned: if it no longer sits at the requested
    coordinate (the user grabbed the mouse between the gate checks and the
    click), the click is dropped.
    """

    def __init__(self, controller: Any = None, *, button: Any = None):
        self._controller = controller
        self._button = button
        self._lock = threading.Lock()

    def _resolve(self):
        if self._controller is None or self._button is None:
            from pynput import mouse

            if self._controller is None:
                self._controller = mouse.Controller()
            if self._button is None:
                self._button = mouse.Button.left
        return self._controller, self._button

    async def click(self, x: float, y: float) -> None:
        # Runs to completion in the worker thread even if the awaiting task is
        # cancelled, so a press is never left without its release.
        await asyncio.to_thread(self._click_blocking, float(x), float(y))

    def _click_blocking(self, x: float, y: float) -> None:
        with self._lock:
            controller, button = self._resolve()
            current_x, current_y = controller.position
            tolerance = ccfg.POINTER_TOLERANCE_PX
            if abs(current_x - x) > tolerance or abs(current_y - y) > tolerance:
                logging.getLogger(__name__).info(
                    "Pointer moved to (%.0f, %.0f) before click at (%.0f, %.0f); skipped",
                    current_x,
                    current_y,
                    x,
                    y,
                )
                return
            controller.press(button)
            time.sleep(random.uniform(*ccfg.CLICK_DOWN_UP_DELAY_S))
            controller.release(button)
        logging.getLogger(__name__).debug("Click performed at (%.0f, %.0f)", x, y)


class NullEmitter:
    """Dry-run emitter: logs instead of clicking."""

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level
        self.count = 0
        self.last_position: Optional[tuple] = None

    async def click(self, x: float, y: float) -> None:
        self.count += 1
        self.last_position = (float(x), float(y))
        logging.getLogger(__name__).log(
            self.log_level, "[dry-run] click #%d at (%.0f, %.0f)", self.count, x, y
        )
