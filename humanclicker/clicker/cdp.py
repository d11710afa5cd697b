from __future__ import annotations
import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional, Tuple
from zendriver import cdp

from .config import ccfg


class ViewportUnavailable(RuntimeError):
    """Raised when viewport size cannot be determined from CDP."""

    pass


def _resolve_mouse_button(name: str = "left") -> Any:
    """Return a CDP-compatible mouse button object (enum or shim)."""
    button_enum = getattr(cdp.input_, "MouseButton", None)
    if button_enum is not None:
        for attr in (name, name.upper(), name.capitalize()):
            if hasattr(button_enum, attr):
                return getattr(button_enum, attr)
        try:
            return button_enum(name)
        except Exception:
            pass

    class _ButtonShim:
        def __init__(self, value: str):
            self._value = value

        def to_json(self) -> str:
            return self._value

    return _ButtonShim(name)


async def get_viewport(
    page,
    *,
    timeout_seconds: float = 1.5,
    poll_interval_seconds: float = 0.05,
) -> Tuple[int, int]:
    """Return the page's layout viewport (width, height) in CSS pixels."""

    def _val(obj: Any, name: str) -> int:
        try:
            if isinstance(obj, dict):
                return int(float(obj.get(name, 0)))
            return int(float(getattr(obj, name, 0)))
        except Exception:
            return 0

    async def _try_layout_metrics() -> Tuple[int, int]:
        raw = await page.send(cdp.page.get_layout_metrics())
        if isinstance(raw, tuple):
            raw = raw[0] if raw else {}
        layout = raw.get("layoutViewport") if isinstance(raw, dict) else raw
        return _val(layout, "client_width") or _val(layout, "clientWidth"), _val(
            layout, "client_height"
        ) or _val(layout, "clientHeight")

    async def _try_runtime() -> Tuple[int, int]:
        resp = await page.send(
            cdp.runtime.evaluate(
                expression="({w: window.innerWidth || 0, h: window.innerHeight || 0})",
                return_by_value=True,
            )
        )
        if isinstance(resp, tuple):
            resp = resp[0] if resp else {}
        value = getattr(resp, "value", None)
        if isinstance(resp, dict):
            value = (resp.get("result") or {}).get("value")
        if not isinstance(value, dict):
            return 0, 0
        return int(value.get("w", 0)), int(value.get("h", 0))

    start = time.perf_counter()
    last_error: Optional[BaseException] = None
    while (time.perf_counter() - start) < timeout_seconds:
        for attempt in (_try_layout_metrics, _try_runtime):
            try:
                width, height = await attempt()
            except Exception as exc:
                last_error = exc
                continue
            if width > 0 and height > 0:
                return width, height
        await asyncio.sleep(poll_interval_seconds)

    raise ViewportUnavailable(
        f"Viewport did not become ready within {timeout_seconds:.2f}s"
        + (f" last error: {last_error!r}" if last_error else "")
    )


class CdpClickEmitter:
    """Clicks inside a zendriver page via Input.dispatchMouseEvent.

    CDP input is delivered to the page directly: the OS pointer does not move
    and window focus does not change.
    """

    def __init__(self, page, *, button_name: str = "left"):
        self.page = page
        self.button_name = button_name
        self._send_lock = asyncio.Lock()
        self._last_send_ts: Optional[float] = None

    async def _send(self, fn: Callable[[], Awaitable[Any]], *, label: str) -> None:
        """Bounded-time CDP send; late sends finish in the background."""
        logger = logging.getLogger(__name__)
        async with self._send_lock:
            now = time.perf_counter()
            if self._last_send_ts is not None:
                gap = now - self._last_send_ts
                if gap < ccfg.CDP_SEND_MIN_INTERVAL_S:
                    await asyncio.sleep(ccfg.CDP_SEND_MIN_INTERVAL_S - gap)

            send_task = asyncio.ensure_future(fn())
            start = time.perf_counter()
            try:
                await asyncio.wait_for(
                    asyncio.shield(send_task), timeout=ccfg.CDP_SEND_TIMEOUT_S
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "CDP %s pending %.1f ms (>%.0f ms); letting it finish in background",
                    label,
                    (time.perf_counter() - start) * 1000.0,
                    ccfg.CDP_SEND_TIMEOUT_S * 1000.0,
                )
            except Exception:
                logger.warning("CDP %s failed (skipped this event)", label, exc_info=True)
            finally:
                self._last_send_ts = time.perf_counter()

    def _mouse_event(self, type_: str, x: float, y: float):
        return cdp.input_.dispatch_mouse_event(
            type_=type_,
            x=float(x),
            y=float(y),
            button=_resolve_mouse_button(self.button_name),
            click_count=1,
        )

    async def click(self, x: float, y: float) -> None:
        """Press, short human-like delay, release at (x, y)."""
        await self._send(
            lambda: self.page.send(self._mouse_event("mousePressed", x, y)),
            label="mousePressed",
        )
        try:
            await asyncio.sleep(random.uniform(*ccfg.CLICK_DOWN_UP_DELAY_S))
        finally:
            await self._send(
                lambda: self.page.send(self._mouse_event("mouseReleased", x, y)),
                label="mouseReleased",
            )
            setattr(self.page, "_mouse_pos", (float(x), float(y)))


class PagePointer:
    """Position provider for CDP mode: the page's last dispatched pointer."""

    def __init__(self, page, fallback: Tuple[float, float]):
        self.page = page
        self.fallback = (float(fallback[0]), float(fallback[1]))

    def __call__(self) -> Tuple[float, float]:
        position = getattr(self.page, "_mouse_pos", None)
        if position is None:
            return self.fallback
        return float(position[0]), float(position[1])

    @classmethod
    async def centered(cls, page) -> "PagePointer":
        width, height = await get_viewport(page)
        return cls(page, (width / 2.0, height / 2.0))
