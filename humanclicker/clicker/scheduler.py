from __future__ import annotations
import asyncio
import concurrent.futures
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from ..errors import SchedulerError
from ..utils import random_uniform
from . import telemetry
from .config import ccfg
from .emitters import ActionEmitter
from .profile import Profile, SessionProfile

logger = logging.getLogger(__name__)

Position = Tuple[float, float]
StateListener = Callable[[bool], None]


@dataclass
class _RunState:
    """Everything the loop reads and start/stop write; guarded by one lock."""

    running: bool = False
    generation: int = 0
    settings: Any = None
    monitor: Any = None
    handle: Any = None  # asyncio.Task or concurrent.futures.Future
    loop: Optional[asyncio.AbstractEventLoop] = None


class ClickScheduler:
    """Decides, cycle by cycle, whether to click and how long to wait.

    Settings and the activity monitor are held from start() until stop(), or
    until the loop ends on its own; settings are re-read every cycle.

    start()/stop() may be called from any thread. The loop itself runs as a
    task on an asyncio event loop: the running loop at start() time, or the
    `loop` given to the constructor when start() is called from elsewhere.
    Both block while the monitor hooks or unhooks system input (up to a few
    seconds), so async callers should run them via asyncio.to_thread.
    """

    def __init__(
        self,
        emitter: ActionEmitter,
        app_probe: Any = None,
        *,
        position_provider: Optional[Callable[[], Optional[Position]]] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        recorder: Optional[telemetry.ClickRecorder] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._emitter = emitter
        self._app_probe = app_probe
        self._position_provider = position_provider
        self._clock = clock
        self._app_cache: Optional[Tuple[float, Optional[str]]] = None
        self._rng = rng or random.Random()
        self._profile = SessionProfile(clock=clock, rng=self._rng)
        self._recorder = recorder if recorder is not None else telemetry.recorder
        self._default_loop = loop

        self._lock = threading.Lock()
        self._transition_lock = threading.Lock()
        self._state = _RunState()
        self._last_handle: Any = None
        self._state_listeners: List[StateListener] = []
        self._reported_bounds: set = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state.running

    @property
    def profile(self) -> Optional[Profile]:
        return self._profile.peek()

    def start(self, settings, activity_monitor) -> bool:
        """Begin clicking. Returns False (and changes nothing) if already running."""
        loop = self._target_loop()
        with self._transition_lock:
            with self._lock:
                if self._state.running:
                    logger.info("Already running, ignoring start request")
                    return False

            profile = self._profile.reset()
            logger.info(
                "Starting clicker: interval %s-%sms, multiplier %.2f, app restriction %s",
                settings.min_interval_ms,
                settings.max_interval_ms,
                profile.multiplier,
                f"enabled ({settings.allowed_app_id})"
                if settings.restrict_to_app
                else "disabled",
            )
            activity_monitor.start_monitoring(settings.pause_after_input_seconds)

            with self._lock:
                self._state.generation += 1
                generation = self._state.generation
                self._state.running = True
                self._state.settings = settings
                self._state.monitor = activity_monitor
                self._state.loop = loop
                self._app_cache = None
                self._state.handle = self._spawn(loop, generation)

        self._notify(True)
        return True

    def stop(self) -> bool:
        """Stop clicking. Returns False if it was not running."""
        with self._transition_lock:
            with self._lock:
                if not self._state.running and self._state.handle is None:
                    return False
                was_running = self._state.running
                self._state.running = False
                handle, loop = self._state.handle, self._state.loop
                monitor = self._state.monitor
                self._state.handle = None
                self._state.settings = None
                self._state.monitor = None

            logger.info("Stopping clicker")
            self._cancel(handle, loop)
            self._profile.discard()
            if monitor is not None:
                monitor.stop_monitoring()

        if was_running:
            self._notify(False)
        return True

    async def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Wait until the current (or last stopped) loop task has finished."""
        with self._lock:
            handle = self._state.handle or self._last_handle
        if handle is None:
            return True
        waitable = (
            asyncio.wrap_future(handle)
            if isinstance(handle, concurrent.futures.Future)
            else handle
        )
        done, _ = await asyncio.wait({waitable}, timeout=timeout)
        return bool(done)

    def add_state_listener(self, callback: StateListener) -> None:
        """Register callback(is_running); called on the thread that changed state."""
        self._state_listeners.append(callback)

    def _notify(self, running: bool) -> None:
        for callback in list(self._state_listeners):
            try:
                callback(running)
            except Exception:
                logger.warning("State listener failed", exc_info=True)

    def _target_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            pass
        if self._default_loop is not None and not self._default_loop.is_closed():
            return self._default_loop
        raise SchedulerError(
            "ClickScheduler.start() needs a running event loop or a loop= argument"
        )

    def _spawn(self, loop: asyncio.AbstractEventLoop, generation: int):
        coro = self._run_click_loop(generation)
        if _on_loop_thread(loop):
            handle = loop.create_task(coro)
        else:
            handle = asyncio.run_coroutine_threadsafe(coro, loop)
        self._last_handle = handle
        return handle

    @staticmethod
    def _cancel(handle, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        if handle is None:
            return
        if isinstance(handle, concurrent.futures.Future):
            handle.cancel()  # thread-safe; cancels the wrapped task
        elif loop is None or _on_loop_thread(loop):
            handle.cancel()
        elif not loop.is_closed():
            loop.call_soon_threadsafe(handle.cancel)

    # ------------------------------------------------------------------
    # Decision loop
    # ------------------------------------------------------------------

    def _snapshot(self, generation: int):
        """Consistent (settings, monitor) view, or None when the loop must end."""
        with self._lock:
            state = self._state
            if not state.running or state.generation != generation:
                logger.info("Click loop stopping (not running)")
                return None
            settings, monitor = state.settings, state.monitor
        if settings is None or monitor is None:
            logger.info("Click loop stopping (settings or activity monitor detached)")
            return None
        return settings, monitor

    async def _run_click_loop(self, generation: int) -> None:
        logger.info("Click loop started")
        iteration = 0
        last_gate: Optional[str] = None
        try:
            while True:
                iteration += 1
                outcome = await self._cycle(generation, iteration)
                if outcome is None:
                    break
                gate, wait_s = outcome
                if gate is not None:
                    if gate != last_gate or iteration % ccfg.GATE_LOG_EVERY == 0:
                        logger.debug("Paused: %s", gate)
                elif last_gate is not None:
                    logger.debug("Gates open again, resumed clicking")
                last_gate = gate
                await asyncio.sleep(wait_s)
        except asyncio.CancelledError:
            logger.debug("Click loop cancelled")
            raise
        except Exception:
            logger.exception("Click loop failed; stopping")
            self._abandon(generation)
        else:
            self._abandon(generation)
        finally:
            logger.info("Click loop ended after %d iterations", iteration)

    async def _cycle(
        self, generation: int, iteration: int
    ) -> Optional[Tuple[Optional[str], float]]:
        """Run one decision; return (closed gate or None, seconds to wait) or None to exit."""
        snapshot = self._snapshot(generation)
        if snapshot is None:
            return None
        settings, monitor = snapshot

        if iteration % ccfg.HEARTBEAT_LOG_EVERY == 0:
            logger.debug("Loop iteration %d, user active: %s", iteration, monitor.is_active)

        gate, backoff = await self._closed_gate(settings, monitor)
        if gate is not None:
            self._recorder.log_skip(gate)
            return gate, backoff

        position = self._current_position(monitor)
        if position is None:
            self._recorder.log_skip("position")
            return "position", ccfg.ACTIVITY_RECHECK_S

        await self._emit(monitor, position)

        profile, rotated = self._profile.refresh()
        if profile is None:
            # stop() landed while the click was in flight
            return None
        if rotated:
            self._recorder.log_profile(profile.multiplier)
        delay_ms = self.draw_delay_ms(settings, profile.multiplier)
        self._recorder.log_click(position[0], position[1], delay_ms, profile.multiplier)
        logger.debug("Next click in %.2fms (multiplier: %.2f)", delay_ms, profile.multiplier)
        return None, delay_ms / 1000.0

    def _abandon(self, generation: int) -> None:
        """Mark the scheduler stopped when the loop ends on its own."""
        with self._lock:
            if self._state.generation != generation or not self._state.running:
                return
            self._state.running = False
            self._state.handle = None
            monitor = self._state.monitor
            self._state.settings = None
            self._state.monitor = None
        self._profile.discard()
        if monitor is not None:
            monitor.stop_monitoring()
        self._notify(False)

    async def _closed_gate(self, settings, monitor) -> Tuple[Optional[str], float]:
        """Return (gate name, backoff seconds) of the first closed gate."""
        if monitor.is_active:
            return "active", ccfg.ACTIVITY_RECHECK_S
        if monitor.cursor_has_moved():
            return "cursor", ccfg.ACTIVITY_RECHECK_S
        allowed = (settings.allowed_app_id or "") if settings.restrict_to_app else ""
        if allowed:
            frontmost = await self._frontmost_app()
            if frontmost != allowed:
                if frontmost is None:
                    logger.debug("No frontmost app resolvable")
                return "app", ccfg.APP_MISMATCH_BACKOFF_S
        return None, 0.0

    async def _frontmost_app(self) -> Optional[str]:
        if self._app_probe is None:
            return None
        now = self._clock()
        cached = self._app_cache
        if cached is not None and now - cached[0] < ccfg.APP_PROBE_TTL_S:
            return cached[1]
        probe = getattr(self._app_probe, "current", self._app_probe)
        try:
            frontmost = await asyncio.to_thread(probe)
        except Exception:
            logger.debug("Frontmost app probe failed", exc_info=True)
            frontmost = None
        self._app_cache = (now, frontmost)
        return frontmost

    def _current_position(self, monitor) -> Optional[Position]:
        provider = self._position_provider or monitor.cursor_position
        try:
            return provider()
        except Exception:
            logger.debug("Cursor position unavailable", exc_info=True)
            return None

    async def _emit(self, monitor, position: Position) -> None:
        x, y = position
        note = getattr(monitor, "note_synthetic_click", None)
        if note is not None:
            note(x, y)
        logger.debug("Performing click at (%.0f, %.0f)", x, y)
        try:
            await self._emitter.click(x, y)
        except Exception:
            logger.warning(
                "Click at (%.0f, %.0f) failed; continuing", x, y, exc_info=True
            )
            self._recorder.log_failure(x, y)

    # ------------------------------------------------------------------
    # Interval math
    # ------------------------------------------------------------------

    def effective_bounds(self, settings) -> Tuple[int, int]:
        """Interval bounds in ms, clamped to 1 <= min <= max."""
        low = int(settings.min_interval_ms)
        high = int(settings.max_interval_ms)
        fixed_low = max(1, low)
        fixed_high = max(high, fixed_low)
        if (fixed_low, fixed_high) != (low, high) and (low, high) not in self._reported_bounds:
            self._reported_bounds.add((low, high))
            logger.warning(
                "Invalid interval bounds %s-%sms; using %s-%sms",
                low,
                high,
                fixed_low,
                fixed_high,
            )
        return fixed_low, fixed_high

    def draw_delay_ms(self, settings, multiplier: float) -> float:
        low, high = self.effective_bounds(settings)
        return random_uniform(low * multiplier, high * multiplier, self._rng)


def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
