from __future__ import annotations
from typing import Callable, List, Optional, Tuple
import logging
import threading
import time

from ..errors import MonitorUnavailable
from .config import acfg
from .sources import InputSignal, InputSink, PynputInputSource, pynput_cursor_position

Position = Tuple[float, float]
PositionProvider = Callable[[], Optional[Position]]
SourceFactory = Callable[[InputSink], object]
ActivityListener = Callable[[bool], None]

logger = logging.getLogger(__name__)


class ActivityMonitor:
    """Tracks whether the user is currently interacting with the machine.

    Input sources push InputSignal objects into feed() from their own threads.
    A flagged signal (re)arms a single expiry deadline `pause_duration` seconds
    in the future; is_active is true until that deadline passes. Pointer motion
    only counts when the coordinate actually changes, so a synthetic click at
    the already-sampled position does not register as user activity.
    """

    def __init__(
        self,
        *,
        position_provider: Optional[PositionProvider] = None,
        source_factory: Optional[SourceFactory] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._lock = threading.Lock()
        self._position_provider = position_provider or pynput_cursor_position
        self._source_factory = source_factory or PynputInputSource
        self._clock = clock

        self._source = None
        self._monitoring = False
        self._pause_duration = acfg.DEFAULT_PAUSE_S
        self._active_until: Optional[float] = None
        self._last_position: Optional[Position] = self._read_position()
        self._synthetic_click: Optional[Tuple[float, float, float]] = None
        self._listeners: List[ActivityListener] = []
        self._reported_active = False

        self.degraded = False
        self._degradation_reported = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_monitoring(self, pause_duration: float) -> None:
        """(Re)start observation with the given quiescence window in seconds."""
        self.stop_monitoring()
        logger.info("Starting activity monitoring (pause %.2fs)", pause_duration)

        with self._lock:
            self._pause_duration = float(pause_duration)
            self._last_position = self._read_position()
            self._monitoring = True
            self.degraded = False

        source = self._source_factory(self.feed)
        try:
            source.start()
        except MonitorUnavailable as exc:
            with self._lock:
                self.degraded = True
            if not self._degradation_reported:
                logger.warning(
                    "System-wide input monitoring unavailable (%s); clicks will "
                    "not pause for input this process cannot see",
                    exc,
                )
                self._degradation_reported = True
            else:
                logger.debug("Input monitoring still unavailable: %s", exc)
            return

        with self._lock:
            self._source = source

    def stop_monitoring(self) -> None:
        """Release listeners, clear the active flag and any pending expiry.

        Joins the input source's threads, so this can block for a moment.
        """
        with self._lock:
            source = self._source
            self._source = None
            self._monitoring = False
            self._active_until = None
            self._synthetic_click = None
            edges = self._take_falling_edge_locked()
        # Stop outside the lock: listener threads may be blocked in feed().
        if source is not None:
            source.stop()
            logger.info("Activity monitoring stopped")
        self._dispatch(edges)

    @property
    def monitoring(self) -> bool:
        with self._lock:
            return self._monitoring

    @property
    def pause_duration(self) -> float:
        with self._lock:
            return self._pause_duration

    # ------------------------------------------------------------------
    # Reads (scheduler side)
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        """True while input occurred within the last pause_duration seconds.

        The pause ending is noticed here, so listeners hear about it on the
        first read after the deadline.
        """
        with self._lock:
            active = self._is_active_locked(self._clock())
            edges = [] if active else self._take_falling_edge_locked(announce=True)
        self._dispatch(edges)
        return active

    def _is_active_locked(self, now: float) -> bool:
        return self._active_until is not None and now < self._active_until

    def _take_falling_edge_locked(
        self, announce: bool = False
    ) -> List[Tuple[ActivityListener, bool]]:
        if not self._reported_active:
            return []
        self._reported_active = False
        if announce:
            logger.info("User inactive, pause ended, resuming clicks")
        return [(callback, False) for callback in self._listeners]

    def cursor_has_moved(self) -> bool:
        """Edge-triggered: True once per pointer coordinate change."""
        position = self._read_position()
        if position is None:
            return False
        with self._lock:
            if position != self._last_position:
                self._last_position = position
                return True
            return False

    def cursor_position(self) -> Optional[Position]:
        return self._read_position()

    def note_synthetic_click(self, x: float, y: float) -> None:
        """Announce an upcoming synthetic click so its button events are ignored."""
        with self._lock:
            self._synthetic_click = (
                float(x),
                float(y),
                self._clock() + acfg.SYNTHETIC_CLICK_WINDOW_S,
            )

    # ------------------------------------------------------------------
    # Signal sink (input-source side)
    # ------------------------------------------------------------------

    def feed(self, signal: InputSignal) -> None:
        """Process one input signal; safe to call from any thread."""
        if signal.injected:
            return
        with self._lock:
            if not self._monitoring:
                return
            now = self._clock()
            if signal.kind == "move":
                position = signal.position
                if position is None or position == self._last_position:
                    return
                self._last_position = position
            elif signal.kind == "button":
                if self._is_own_click_locked(signal, now):
                    return
            elif signal.kind not in ("key", "scroll"):
                return

            was_active = self._is_active_locked(now)
            self._active_until = now + self._pause_duration
            pause = self._pause_duration
            edges = []
            if not was_active:
                # an expiry nobody read yet still gets its falling edge first
                edges = self._take_falling_edge_locked()
                edges += [(callback, True) for callback in self._listeners]
                self._reported_active = True

        if not was_active:
            logger.info("User activity detected (%s), pausing for %.2fs", signal.kind, pause)
        self._dispatch(edges)

    @staticmethod
    def _dispatch(edges: List[Tuple[ActivityListener, bool]]) -> None:
        for callback, active in edges:
            try:
                callback(active)
            except Exception:
                logger.warning("Activity listener failed", exc_info=True)

    def _is_own_click_locked(self, signal: InputSignal, now: float) -> bool:
        if self._synthetic_click is None or signal.position is None:
            return False
        sx, sy, expires_at = self._synthetic_click
        if now > expires_at:
            self._synthetic_click = None
            return False
        x, y = signal.position
        tolerance = acfg.SYNTHETIC_CLICK_TOLERANCE_PX
        return abs(x - sx) <= tolerance and abs(y - sy) <= tolerance

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_listener(self, callback: ActivityListener) -> None:
        """Register callback(is_active), fired on each change of the active flag.

        The rising edge is called on the input source's thread, the falling
        edge on whichever thread reads is_active or stops monitoring; UI code
        must marshal it.
        """
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: ActivityListener) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _read_position(self) -> Optional[Position]:
        position = self._position_provider()
        if position is None:
            return None
        return float(position[0]), float(position[1])
