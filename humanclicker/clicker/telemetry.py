from __future__ import annotations
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional
from pathlib import Path as FSPath
import time
import logging

TimelineCallback = Optional[Callable[[FSPath], Awaitable[None]]]
_TIMELINE_CALLBACK: TimelineCallback = None

GATES = ("active", "cursor", "app", "position")


def set_timeline_callback(cb: TimelineCallback) -> None:
    """Register an async callback invoked whenever a timeline JPEG is saved."""
    global _TIMELINE_CALLBACK
    _TIMELINE_CALLBACK = cb
    logging.getLogger(__name__).info(
        "Click timeline callback %s", "registered" if cb else "cleared"
    )


@dataclass
class ClickEvent:
    """One scheduler decision worth keeping for analysis."""

    kind: str  # "click"|"skip"|"profile"|"failed"
    t: float  # seconds since recorder start (monotonic)
    x: Optional[float] = None
    y: Optional[float] = None
    delay_ms: Optional[float] = None  # wait drawn after a click
    multiplier: Optional[float] = None
    gate: Optional[str] = None  # for "skip": which gate held the click back


@dataclass
class ClickRecorder:
    """Collects click decisions during a session.

    Gate skips repeat every ~100 ms while a gate is closed, so only the first
    skip of a run of identical skips becomes an event; every skip is counted.
    """

    events: List[ClickEvent] = field(default_factory=list)
    skip_counts: Dict[str, int] = field(default_factory=dict)
    start_ts: float = field(default_factory=lambda: time.perf_counter())
    enabled: bool = True
    _last_gate: Optional[str] = field(default=None, repr=False)

    def _now(self) -> float:
        return time.perf_counter() - self.start_ts

    def log_click(self, x: float, y: float, delay_ms: float, multiplier: float) -> None:
        if not self.enabled:
            return
        self._last_gate = None
        self.events.append(ClickEvent("click", self._now(), x, y, delay_ms, multiplier))

    def log_skip(self, gate: str) -> None:
        if not self.enabled:
            return
        self.skip_counts[gate] = self.skip_counts.get(gate, 0) + 1
        if gate != self._last_gate:
            self.events.append(ClickEvent("skip", self._now(), gate=gate))
            self._last_gate = gate

    def log_profile(self, multiplier: float) -> None:
        if not self.enabled:
            return
        self.events.append(ClickEvent("profile", self._now(), multiplier=multiplier))

    def log_failure(self, x: float, y: float) -> None:
        if not self.enabled:
            return
        self.events.append(ClickEvent("failed", self._now(), x, y))

    def clicks(self) -> List[ClickEvent]:
        return [e for e in self.events if e.kind == "click"]

    def reset(self) -> None:
        """Clear all recorded events and reset the time origin to now."""
        self.events.clear()
        self.skip_counts.clear()
        self._last_gate = None
        self.start_ts = time.perf_counter()


# Singleton recorder
recorder = ClickRecorder()
