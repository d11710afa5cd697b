from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import logging
import random
import threading
import time

from ..utils import random_uniform
from .config import ccfg


@dataclass(frozen=True)
class Profile:
    """One drift period: interval bounds are scaled by `multiplier`."""

    started_at: float
    multiplier: float


class SessionProfile:
    """Time-anchored rotation of the interval multiplier.

    The multiplier is redrawn once `period_s` seconds have elapsed since the
    current profile started, independently of how many clicks happened in
    between. Check-and-regenerate is a single critical section.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        period_s: Optional[float] = None,
        multiplier_range: Optional[Tuple[float, float]] = None,
    ):
        self._lock = threading.Lock()
        self._clock = clock
        self._rng = rng or random.Random()
        self.period_s = float(period_s if period_s is not None else ccfg.PROFILE_PERIOD_S)
        self.multiplier_range = multiplier_range or ccfg.PROFILE_MULTIPLIER_RANGE
        self._profile: Optional[Profile] = None

    def _draw(self, now: float) -> Profile:
        lo, hi = self.multiplier_range
        return Profile(started_at=now, multiplier=random_uniform(lo, hi, self._rng))

    def reset(self) -> Profile:
        """Start a fresh profile anchored at the current time."""
        with self._lock:
            self._profile = self._draw(self._clock())
            return self._profile

    def discard(self) -> None:
        with self._lock:
            self._profile = None

    def peek(self) -> Optional[Profile]:
        with self._lock:
            return self._profile

    def refresh(self) -> Tuple[Optional[Profile], bool]:
        """Return the active profile, rotating it first if its period is over.

        The second element tells whether a rotation happened on this call.
        A discarded profile stays discarded: (None, False) until reset().
        """
        with self._lock:
            now = self._clock()
            if self._profile is None:
                return None, False
            if now - self._profile.started_at >= self.period_s:
                previous = self._profile.multiplier
                self._profile = self._draw(now)
                logging.getLogger(__name__).info(
                    "Profile rotated after %.0fs: multiplier %.2f -> %.2f",
                    self.period_s,
                    previous,
                    self._profile.multiplier,
                )
                return self._profile, True
            return self._profile, False
