from __future__ import annotations
import ctypes
import platform
import random
from typing import Optional


class HiResTimer:
    """Context manager to request 1ms Windows system timer resolution.

    Short click intervals rely on asyncio.sleep waking close to its deadline;
    on Windows the default ~15.6ms tick makes an 80ms interval drift badly.
    On other platforms, it is a no-op.
    """

    def __enter__(self):
        if ctypes and platform.system() == "Windows":
            ctypes.windll.winmm.timeBeginPeriod(1)
        return self

    def __exit__(self, exc_type, exc, tb):
        if ctypes and platform.system() == "Windows":
            ctypes.windll.winmm.timeEndPeriod(1)


def random_uniform(a: float, b: float, rng: Optional[random.Random] = None) -> float:
    """Return a random float between a and b, agnostic to order."""
    lo, hi = (a, b) if a <= b else (b, a)
    return (rng or random).uniform(lo, hi)
