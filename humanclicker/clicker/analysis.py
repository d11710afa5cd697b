from __future__ import annotations
import math
from typing import List, Optional, Sequence

from . import telemetry


def _quantile(values: Sequence[float], q: float) -> float:
    """Robust quantile (0..1) with linear interpolation."""
    if not values:
        return 0.0
    q = min(1.0, max(0.0, float(q)))
    data = sorted(values)
    idx = q * (len(data) - 1)
    lo = int(math.floor(idx))
    hi = int(math.ceil(idx))
    if lo == hi:
        return data[lo]
    frac = idx - lo
    return data[lo] * (1 - frac) + data[hi] * frac


def click_gaps_ms(recorder: Optional[telemetry.ClickRecorder] = None) -> List[float]:
    """Observed wall time between consecutive clicks, in milliseconds."""
    clicks = (recorder or telemetry.recorder).clicks()
    return [(b.t - a.t) * 1000.0 for a, b in zip(clicks, clicks[1:])]


def summarize_intervals(recorder: Optional[telemetry.ClickRecorder] = None) -> str:
    """Summarize the session: click count, gaps between clicks, gate skips.

    Gaps include time spent paused behind a gate, so p95/max show how long
    user activity held the clicker back; the drawn delays do not.
    """
    recorder = recorder or telemetry.recorder
    clicks = recorder.clicks()
    if not clicks:
        return "No clicks recorded"

    lines = [f"clicks={len(clicks)}"]
    gaps = click_gaps_ms(recorder)
    if gaps:
        lines.append(
            f"gap ms: avg={sum(gaps) / len(gaps):.1f}, p50={_quantile(gaps, 0.5):.1f}, "
            f"p95={_quantile(gaps, 0.95):.1f}, min={min(gaps):.1f}, max={max(gaps):.1f}"
        )
    delays = [e.delay_ms for e in clicks if e.delay_ms is not None]
    if delays:
        lines.append(
            f"drawn delay ms: avg={sum(delays) / len(delays):.1f}, "
            f"min={min(delays):.1f}, max={max(delays):.1f}"
        )
    multipliers = sorted({round(e.multiplier, 3) for e in clicks if e.multiplier})
    rotations = sum(1 for e in recorder.events if e.kind == "profile")
    lines.append(
        f"profiles={rotations}, multipliers={', '.join(f'{m:.2f}' for m in multipliers)}"
    )
    if recorder.skip_counts:
        skipped = ", ".join(
            f"{gate}={count}" for gate, count in sorted(recorder.skip_counts.items())
        )
        lines.append(f"skipped cycles: {skipped}")
    failures = sum(1 for e in recorder.events if e.kind == "failed")
    if failures:
        lines.append(f"failed clicks={failures}")
    return " | ".join(lines)
