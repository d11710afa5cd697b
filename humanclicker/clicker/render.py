from __future__ import annotations
import asyncio
import logging
from typing import Dict, Optional, Tuple
from pathlib import Path as FSPath
from PIL import Image, ImageDraw

from .config import ccfg
from . import telemetry
from .analysis import _quantile

_GATE_COLORS: Dict[str, Tuple[int, int, int]] = {
    "active": (255, 90, 90),
    "cursor": (255, 170, 60),
    "app": (180, 120, 255),
    "position": (150, 150, 150),
}


def _multiplier_to_rgb(value, v_min, v_max):
    """
    Map a profile multiplier to RGB:
      - low  => blue (0, 120, 255)
      - mid  => green (60, 205, 60)
      - high => red  (255, 60, 60)
    Uses two-segment interpolation: blue->green->red.
    """
    if v_max <= v_min:
        t = 0.0
    else:
        t = (value - v_min) / (v_max - v_min)
    t = max(0.0, min(1.0, t))

    if t <= 0.5:
        u = t / 0.5
        r0, g0, b0 = (0, 120, 255)
        r1, g1, b1 = (60, 205, 60)
    else:
        u = (t - 0.5) / 0.5
        r0, g0, b0 = (60, 205, 60)
        r1, g1, b1 = (255, 60, 60)
    return (
        int(r0 + (r1 - r0) * u),
        int(g0 + (g1 - g0) * u),
        int(b0 + (b1 - b0) * u),
    )


async def save_click_timeline_jpeg(
    outfile: str = "click_timeline.jpg",
    *,
    recorder: Optional[telemetry.ClickRecorder] = None,
    width: int = 960,
    height: int = 360,
    background_color: Tuple[int, int, int] = (12, 12, 14),
    point_radius: int = 3,
    canvas_margin: int = 30,
    annotate: bool = True,
) -> str:
    """
    Render the session as a timeline JPEG: one dot per click at (time, drawn
    delay), coloured by the profile multiplier in effect; gate pauses as
    coloured ticks along the bottom; profile rotations as vertical lines.
    Rendering is offloaded to a worker thread to avoid blocking the event loop.
    """
    recorder = recorder or telemetry.recorder
    events_snapshot = list(recorder.events)

    def _render() -> str:
        canvas_width = width + canvas_margin * 2 + 90  # extra room for legend
        canvas_height = height + canvas_margin * 2
        image = Image.new("RGB", (canvas_width, canvas_height), background_color)
        draw = ImageDraw.Draw(image)

        clicks = [e for e in events_snapshot if e.kind == "click"]
        if not clicks:
            if annotate:
                draw.text(
                    (canvas_margin, canvas_margin),
                    "No clicks recorded",
                    fill=(180, 180, 180),
                )
            image.save(outfile, format="JPEG", quality=92, optimize=True)
            return outfile

        t_end = max(e.t for e in events_snapshot) or 1.0
        delays = [e.delay_ms or 0.0 for e in clicks]
        d_max = max(delays) or 1.0
        v_min, v_max = ccfg.PROFILE_MULTIPLIER_RANGE

        def to_canvas(t: float, delay: float) -> Tuple[float, float]:
            x = canvas_margin + (t / t_end) * (width - 1)
            y = canvas_margin + height - 1 - (delay / d_max) * (height - 12)
            return x, y

        for ev in events_snapshot:
            if ev.kind == "profile":
                x, _ = to_canvas(ev.t, 0.0)
                draw.line(
                    [(x, canvas_margin), (x, canvas_margin + height)],
                    fill=(90, 90, 110),
                    width=1,
                )
            elif ev.kind == "skip":
                x, _ = to_canvas(ev.t, 0.0)
                color = _GATE_COLORS.get(ev.gate or "", (150, 150, 150))
                base = canvas_margin + height
                draw.line([(x, base - 6), (x, base)], fill=color, width=2)

        for ev in clicks:
            x, y = to_canvas(ev.t, ev.delay_ms or 0.0)
            color = _multiplier_to_rgb(ev.multiplier or 1.0, v_min, v_max)
            draw.ellipse(
                [x - point_radius, y - point_radius, x + point_radius, y + point_radius],
                fill=color,
                outline=None,
            )

        legend_left = canvas_margin + width + 20
        legend_top = canvas_margin
        legend_height = max(80, height - 40)
        legend_width = 18
        for i in range(legend_height):
            t = i / max(1, legend_height - 1)
            value = v_max - t * (v_max - v_min)
            draw.line(
                [
                    (legend_left, legend_top + i),
                    (legend_left + legend_width, legend_top + i),
                ],
                fill=_multiplier_to_rgb(value, v_min, v_max),
                width=1,
            )
        draw.rectangle(
            [
                legend_left - 1,
                legend_top - 1,
                legend_left + legend_width + 1,
                legend_top + legend_height + 1,
            ],
            outline=(200, 200, 200),
            width=1,
        )
        label_x = legend_left + legend_width + 6
        draw.text((label_x, legend_top - 2), f"x{v_max:.2f}", fill=(220, 220, 220))
        draw.text(
            (label_x, legend_top + legend_height - 10),
            f"x{v_min:.2f}",
            fill=(220, 220, 220),
        )

        if annotate:
            summary = (
                f"Clicks: {len(clicks)} | delay ms p50 {_quantile(delays, 0.5):.1f} | "
                f"p95 {_quantile(delays, 0.95):.1f} | max {d_max:.1f} | "
                f"span {t_end:.1f}s"
            )
            draw.text(
                (canvas_margin, canvas_height - canvas_margin + 8),
                summary,
                fill=(200, 200, 200),
            )
            draw.text(
                (canvas_margin, 8),
                f"delay (0..{d_max:.0f} ms) over time",
                fill=(160, 160, 160),
            )

        image.save(outfile, format="JPEG", quality=92, optimize=True)
        return outfile

    outfile_path = await asyncio.to_thread(_render)

    cb = telemetry._TIMELINE_CALLBACK
    if cb is not None:
        try:
            asyncio.create_task(cb(FSPath(outfile_path)))
        except Exception:
            logging.getLogger(__name__).debug(
                "Failed to dispatch timeline callback", exc_info=True
            )
    else:
        logging.getLogger(__name__).debug(
            "Timeline saved to %s but no timeline callback is registered",
            outfile_path,
        )

    return outfile_path
