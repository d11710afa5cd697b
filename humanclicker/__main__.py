"""Headless on/off switch for the clicker: runs until Ctrl-C or --duration."""

from __future__ import annotations
import argparse
import asyncio
import logging
import signal
from typing import List, Optional

from .activity import ActivityMonitor
from .clicker import (
    CdpClickEmitter,
    ClickerController,
    ClickScheduler,
    NullEmitter,
    PagePointer,
    SystemClickEmitter,
    recorder,
    save_click_timeline_jpeg,
    summarize_intervals,
)
from .probes import default_app_probe
from .settings import (
    DEFAULT_MAX_INTERVAL_MS,
    DEFAULT_MIN_INTERVAL_MS,
    DEFAULT_PAUSE_AFTER_INPUT_S,
    ClickerSettings,
)
from .utils import HiResTimer

logger = logging.getLogger("humanclicker")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="humanclicker",
        description="Click at the pointer on a randomized timer, pausing whenever you use the machine.",
    )
    parser.add_argument("--min-ms", type=int, default=DEFAULT_MIN_INTERVAL_MS, help="Minimum interval between clicks.")
    parser.add_argument("--max-ms", type=int, default=DEFAULT_MAX_INTERVAL_MS, help="Maximum interval between clicks.")
    parser.add_argument(
        "--pause",
        type=float,
        default=DEFAULT_PAUSE_AFTER_INPUT_S,
        help="Seconds of quiet input required before clicking resumes.",
    )
    parser.add_argument(
        "--app",
        default="",
        help="Only click while this application is frontmost (bundle id on macOS, exe name on Windows, process name on X11).",
    )
    parser.add_argument("--cdp-url", default=None, help="Click inside a browser page opened at this URL instead of the OS pointer.")
    parser.add_argument("--dry-run", action="store_true", help="Log clicks instead of performing them.")
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds.")
    parser.add_argument("--timeline", default=None, help="Save a click timeline JPEG here on exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


async def run(args: argparse.Namespace, settings: ClickerSettings) -> int:
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            pass  # Windows: KeyboardInterrupt reaches main() instead

    browser = None
    position_provider = None
    if args.cdp_url:
        import zendriver

        browser = await zendriver.start()
        page = await browser.get(args.cdp_url)
        emitter = CdpClickEmitter(page)
        position_provider = await PagePointer.centered(page)
    elif args.dry_run:
        emitter = NullEmitter()
    else:
        emitter = SystemClickEmitter()

    probe = default_app_probe() if settings.app_restriction_active else None
    scheduler = ClickScheduler(emitter, probe, position_provider=position_provider, loop=loop)
    scheduler.add_state_listener(
        lambda running: running or loop.call_soon_threadsafe(stop_event.set)
    )
    controller = ClickerController(scheduler, settings, ActivityMonitor())

    recorder.reset()
    try:
        # hooking system input blocks; keep it off the event loop
        await asyncio.to_thread(controller.enable)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=args.duration)
        except asyncio.TimeoutError:
            logger.info("Duration of %.1fs reached", args.duration)
    finally:
        await asyncio.to_thread(controller.disable)
        await scheduler.wait_stopped(timeout=2.0)
        if browser is not None:
            await browser.stop()

    print(summarize_intervals())
    if args.timeline:
        path = await save_click_timeline_jpeg(args.timeline)
        print(f"Timeline saved to {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        settings = ClickerSettings(
            min_interval_ms=args.min_ms,
            max_interval_ms=args.max_ms,
            pause_after_input_seconds=args.pause,
            restrict_to_app=bool(args.app),
            allowed_app_id=args.app,
        ).validate()
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    with HiResTimer():
        try:
            return asyncio.run(run(args, settings))
        except KeyboardInterrupt:
            return 130


if __name__ == "__main__":
    raise SystemExit(main())
