"""Pytest configuration and fixtures for humanclicker tests."""

import asyncio

import pytest

from humanclicker.activity import ActivityMonitor
from humanclicker.clicker.config import ccfg
from humanclicker.clicker.telemetry import ClickRecorder
from humanclicker.errors import MonitorUnavailable


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePointer:
    """Position provider standing in for the OS pointer."""

    def __init__(self, x: float = 100.0, y: float = 200.0):
        self.position = (x, y)

    def __call__(self):
        return self.position


class FakeSource:
    """Input source that records lifecycle calls instead of hooking the OS."""

    instances = []

    def __init__(self, sink, fail: bool = False):
        self.sink = sink
        self.fail = fail
        self.started = False
        self.stopped = False
        FakeSource.instances.append(self)

    def start(self):
        if self.fail:
            raise MonitorUnavailable("not trusted")
        self.started = True

    def stop(self):
        self.stopped = True


class RecordingEmitter:
    """Emitter that remembers every click; optionally fails the first N."""

    def __init__(self, fail_first: int = 0):
        self.clicks = []
        self.fail_first = fail_first
        self.calls = 0

    async def click(self, x, y):
        self.calls += 1
        if self.calls <= self.fail_first:
            raise RuntimeError("synthetic click rejected")
        self.clicks.append((x, y))


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() >= deadline:
            return False
        await asyncio.sleep(interval)
    return True


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def pointer():
    return FakePointer()


@pytest.fixture
def monitor(pointer, clock):
    """ActivityMonitor wired to fakes, driven by a manual clock."""
    FakeSource.instances.clear()
    return ActivityMonitor(position_provider=pointer, source_factory=FakeSource, clock=clock)


@pytest.fixture
def live_monitor(pointer):
    """ActivityMonitor on the real monotonic clock, for scheduler tests."""
    FakeSource.instances.clear()
    return ActivityMonitor(position_provider=pointer, source_factory=FakeSource)


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def click_recorder():
    return ClickRecorder()


@pytest.fixture
def fast_gates(monkeypatch):
    """Shrink gate backoffs so scheduler tests run in milliseconds."""
    monkeypatch.setattr(ccfg, "ACTIVITY_RECHECK_S", 0.005)
    monkeypatch.setattr(ccfg, "APP_MISMATCH_BACKOFF_S", 0.005)
    monkeypatch.setattr(ccfg, "APP_PROBE_TTL_S", 0.0)


async def shutdown(scheduler) -> None:
    """Stop a scheduler and let its loop task finish before the event loop closes."""
    scheduler.stop()
    await scheduler.wait_stopped(timeout=1.0)
