from __future__ import annotations


class ClickerError(RuntimeError):
    """Base class for humanclicker errors."""

    pass


class MonitorUnavailable(ClickerError):
    """Raised by an input source that cannot observe system-wide input."""

    pass


class SchedulerError(ClickerError):
    """Raised when the click scheduler is driven outside a usable event loop."""

    pass
