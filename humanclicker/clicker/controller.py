from __future__ import annotations
from typing import Optional

from ..activity import ActivityMonitor
from ..settings import ClickerSettings
from .scheduler import ClickScheduler


class ClickerController:
    """Owner of settings and monitor; the on/off switch a UI binds to.

    The scheduler only holds weak references to both, so this object must
    stay alive for as long as clicking should continue.
    """

    def __init__(
        self,
        scheduler: ClickScheduler,
        settings: Optional[ClickerSettings] = None,
        monitor: Optional[ActivityMonitor] = None,
    ):
        self.scheduler = scheduler
        self.settings = settings or ClickerSettings()
        self.monitor = monitor or ActivityMonitor()

    @property
    def enabled(self) -> bool:
        return self.scheduler.is_running

    def enable(self) -> bool:
        self.settings.validate_intervals()
        return self.scheduler.start(self.settings, self.monitor)

    def disable(self) -> bool:
        return self.scheduler.stop()

    def toggle(self) -> bool:
        """Flip the switch; returns the new enabled state."""
        if self.enabled:
            self.disable()
        else:
            self.enable()
        return self.enabled
