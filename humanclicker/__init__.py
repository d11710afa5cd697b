from __future__ import annotations
from .settings import ClickerSettings
from .activity import ActivityMonitor
from .clicker import (
    ClickScheduler,
    ClickerController,
    SystemClickEmitter,
    CdpClickEmitter,
    summarize_intervals,
    save_click_timeline_jpeg,
    recorder,
    set_timeline_callback,
)
from .probes import default_app_probe, StaticAppProbe

__all__ = [
    "ClickerSettings",
    "ActivityMonitor",
    "ClickScheduler",
    "ClickerController",
    "SystemClickEmitter",
    "CdpClickEmitter",
    "summarize_intervals",
    "save_click_timeline_jpeg",
    "recorder",
    "set_timeline_callback",
    "default_app_probe",
    "StaticAppProbe",
]
