from .scheduler import ClickScheduler
from .controller import ClickerController
from .emitters import ActionEmitter, SystemClickEmitter, NullEmitter
from .cdp import CdpClickEmitter, PagePointer
from .profile import Profile, SessionProfile
from .render import save_click_timeline_jpeg
from .telemetry import recorder, set_timeline_callback, ClickRecorder
from .analysis import summarize_intervals

__all__ = [
    "ClickScheduler",
    "ClickerController",
    "ActionEmitter",
    "SystemClickEmitter",
    "NullEmitter",
    "CdpClickEmitter",
    "PagePointer",
    "Profile",
    "SessionProfile",
    "save_click_timeline_jpeg",
    "recorder",
    "set_timeline_callback",
    "ClickRecorder",
    "summarize_intervals",
]
