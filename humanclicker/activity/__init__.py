from .monitor import ActivityMonitor
from .sources import InputSignal, PynputInputSource, pynput_cursor_position

__all__ = [
    "ActivityMonitor",
    "InputSignal",
    "PynputInputSource",
    "pynput_cursor_position",
]
