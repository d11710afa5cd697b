from __future__ import annotations


class acfg:
    """Activity-detection tuning"""

    # Quiescence window used until start_monitoring() supplies one
    DEFAULT_PAUSE_S = 1.5

    # --- Self-click suppression ---
    # Button events at the scheduler's own click coordinate are ignored for
    # this long after the click is announced.
    SYNTHETIC_CLICK_WINDOW_S = 0.25
    SYNTHETIC_CLICK_TOLERANCE_PX = 1.0

    # --- Listener lifecycle ---
    LISTENER_READY_TIMEOUT_S = 2.0
    LISTENER_JOIN_TIMEOUT_S = 1.0
