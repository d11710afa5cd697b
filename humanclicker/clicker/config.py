from __future__ import annotations


class ccfg:
    """Click scheduling tuning"""

    # --- Gate backoffs ---
    ACTIVITY_RECHECK_S = 0.1  # user active / cursor moved
    APP_MISMATCH_BACKOFF_S = 0.5  # app switches are not input-latency sensitive
    APP_PROBE_TTL_S = 0.25  # frontmost-app answer reused for this long

    # --- Session profile drift ---
    PROFILE_PERIOD_S = 600.0
    PROFILE_MULTIPLIER_RANGE = (0.85, 1.25)

    # --- Click shape ---
    CLICK_DOWN_UP_DELAY_S = (0.004, 0.012)
    POINTER_TOLERANCE_PX = 1.0

    # --- Diagnostics ---
    GATE_LOG_EVERY = 50  # iterations between repeated "paused: ..." lines
    HEARTBEAT_LOG_EVERY = 100

    # --- CDP dispatch (browser emitter) ---
    CDP_SEND_TIMEOUT_S = 0.05
    CDP_SEND_MIN_INTERVAL_S = 0.015
