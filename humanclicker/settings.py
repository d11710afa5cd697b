from __future__ import annotations
from dataclasses import dataclass
import logging

DEFAULT_MIN_INTERVAL_MS: int = 80
DEFAULT_MAX_INTERVAL_MS: int = 120
DEFAULT_PAUSE_AFTER_INPUT_S: float = 1.5


@dataclass
class ClickerSettings:
    """User-facing clicker configuration.

    Owned by the controller/UI layer. The scheduler only reads it, once per
    decision cycle, so edits take effect on the next cycle without a restart.
    """

    min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS
    max_interval_ms: int = DEFAULT_MAX_INTERVAL_MS
    pause_after_input_seconds: float = DEFAULT_PAUSE_AFTER_INPUT_S
    restrict_to_app: bool = False
    allowed_app_id: str = ""

    def validate_intervals(self) -> None:
        """Repair interval bounds in place (min >= 1, max >= min)."""
        if self.min_interval_ms < 1:
            logging.getLogger(__name__).warning(
                "min_interval_ms=%s is below 1; resetting to %s",
                self.min_interval_ms,
                DEFAULT_MIN_INTERVAL_MS,
            )
            self.min_interval_ms = DEFAULT_MIN_INTERVAL_MS
        if self.max_interval_ms < self.min_interval_ms:
            self.max_interval_ms = self.min_interval_ms

    def validate(self) -> "ClickerSettings":
        """Repair intervals and reject values that cannot be repaired."""
        if self.pause_after_input_seconds <= 0:
            raise ValueError(
                f"pause_after_input_seconds must be > 0, got {self.pause_after_input_seconds}"
            )
        self.validate_intervals()
        self.allowed_app_id = (self.allowed_app_id or "").strip()
        return self

    @property
    def app_restriction_active(self) -> bool:
        return bool(self.restrict_to_app and self.allowed_app_id)
