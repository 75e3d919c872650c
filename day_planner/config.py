"""Layout, drag and reminder configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PlannerConfig:
    """Named constants shared by the timeline, drag controller and scheduler."""

    day_start_hour: int = 5
    pixels_per_hour: float = 80.0
    snap_minutes: int = 15
    # Total vertical displacement, in pixels, that separates a tap from a drag.
    drag_threshold_px: float = 5.0
    min_display_minutes: int = 15
    horizon_days: int = 30
    snooze_minutes: int = 5

    def __post_init__(self) -> None:
        if not 0 <= self.day_start_hour <= 23:
            raise ValueError(f"day_start_hour must be within 0..23, got {self.day_start_hour}")
        if self.pixels_per_hour <= 0:
            raise ValueError("pixels_per_hour must be positive")
        if self.snap_minutes <= 0 or 60 % self.snap_minutes:
            raise ValueError("snap_minutes must be a positive divisor of 60")
        if self.horizon_days < 1:
            raise ValueError("horizon_days must be at least 1")

    @classmethod
    def from_settings(cls, settings: Any) -> "PlannerConfig":
        """Build a config from any object exposing the same attribute names."""

        defaults = cls()
        return cls(
            day_start_hour=getattr(settings, "day_start_hour", defaults.day_start_hour),
            pixels_per_hour=getattr(settings, "pixels_per_hour", defaults.pixels_per_hour),
            snap_minutes=getattr(settings, "snap_minutes", defaults.snap_minutes),
            drag_threshold_px=getattr(settings, "drag_threshold_px", defaults.drag_threshold_px),
            min_display_minutes=getattr(settings, "min_display_minutes", defaults.min_display_minutes),
            horizon_days=getattr(settings, "horizon_days", defaults.horizon_days),
            snooze_minutes=getattr(settings, "snooze_minutes", defaults.snooze_minutes),
        )


DEFAULT_CONFIG = PlannerConfig()
