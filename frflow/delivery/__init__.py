"""Review scheduling."""

from .scheduler import DAY_MS, LadderConfig, LadderScheduler, ReviewQuality, schedule

__all__ = ["DAY_MS", "LadderConfig", "LadderScheduler", "ReviewQuality", "schedule"]
