"""
Fixed Interval-Ladder Spaced Repetition Scheduler.

Each review item carries a strength level in [0, 5]. A review grade moves
the level along the ladder and the next review time is looked up from a
fixed interval table indexed by the resulting level:

Level:    0   1   2   3   4    5
Days:     0   1   3   7   14   30

Grade Scale:
hard (low)    - level - 1, floored at 0
good (normal) - level + 1, capped at 5
easy (high)   - level + 2, capped at 5

The transition is deterministic and has no hidden state, so the same
(level, grade) pair always yields the same result whichever backend the
item lives in.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from loguru import logger

from frflow.core.models import ReviewItem, now_ms

DAY_MS = 86_400_000


class ReviewQuality(str, Enum):
    """Recall quality reported by the learner."""

    HARD = "hard"  # low
    GOOD = "good"  # normal
    EASY = "easy"  # high

    @classmethod
    def parse(cls, value: str | ReviewQuality) -> ReviewQuality:
        """Accept both the surface names and low/normal/high."""
        if isinstance(value, ReviewQuality):
            return value
        normalized = str(value).strip().lower()
        aliases = {"low": cls.HARD, "normal": cls.GOOD, "high": cls.EASY}
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized)


@dataclass
class LadderConfig:
    """Configuration for the interval ladder."""

    interval_days: tuple[int, ...] = (0, 1, 3, 7, 14, 30)
    steps: dict[ReviewQuality, int] = field(
        default_factory=lambda: {
            ReviewQuality.HARD: -1,
            ReviewQuality.GOOD: 1,
            ReviewQuality.EASY: 2,
        }
    )

    @property
    def max_level(self) -> int:
        return len(self.interval_days) - 1


class LadderScheduler:
    """
    Applies review grades to items using the fixed interval ladder.

    Stored levels outside the ladder (corrupted data) are clamped before the
    transition instead of being rejected.
    """

    def __init__(self, config: LadderConfig | None = None):
        self.config = config or LadderConfig()

    def clamp(self, level: int) -> int:
        return max(0, min(self.config.max_level, level))

    def next_level(self, level: int, quality: ReviewQuality | str) -> int:
        """Resulting strength level after a grade."""
        quality = ReviewQuality.parse(quality)
        return self.clamp(self.clamp(level) + self.config.steps[quality])

    def interval_ms(self, level: int) -> int:
        return self.config.interval_days[self.clamp(level)] * DAY_MS

    def schedule(
        self,
        item: ReviewItem,
        quality: ReviewQuality | str,
        now: int | None = None,
    ) -> ReviewItem:
        """
        Calculate the next review state for an item.

        Args:
            item: Current review item (not modified)
            quality: Learner grade
            now: Review time in ms (defaults to the current time)

        Returns:
            A copy of the item with updated strength level and next review
        """
        now = now_ms() if now is None else now
        quality = ReviewQuality.parse(quality)

        if item.strength_level != self.clamp(item.strength_level):
            logger.warning(
                f"Clamping out-of-range strength level {item.strength_level} on {item.id}"
            )

        level = self.next_level(item.strength_level, quality)
        return replace(
            item,
            strength_level=level,
            next_review_at=now + self.interval_ms(level),
        )


_default_scheduler = LadderScheduler()


def schedule(
    item: ReviewItem,
    quality: ReviewQuality | str,
    now: int | None = None,
) -> ReviewItem:
    """Schedule with the default ladder."""
    return _default_scheduler.schedule(item, quality, now=now)
