"""Interval-ladder scheduler: maps (item, grade) to the item's next state."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum

from fluxjp.core.models import Item, ItemStatus, utcnow

# Day counts for successive successful reviews
INTERVAL_LADDER: tuple[int, ...] = (1, 2, 4, 7, 14, 30, 60, 120)

# Mastered items are pushed out of every realistic review horizon
MASTERED_HORIZON = timedelta(days=3650)


class Grade(IntEnum):
    """Grade reported by the learner for one presentation of an item."""

    FORGOTTEN = 1  # Could not recall
    REMEMBERED = 2  # Recalled correctly
    EASY = 3  # Trivial, never show again

    @property
    def is_correct(self) -> bool:
        return self is not Grade.FORGOTTEN

    @classmethod
    def parse(cls, value: str | int) -> Grade:
        """Parse a grade from its name, number or legacy button name."""
        if isinstance(value, int):
            return cls(value)
        legacy = {"kill": cls.EASY, "keep": cls.REMEMBERED, "forge": cls.FORGOTTEN}
        cleaned = value.strip().lower()
        if cleaned in legacy:
            return legacy[cleaned]
        if cleaned.isdigit():
            return cls(int(cleaned))
        try:
            return cls[cleaned.upper()]
        except KeyError:
            raise ValueError(f"Unknown grade: {value!r}") from None


def next_interval(current: int, ladder: tuple[int, ...] = INTERVAL_LADDER) -> int:
    """Return the first ladder step strictly greater than ``current``.

    Values at or beyond the top of the ladder clamp to its maximum. Values
    that are not on the ladder (migrated data) still move to the next
    larger step.
    """
    pos = bisect_right(ladder, current)
    if pos >= len(ladder):
        return ladder[-1]
    return ladder[pos]


def review(item: Item, grade: Grade, now: datetime | None = None) -> Item:
    """Apply one grade to an item and return its updated copy.

    The input item is not modified.

    - EASY: mastered from any state, due date pushed out of reach.
    - REMEMBERED: climbs the ladder only when the item was due; reviewing
      ahead of schedule only bumps the review counter.
    - FORGOTTEN: always a leech, interval reset, immediately relearnable.
    """
    now = now or utcnow()
    review_count = item.review_count + 1

    if grade is Grade.EASY:
        return item.model_copy(
            update={
                "status": ItemStatus.MASTERED,
                "due_date": now + MASTERED_HORIZON,
                "review_count": review_count,
            }
        )

    if grade is Grade.FORGOTTEN:
        return item.model_copy(
            update={
                "status": ItemStatus.LEECH,
                "interval": 0,
                "due_date": now,
                "leech_count": item.leech_count + 1,
                "review_count": review_count,
            }
        )

    # REMEMBERED
    if item.status is ItemStatus.MASTERED or not item.is_due(now):
        return item.model_copy(update={"review_count": review_count})

    interval = next_interval(item.interval)
    if item.status in (ItemStatus.NEW, ItemStatus.LEECH):
        status = ItemStatus.LEARNING
    else:
        status = ItemStatus.REVIEW
    return item.model_copy(
        update={
            "status": status,
            "interval": interval,
            "due_date": now + timedelta(days=interval),
            "review_count": review_count,
        }
    )


@dataclass
class GradePreview:
    """What each grade would do to an item, for button hints."""

    forgotten: datetime
    remembered: datetime
    easy: datetime
    remembered_interval: int


def preview_intervals(item: Item, now: datetime | None = None) -> GradePreview:
    """Preview the due date produced by each grade without applying any."""
    now = now or utcnow()
    remembered = review(item, Grade.REMEMBERED, now)
    return GradePreview(
        forgotten=review(item, Grade.FORGOTTEN, now).due_date,
        remembered=remembered.due_date,
        easy=review(item, Grade.EASY, now).due_date,
        remembered_interval=remembered.interval,
    )
