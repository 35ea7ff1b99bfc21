"""Progress metrics: upcoming review load and the memory pipeline."""

from dataclasses import dataclass
from datetime import date, timedelta

from fluxjp.core.models import ItemStatus
from fluxjp.core.storage import VocabDatabase

# A day with more reviews than this is flagged as overloaded
OVERLOAD_THRESHOLD = 100

# Review intervals at or above this count as long-term memory
LONG_TERM_DAYS = 7


@dataclass
class DayLoad:
    """Reviews falling due on one day."""

    day: date
    count: int

    @property
    def is_overload(self) -> bool:
        return self.count > OVERLOAD_THRESHOLD


class ProgressMetrics:
    """Computes learning progress metrics from item states."""

    def __init__(self, db: VocabDatabase):
        self.db = db

    def future_load(self, days: int = 7, today: date | None = None) -> list[DayLoad]:
        """Learning/review items falling due on each of the next ``days`` days.

        Days are local calendar days starting today.
        """
        today = today or date.today()
        items = self.db.query_by_status(ItemStatus.LEARNING) + self.db.query_by_status(
            ItemStatus.REVIEW
        )
        due_days = [item.due_date.astimezone().date() for item in items]
        return [
            DayLoad(day=day, count=sum(1 for d in due_days if d == day))
            for day in (today + timedelta(days=i) for i in range(days))
        ]

    def memory_pipeline(self) -> dict[str, int]:
        """Count items at each stage from unseen to mastered.

        Leeches are folded into ``learning``; review items are split into
        short- and long-term by interval.
        """
        counts = {status: 0 for status in ItemStatus}
        short_term = long_term = 0
        for item in self.db.list_items():
            counts[item.status] += 1
            if item.status is ItemStatus.REVIEW:
                if item.interval >= LONG_TERM_DAYS:
                    long_term += 1
                else:
                    short_term += 1
        return {
            "new": counts[ItemStatus.NEW],
            "learning": counts[ItemStatus.LEARNING] + counts[ItemStatus.LEECH],
            "short_term": short_term,
            "long_term": long_term,
            "mastered": counts[ItemStatus.MASTERED],
            "total": sum(counts.values()),
        }

    def mastery_percentage(self) -> float:
        """Fraction of items that are mastered.

        Returns 0.0 if there are no items.
        """
        pipeline = self.memory_pipeline()
        if pipeline["total"] == 0:
            return 0.0
        return pipeline["mastered"] / pipeline["total"]

