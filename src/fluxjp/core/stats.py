"""Per-day study statistics and streaks."""

from datetime import date, timedelta

from fluxjp.core.models import DailyStat
from fluxjp.core.scheduler import Grade
from fluxjp.core.storage import VocabDatabase


class DailyStatsAggregator:
    """Maintains one counter record per local calendar day."""

    def __init__(self, db: VocabDatabase):
        self.db = db

    def get_or_create(self, day: date | None = None) -> DailyStat:
        """Get the stat record for a day, creating an empty one if needed."""
        key = (day or date.today()).isoformat()
        stat = self.db.get_daily_stat(key)
        if stat is None:
            stat = DailyStat(date=key)
            self.db.put_daily_stat(stat)
        return stat

    def record_review(self, grade: Grade, was_new: bool, day: date | None = None) -> DailyStat:
        """Count one grading event.

        Args:
            grade: The grade given
            was_new: True if the item had never been reviewed before
            day: Day to record against (default: today)
        """
        stat = self.get_or_create(day)
        updated = stat.model_copy(
            update={
                "review_count": stat.review_count + 1,
                "correct_count": stat.correct_count + (1 if grade.is_correct else 0),
                "new_items_learned": stat.new_items_learned + (1 if was_new else 0),
            }
        )
        self.db.put_daily_stat(updated)
        return updated

    def record_study_time(self, minutes: int, day: date | None = None) -> DailyStat:
        """Add study minutes to a day. Negative values are rejected."""
        if minutes < 0:
            raise ValueError("minutes must be non-negative")
        stat = self.get_or_create(day)
        updated = stat.model_copy(update={"study_minutes": stat.study_minutes + minutes})
        self.db.put_daily_stat(updated)
        return updated

    def recent(self, days: int = 7, today: date | None = None) -> list[DailyStat]:
        """Stat records for the last ``days`` days, newest first."""
        today = today or date.today()
        since = today - timedelta(days=days - 1)
        return [s for s in self.db.list_daily_stats(since.isoformat()) if s.day <= today]

    def _active_days(self) -> set[date]:
        return {s.day for s in self.db.list_daily_stats() if s.review_count > 0}

    def streak(self, today: date | None = None) -> int:
        """Count consecutive study days ending today.

        Starts from yesterday when nothing has been reviewed today yet, so
        the streak doesn't break mid-day before a review.
        """
        today = today or date.today()
        active = self._active_days()
        check = today if today in active else today - timedelta(days=1)
        streak = 0
        while check in active:
            streak += 1
            check -= timedelta(days=1)
        return streak

    def longest_streak(self) -> int:
        """Longest run of consecutive study days ever recorded."""
        days = sorted(self._active_days())
        if not days:
            return 0
        longest = streak = 1
        for prev, cur in zip(days, days[1:]):
            if cur - prev == timedelta(days=1):
                streak += 1
                longest = max(longest, streak)
            else:
                streak = 1
        return longest

    def totals(self) -> dict:
        """Lifetime totals across all recorded days."""
        stats = self.db.list_daily_stats()
        total_reviews = sum(s.review_count for s in stats)
        total_correct = sum(s.correct_count for s in stats)
        return {
            "total_reviews": total_reviews,
            "total_correct": total_correct,
            "total_study_minutes": sum(s.study_minutes for s in stats),
            "total_new_learned": sum(s.new_items_learned for s in stats),
            "average_accuracy": (total_correct / total_reviews * 100) if total_reviews else 0.0,
        }

    def retention_rate(self, days: int = 30, today: date | None = None) -> float:
        """Fraction of correct grades over the last ``days`` days.

        Returns 0.0 if nothing was reviewed in the window.
        """
        window = self.recent(days, today)
        reviews = sum(s.review_count for s in window)
        if reviews == 0:
            return 0.0
        return sum(s.correct_count for s in window) / reviews
