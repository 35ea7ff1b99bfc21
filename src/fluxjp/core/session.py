"""Study sessions: build a bounded queue, feed items, requeue forgotten ones."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum

from fluxjp.core.errors import SessionError
from fluxjp.core.models import Item, ItemStatus, Settings, utcnow
from fluxjp.core.scheduler import Grade, review
from fluxjp.core.stats import DailyStatsAggregator
from fluxjp.core.storage import VocabDatabase

logger = logging.getLogger(__name__)

# Upper bound on items pulled into one run
MAX_CANDIDATES = 50


class SessionKind(StrEnum):
    """Kinds of study run."""

    CATCH_UP = "catch_up"  # learning/review items, due first
    LEARN_NEW = "learn_new"  # never-studied items
    REMEDIATION = "remediation"  # leeches
    CURATED = "curated"  # explicit id list, e.g. favorites


@dataclass
class StudySession:
    """In-memory state of one study run."""

    kind: SessionKind
    queue: list[Item]
    started_at: datetime = field(default_factory=utcnow)
    index: int = 0
    graded: int = 0
    forgotten: int = 0

    @property
    def completed(self) -> bool:
        # Queue grows on requeue, so compare against the live length
        return self.index >= len(self.queue)

    @property
    def remaining(self) -> int:
        return max(len(self.queue) - self.index, 0)

    @property
    def current_item(self) -> Item | None:
        if self.completed:
            return None
        return self.queue[self.index]


@dataclass
class GradeOutcome:
    """Result of grading the current item."""

    item: Item
    grade: Grade
    requeued: bool
    completed: bool
    remaining: int


class StudyEngine:
    """Drives study runs against an injected store.

    One engine owns at most one active session. Every grade is persisted,
    together with the day's statistics, before the session moves on.
    """

    def __init__(self, db: VocabDatabase, max_candidates: int = MAX_CANDIDATES):
        self.db = db
        self.stats = DailyStatsAggregator(db)
        self.max_candidates = max_candidates
        self.session: StudySession | None = None

    def settings(self) -> Settings:
        return self.db.get_settings() or Settings()

    def build_queue(
        self,
        kind: SessionKind,
        limit: int | None = None,
        item_ids: list[int] | None = None,
    ) -> list[Item]:
        """Select and order the candidate items for a run."""
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")
        cap = self.max_candidates if limit is None else min(limit, self.max_candidates)

        if kind == SessionKind.CATCH_UP:
            candidates = self.db.query_by_status(ItemStatus.LEARNING) + self.db.query_by_status(
                ItemStatus.REVIEW
            )
            # Earliest due first, so overdue items lead the run
            candidates.sort(key=lambda item: (item.due_date, item.id or 0))
        elif kind == SessionKind.LEARN_NEW:
            if limit is None:
                cap = min(self.settings().daily_new_limit, self.max_candidates)
            candidates = self.db.query_by_status(ItemStatus.NEW)
        elif kind == SessionKind.REMEDIATION:
            candidates = self.db.query_by_status(ItemStatus.LEECH)
        elif kind == SessionKind.CURATED:
            if item_ids is None:
                item_ids = [f.item_id for f in self.db.list_favorites() if f.item_id is not None]
            candidates = []
            seen: set[int] = set()
            for item_id in item_ids:
                if item_id in seen:
                    continue
                seen.add(item_id)
                item = self.db.get_by_id(item_id)
                if item is not None:
                    candidates.append(item)
        else:
            raise SessionError(f"Unknown session kind: {kind}")

        return candidates[:cap]

    def start_session(
        self,
        kind: SessionKind,
        limit: int | None = None,
        item_ids: list[int] | None = None,
    ) -> StudySession:
        """Start a new run, replacing any active one."""
        kind = SessionKind(kind)
        queue = self.build_queue(kind, limit=limit, item_ids=item_ids)
        self.session = StudySession(kind=kind, queue=queue)
        logger.info("Started %s session with %d item(s)", kind, len(queue))
        return self.session

    @property
    def current_item(self) -> Item | None:
        """The item awaiting a grade, or None when no run is in progress."""
        if self.session is None:
            return None
        return self.session.current_item

    def _require_session(self) -> StudySession:
        if self.session is None:
            raise SessionError("No active study session")
        if self.session.completed:
            raise SessionError("Study session is already complete")
        return self.session

    def submit_grade(self, grade: Grade, now: datetime | None = None) -> GradeOutcome:
        """Grade the current item and advance.

        The updated item and the day's statistics are written in one
        transaction. If the write fails the error propagates and the
        session does not move, so the same grade can be retried.
        """
        session = self._require_session()
        grade = Grade(grade)
        now = now or utcnow()
        item = session.current_item
        assert item is not None

        updated = review(item, grade, now)
        requeued = grade is Grade.FORGOTTEN
        will_complete = session.index + 1 >= len(session.queue) + (1 if requeued else 0)

        with self.db.transaction():
            (updated,) = self.db.upsert([updated])
            self.stats.record_review(grade, was_new=item.review_count == 0, day=_local_day(now))
            if will_complete:
                self._record_minutes(session, now)

        session.queue[session.index] = updated
        if requeued:
            session.queue.append(updated)
            session.forgotten += 1
        session.index += 1
        session.graded += 1
        logger.debug("Graded item %s as %s (%d left)", updated.id, grade.name, session.remaining)

        if session.completed:
            logger.info("Session complete: %d grade(s)", session.graded)
            self.session = None

        return GradeOutcome(
            item=updated,
            grade=grade,
            requeued=requeued,
            completed=session.completed,
            remaining=session.remaining,
        )

    def end_session(self, now: datetime | None = None) -> StudySession | None:
        """Abandon the active run.

        Already graded items stay as persisted; the rest of the queue is
        dropped.
        """
        session = self.session
        if session is None:
            return None
        self._record_minutes(session, now or utcnow())
        self.session = None
        logger.info("Session ended with %d item(s) left", session.remaining)
        return session

    def _record_minutes(self, session: StudySession, now: datetime) -> None:
        minutes = int((now - session.started_at).total_seconds() // 60)
        if minutes > 0:
            self.stats.record_study_time(minutes, day=_local_day(now))

    def dashboard(self, now: datetime | None = None) -> dict:
        """Counters for the study home screen."""
        now = now or utcnow()
        today = self.db.get_daily_stat(_local_day(now).isoformat())
        reviews_today = today.review_count if today else 0
        scheduled = self.db.query_by_status(ItemStatus.LEARNING) + self.db.query_by_status(
            ItemStatus.REVIEW
        )
        due_count = sum(1 for item in scheduled if item.is_due(now))
        return {
            "due_count": due_count,
            "ahead_count": len(scheduled) - due_count,
            "mastered_count": len(self.db.query_by_status(ItemStatus.MASTERED)),
            "new_count": len(self.db.query_by_status(ItemStatus.NEW)),
            "leech_count": len(self.db.query_by_status(ItemStatus.LEECH)),
            "new_learned_today": today.new_items_learned if today else 0,
            "reviews_today": reviews_today,
            "accuracy_today": (today.correct_count / reviews_today) if reviews_today else 0.0,
            "retention_rate": self.stats.retention_rate(today=_local_day(now)),
            "streak": self.stats.streak(_local_day(now)),
        }


def _local_day(now: datetime) -> date:
    """Calendar date of ``now`` in the local timezone."""
    return now.astimezone().date()
