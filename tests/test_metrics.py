"""Tests for ProgressMetrics."""

import tempfile
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path

import pytest

from fluxjp.core.metrics import OVERLOAD_THRESHOLD, DayLoad, ProgressMetrics
from fluxjp.core.models import Item, ItemStatus
from fluxjp.core.storage import VocabDatabase


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db(temp_dir):
    return VocabDatabase(temp_dir / "fluxjp.db")


@pytest.fixture
def metrics(db):
    return ProgressMetrics(db)


def _local_noon(day: date) -> datetime:
    return datetime.combine(day, time(12, 0)).astimezone().astimezone(UTC)


class TestFutureLoad:
    def test_counts_per_day(self, db, metrics):
        today = date(2025, 4, 1)
        db.upsert(
            [
                Item(word="a", status=ItemStatus.REVIEW, due_date=_local_noon(today)),
                Item(word="b", status=ItemStatus.LEARNING, due_date=_local_noon(today)),
                Item(word="c", status=ItemStatus.REVIEW, due_date=_local_noon(today + timedelta(days=2))),
                Item(word="d", status=ItemStatus.MASTERED, due_date=_local_noon(today)),
                Item(word="e", status=ItemStatus.REVIEW, due_date=_local_noon(today + timedelta(days=9))),
            ]
        )

        loads = metrics.future_load(days=7, today=today)

        assert len(loads) == 7
        assert loads[0] == DayLoad(day=today, count=2)
        assert loads[1].count == 0
        assert loads[2].count == 1
        assert sum(load.count for load in loads) == 3

    def test_overload_flag(self):
        assert DayLoad(day=date.today(), count=OVERLOAD_THRESHOLD + 1).is_overload
        assert not DayLoad(day=date.today(), count=OVERLOAD_THRESHOLD).is_overload


class TestMemoryPipeline:
    def test_stages(self, db, metrics):
        db.upsert(
            [
                Item(word="n1"),
                Item(word="n2"),
                Item(word="l", status=ItemStatus.LEARNING, interval=1),
                Item(word="x", status=ItemStatus.LEECH),
                Item(word="s", status=ItemStatus.REVIEW, interval=4),
                Item(word="t", status=ItemStatus.REVIEW, interval=7),
                Item(word="m", status=ItemStatus.MASTERED),
            ]
        )

        pipeline = metrics.memory_pipeline()

        assert pipeline == {
            "new": 2,
            "learning": 2,
            "short_term": 1,
            "long_term": 1,
            "mastered": 1,
            "total": 7,
        }

    def test_mastery_percentage(self, db, metrics):
        assert metrics.mastery_percentage() == 0.0

        db.upsert([Item(word="a", status=ItemStatus.MASTERED), Item(word="b")])

        assert metrics.mastery_percentage() == pytest.approx(0.5)
