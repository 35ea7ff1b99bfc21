"""Statistics routes."""

from datetime import date

from fastapi import APIRouter, Depends

from fluxjp.core.metrics import ProgressMetrics
from fluxjp.core.session import StudyEngine
from fluxjp.core.stats import DailyStatsAggregator
from fluxjp.core.storage import VocabDatabase
from fluxjp.web.dependencies import get_db, get_engine

router = APIRouter()


@router.get("")
async def stats(
    days: int = 7,
    db: VocabDatabase = Depends(get_db),
    engine: StudyEngine = Depends(get_engine),
):
    """Dashboard counters, streaks, pipeline and upcoming load."""
    aggregator = DailyStatsAggregator(db)
    metrics = ProgressMetrics(db)
    today = date.today()
    return {
        "dashboard": engine.dashboard(),
        "totals": aggregator.totals(),
        "longest_streak": aggregator.longest_streak(),
        "recent": [s.model_dump(mode="json", by_alias=True) for s in aggregator.recent(days, today)],
        "pipeline": metrics.memory_pipeline(),
        "future_load": [
            {"date": load.day.isoformat(), "count": load.count, "overload": load.is_overload}
            for load in metrics.future_load(today=today)
        ],
    }
