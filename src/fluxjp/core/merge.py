"""Fold a foreign progress snapshot into the local store.

The merge never regresses progress and never duplicates records:

- Items match on (word, level). The side whose status ranks higher wins
  wholesale; ties go to the higher review count, and a full tie keeps the
  local record. The local id always survives so favorites stay valid.
- Daily stats match on date and take the per-counter maximum. Both sides
  may have counted the same day, so counters are never summed.
- Favorites match on (word, reading) and are only added when an item with
  that word and reading exists after the item merge.
- Settings are adopted only when the local store has none.

Everything runs in one store transaction: a failure leaves the store as it
was before the merge started.
"""

import asyncio
import logging
from dataclasses import dataclass

from fluxjp.core.backup import Snapshot
from fluxjp.core.errors import MergeError
from fluxjp.core.models import DailyStat, Item, ItemStatus
from fluxjp.core.storage import VocabDatabase

logger = logging.getLogger(__name__)

# Records processed between yields to the event loop
DEFAULT_CHUNK_SIZE = 2000

STATUS_PRIORITY: dict[ItemStatus, int] = {
    ItemStatus.NEW: 1,
    ItemStatus.LEARNING: 2,
    ItemStatus.REVIEW: 3,
    ItemStatus.LEECH: 4,
    ItemStatus.MASTERED: 5,
}


@dataclass
class MergeReport:
    """Counts of what a merge did."""

    items_inserted: int = 0
    items_updated: int = 0
    items_unchanged: int = 0
    stats_merged: int = 0
    favorites_added: int = 0
    favorites_dropped: int = 0
    settings_adopted: bool = False
    skipped: int = 0


def foreign_wins(local: Item, foreign: Item) -> bool:
    """Whether the foreign copy of an item carries more advanced progress."""
    local_rank = STATUS_PRIORITY[local.status]
    foreign_rank = STATUS_PRIORITY[foreign.status]
    if local_rank != foreign_rank:
        return foreign_rank > local_rank
    return foreign.review_count > local.review_count


def merge_daily_stat(local: DailyStat, foreign: DailyStat) -> DailyStat:
    """Per-counter maximum of two records for the same day."""
    return DailyStat(
        date=local.date,
        review_count=max(local.review_count, foreign.review_count),
        correct_count=max(local.correct_count, foreign.correct_count),
        new_items_learned=max(local.new_items_learned, foreign.new_items_learned),
        study_minutes=max(local.study_minutes, foreign.study_minutes),
    )


def _merge_item(db: VocabDatabase, foreign: Item, report: MergeReport) -> None:
    local = db.find_by_key(foreign.word, foreign.level)
    if local is None:
        db.upsert([foreign.model_copy(update={"id": None})])
        report.items_inserted += 1
    elif foreign_wins(local, foreign):
        db.upsert([foreign.model_copy(update={"id": local.id})])
        report.items_updated += 1
    else:
        report.items_unchanged += 1


async def merge_snapshot(
    db: VocabDatabase,
    snapshot: Snapshot,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    skipped: int = 0,
) -> MergeReport:
    """Merge ``snapshot`` into ``db`` as one transaction.

    Yields to the event loop between chunks of ``chunk_size`` items so a
    large restore doesn't starve the host.

    Args:
        db: Local store
        snapshot: Foreign snapshot to fold in
        chunk_size: Items processed between yields
        skipped: Records already dropped while parsing the snapshot

    Returns:
        MergeReport with per-category counts

    Raises:
        MergeError: if anything fails; nothing is applied in that case
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    report = MergeReport(skipped=skipped)
    try:
        with db.transaction():
            items = snapshot.items
            for start in range(0, len(items), chunk_size):
                for foreign in items[start : start + chunk_size]:
                    _merge_item(db, foreign, report)
                logger.debug("Merged items %d-%d", start, min(start + chunk_size, len(items)))
                await asyncio.sleep(0)

            for foreign_stat in snapshot.daily_stats:
                local_stat = db.get_daily_stat(foreign_stat.date)
                merged = foreign_stat if local_stat is None else merge_daily_stat(local_stat, foreign_stat)
                if merged != local_stat:
                    db.put_daily_stat(merged)
                    report.stats_merged += 1

            for favorite in snapshot.favorites:
                if db.find_favorite(favorite.word, favorite.reading) is not None:
                    continue
                target = db.find_by_reading(favorite.word, favorite.reading)
                if target is None:
                    report.favorites_dropped += 1
                    continue
                db.add_favorite(favorite.model_copy(update={"id": None, "item_id": target.id}))
                report.favorites_added += 1

            if snapshot.settings is not None and db.get_settings() is None:
                db.save_settings(snapshot.settings)
                report.settings_adopted = True
    except Exception as e:
        logger.error("Merge failed and was rolled back: %s", e)
        raise MergeError(f"Merge failed and was rolled back: {e}") from e

    logger.info(
        "Merge done: %d inserted, %d updated, %d unchanged, %d skipped",
        report.items_inserted,
        report.items_updated,
        report.items_unchanged,
        report.skipped,
    )
    return report
