"""Bulk import of raw word lists."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from fluxjp.core.models import Item, Level, utcnow
from fluxjp.core.storage import VocabDatabase

logger = logging.getLogger(__name__)

BATCH_SIZE = 2000


@dataclass
class ImportReport:
    """Outcome of a bulk import."""

    added: int = 0
    skipped: int = 0
    duplicates: int = 0

    @property
    def total(self) -> int:
        return self.added + self.skipped + self.duplicates


def _first_text(entries: Any) -> str:
    if isinstance(entries, list) and entries:
        first = entries[0]
        if isinstance(first, dict):
            return str(first.get("text") or "")
        return str(first)
    return ""


def normalize_record(record: Any, default_level: Level = Level.N5) -> dict | None:
    """Map one raw row onto Item fields.

    Three shapes are understood:

    - simple: ``{"kanji": "...", "kana": "...", "meaning": "...", "level": "N4"}``
    - JMdict-simplified: ``kanji``/``kana`` are lists of ``{"text": ...}`` and the
      meaning is taken from ``sense[0].gloss``
    - term: ``{"term": "...", "reading": "...", "meaning": "..."}``

    Returns None for rows that match none of them.
    """
    if not isinstance(record, dict):
        return None

    kanji = record.get("kanji", record.get("word"))
    if isinstance(kanji, str):
        return {
            "word": kanji,
            "reading": record.get("kana") or record.get("reading") or "",
            "meaning": record.get("meaning") or record.get("gloss") or "",
            "level": record.get("level") or default_level,
            "pos": record.get("pos") or "",
            "tags": record.get("tags") or [],
            "sentence": record.get("sentence"),
            "sentence_meaning": record.get("sentence_meaning"),
        }

    if isinstance(kanji, list) or isinstance(record.get("kana"), list):
        kana = _first_text(record.get("kana"))
        word = _first_text(kanji) or kana or "?"
        meaning = ""
        senses = record.get("sense")
        if isinstance(senses, list) and senses and isinstance(senses[0], dict):
            glosses = senses[0].get("gloss")
            if isinstance(glosses, list):
                meaning = "; ".join(
                    str(g.get("text", "")) if isinstance(g, dict) else str(g) for g in glosses
                )
        return {"word": word, "reading": kana, "meaning": meaning, "level": default_level}

    if record.get("term"):
        return {
            "word": record["term"],
            "reading": record.get("reading") or "",
            "meaning": record.get("meaning") or "",
            "level": default_level,
        }

    return None


async def import_items(
    db: VocabDatabase,
    records: Iterable[Any],
    default_level: Level = Level.N5,
    chunk_size: int = BATCH_SIZE,
) -> ImportReport:
    """Insert raw rows as new items, one chunk per transaction.

    Rows without a word or meaning are skipped. Rows whose (word, level)
    already exists, locally or earlier in the same import, are counted as
    duplicates and not inserted.
    """
    report = ImportReport()
    seen: set[tuple[str, Level]] = set()
    pending: list[Item] = []

    async def flush() -> None:
        with db.transaction():
            db.upsert(pending)
        report.added += len(pending)
        logger.debug("Imported %d item(s) so far", report.added)
        pending.clear()
        await asyncio.sleep(0)

    for record in records:
        fields = normalize_record(record, default_level)
        if fields is None or not fields.get("meaning"):
            report.skipped += 1
            continue
        try:
            item = Item.model_validate({**fields, "due_date": utcnow()})
        except ValidationError:
            report.skipped += 1
            continue

        if item.key in seen or db.find_by_key(item.word, item.level) is not None:
            report.duplicates += 1
            continue
        seen.add(item.key)
        pending.append(item)
        if len(pending) >= chunk_size:
            await flush()

    if pending:
        await flush()

    if report.skipped:
        logger.warning("Skipped %d invalid row(s) during import", report.skipped)
    return report
