"""Backup documents: export the store, read foreign snapshots leniently."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError

from fluxjp.core.errors import BackupFormatError
from fluxjp.core.models import DailyStat, Favorite, FluxModel, Item, Settings, utcnow
from fluxjp.core.storage import VocabDatabase

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1


class Snapshot(FluxModel):
    """A full copy of a user's progress."""

    version: int = BACKUP_VERSION
    exported_at: datetime = Field(default_factory=utcnow)
    items: list[Item] = Field(default_factory=list)
    daily_stats: list[DailyStat] = Field(default_factory=list)
    settings: Settings | None = None
    favorites: list[Favorite] = Field(default_factory=list)


@dataclass
class LoadedSnapshot:
    """A parsed snapshot plus the number of records that failed validation."""

    snapshot: Snapshot
    skipped: int = 0


def export_snapshot(db: VocabDatabase) -> Snapshot:
    """Take a snapshot of everything in the store."""
    return Snapshot(
        items=db.list_items(),
        daily_stats=list(reversed(db.list_daily_stats())),
        settings=db.get_settings(),
        favorites=db.list_favorites(),
    )


def dump_snapshot(snapshot: Snapshot) -> dict:
    """Serialize a snapshot to the camelCase backup document."""
    return snapshot.model_dump(mode="json", by_alias=True)


def write_backup(path: Path, snapshot: Snapshot) -> Path:
    """Write a snapshot as a JSON backup file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dump_snapshot(snapshot), f, ensure_ascii=False, indent=2)
    return path


def _parse_records(raw: Any, model: type, label: str) -> tuple[list, int]:
    if raw is None:
        return [], 0
    if not isinstance(raw, list):
        raise BackupFormatError(f"'{label}' must be a list")
    parsed = []
    skipped = 0
    for index, record in enumerate(raw):
        try:
            parsed.append(model.model_validate(record))
        except ValidationError as e:
            skipped += 1
            logger.warning("Skipping invalid %s record #%d: %s", label, index, e.errors()[0]["msg"])
    return parsed, skipped


def parse_snapshot(data: Any) -> LoadedSnapshot:
    """Build a snapshot from a decoded backup document.

    Individual bad records are dropped and counted; only a document that is
    not a backup at all raises BackupFormatError.
    """
    if not isinstance(data, dict):
        raise BackupFormatError("Backup must be a JSON object")
    if "items" not in data:
        raise BackupFormatError("Backup has no 'items' field")

    items, skipped_items = _parse_records(data.get("items"), Item, "items")
    stats, skipped_stats = _parse_records(
        data.get("dailyStats", data.get("daily_stats")), DailyStat, "dailyStats"
    )
    favorites, skipped_favorites = _parse_records(data.get("favorites"), Favorite, "favorites")

    settings = None
    raw_settings = data.get("settings")
    # Some exports wrote the settings table as a list of rows
    if isinstance(raw_settings, list):
        raw_settings = raw_settings[0] if raw_settings else None
    if raw_settings is not None:
        try:
            settings = Settings.model_validate(raw_settings)
        except ValidationError:
            logger.warning("Ignoring invalid settings in backup")

    fields: dict[str, Any] = {
        "items": items,
        "daily_stats": stats,
        "settings": settings,
        "favorites": favorites,
    }
    version = data.get("version")
    if isinstance(version, int):
        fields["version"] = version
    exported_at = data.get("exportedAt", data.get("exported_at", data.get("date")))
    if exported_at is not None:
        fields["exported_at"] = exported_at
    try:
        snapshot = Snapshot.model_validate(fields)
    except ValidationError:
        logger.warning("Ignoring unreadable export date %r", exported_at)
        fields.pop("exported_at", None)
        snapshot = Snapshot.model_validate(fields)

    return LoadedSnapshot(snapshot=snapshot, skipped=skipped_items + skipped_stats + skipped_favorites)


def read_backup(path: Path) -> LoadedSnapshot:
    """Read and parse a backup file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise BackupFormatError(f"{path} is not valid JSON: {e}") from e
    return parse_snapshot(data)
