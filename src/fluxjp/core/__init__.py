"""Core library for FluxJP."""

from fluxjp.core.backup import LoadedSnapshot, Snapshot, export_snapshot, read_backup, write_backup
from fluxjp.core.errors import BackupFormatError, FluxError, MergeError, SessionError, StoreError
from fluxjp.core.importer import ImportReport, import_items
from fluxjp.core.merge import MergeReport, merge_snapshot
from fluxjp.core.metrics import ProgressMetrics
from fluxjp.core.models import DailyStat, Favorite, Item, ItemStatus, Level, Settings
from fluxjp.core.scheduler import INTERVAL_LADDER, Grade, next_interval, review
from fluxjp.core.session import GradeOutcome, SessionKind, StudyEngine, StudySession
from fluxjp.core.stats import DailyStatsAggregator
from fluxjp.core.storage import ItemStore, VocabDatabase

__all__ = [
    # Models
    "DailyStat",
    "Favorite",
    "Item",
    "ItemStatus",
    "Level",
    "Settings",
    # Errors
    "BackupFormatError",
    "FluxError",
    "MergeError",
    "SessionError",
    "StoreError",
    # Storage
    "ItemStore",
    "VocabDatabase",
    # Scheduler
    "INTERVAL_LADDER",
    "Grade",
    "next_interval",
    "review",
    # Sessions
    "GradeOutcome",
    "SessionKind",
    "StudyEngine",
    "StudySession",
    # Statistics
    "DailyStatsAggregator",
    "ProgressMetrics",
    # Backup, import, merge
    "ImportReport",
    "LoadedSnapshot",
    "MergeReport",
    "Snapshot",
    "export_snapshot",
    "import_items",
    "merge_snapshot",
    "read_backup",
    "write_backup",
]
