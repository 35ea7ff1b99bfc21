"""Shared CLI helpers."""

import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from fluxjp.core.models import Item
from fluxjp.core.storage import VocabDatabase

console = Console()

# Global database instance (initialized lazily)
_db: VocabDatabase | None = None


def get_db() -> VocabDatabase:
    """Get or create the database instance."""
    global _db
    if _db is None:
        state_dir = Path(os.environ.get("FLUXJP_STATE_DIR", Path.cwd() / ".fluxjp"))
        _db = VocabDatabase(state_dir / "fluxjp.db")
    return _db


def setup_logging(verbose: bool = False) -> None:
    """Route library logging through rich."""
    level = logging.DEBUG if verbose else os.environ.get("FLUXJP_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def describe_item(item: Item) -> str:
    """One-line summary of an item for listings."""
    reading = f" [{item.reading}]" if item.reading else ""
    return f"{item.word}{reading} - {item.meaning}"
