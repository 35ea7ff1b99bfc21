"""Dependency injection for FastAPI routes."""

import asyncio
import os
from functools import lru_cache
from pathlib import Path

from fluxjp.core.session import StudyEngine
from fluxjp.core.storage import VocabDatabase


@lru_cache
def get_db() -> VocabDatabase:
    """Get the database instance (singleton)."""
    state_dir = Path(os.environ.get("FLUXJP_STATE_DIR", Path.cwd() / ".fluxjp"))
    return VocabDatabase(state_dir / "fluxjp.db")


@lru_cache
def get_engine() -> StudyEngine:
    """Get the study engine (singleton, one session at a time)."""
    return StudyEngine(get_db())


@lru_cache
def get_write_lock() -> asyncio.Lock:
    """Serialise grading and restores so a grade never lands mid-merge."""
    return asyncio.Lock()

