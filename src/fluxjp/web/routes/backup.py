"""Backup export and restore routes."""

import asyncio
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from fluxjp.core.backup import dump_snapshot, export_snapshot, parse_snapshot
from fluxjp.core.errors import BackupFormatError, MergeError
from fluxjp.core.merge import merge_snapshot
from fluxjp.core.storage import VocabDatabase
from fluxjp.web.dependencies import get_db, get_write_lock

router = APIRouter()


@router.get("")
async def export_backup(db: VocabDatabase = Depends(get_db)):
    """Download all progress as a backup document."""
    return dump_snapshot(export_snapshot(db))


@router.post("/restore")
async def restore_backup(
    document: Any = Body(...),
    db: VocabDatabase = Depends(get_db),
    lock: asyncio.Lock = Depends(get_write_lock),
):
    """Merge a backup document into the local data."""
    try:
        loaded = parse_snapshot(document)
    except BackupFormatError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        async with lock:
            report = await merge_snapshot(db, loaded.snapshot, skipped=loaded.skipped)
    except MergeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return asdict(report)
