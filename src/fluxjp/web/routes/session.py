"""Study session routes."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from fluxjp.core.scheduler import Grade
from fluxjp.core.session import GradeOutcome, SessionKind, StudyEngine
from fluxjp.web.dependencies import get_engine, get_write_lock

router = APIRouter()


class StartRequest(BaseModel):
    kind: SessionKind = SessionKind.CATCH_UP
    limit: int | None = Field(default=None, ge=0)
    item_ids: list[int] | None = None


class GradeRequest(BaseModel):
    grade: Grade

    @field_validator("grade", mode="before")
    @classmethod
    def _parse_grade(cls, value):
        if isinstance(value, str | int):
            return Grade.parse(value)
        return value


def _session_state(engine: StudyEngine) -> dict:
    session = engine.session
    if session is None:
        return {"active": False, "current": None, "remaining": 0}
    current = engine.current_item
    return {
        "active": True,
        "kind": session.kind,
        "current": current.model_dump(mode="json", by_alias=True) if current else None,
        "remaining": session.remaining,
        "graded": session.graded,
    }


def _outcome(outcome: GradeOutcome, engine: StudyEngine) -> dict:
    return {
        "item": outcome.item.model_dump(mode="json", by_alias=True),
        "grade": outcome.grade.name.lower(),
        "requeued": outcome.requeued,
        "completed": outcome.completed,
        "remaining": outcome.remaining,
        "session": _session_state(engine),
    }


@router.post("")
async def start_session(body: StartRequest, engine: StudyEngine = Depends(get_engine)):
    """Start a new study run."""
    engine.start_session(body.kind, limit=body.limit, item_ids=body.item_ids)
    return _session_state(engine)


@router.get("")
async def session_state(engine: StudyEngine = Depends(get_engine)):
    """Current item and progress of the active run."""
    return _session_state(engine)


@router.post("/grade")
async def submit_grade(
    body: GradeRequest,
    engine: StudyEngine = Depends(get_engine),
    lock: asyncio.Lock = Depends(get_write_lock),
):
    """Grade the current item. Waits for a running restore to finish."""
    async with lock:
        if engine.session is None:
            raise HTTPException(status_code=409, detail="No active study session")
        outcome = engine.submit_grade(body.grade)
    return _outcome(outcome, engine)


@router.delete("")
async def end_session(engine: StudyEngine = Depends(get_engine)):
    """Abandon the active run."""
    session = engine.end_session()
    return {"ended": session is not None, "discarded": session.remaining if session else 0}
