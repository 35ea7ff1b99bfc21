"""Vocabulary search routes."""

from fastapi import APIRouter, Depends, Query

from fluxjp.core.storage import SEARCH_LIMIT, VocabDatabase
from fluxjp.web.dependencies import get_db

router = APIRouter()


@router.get("")
async def search(
    q: str = "",
    limit: int = Query(SEARCH_LIMIT, ge=1, le=SEARCH_LIMIT),
    db: VocabDatabase = Depends(get_db),
):
    """Items whose word, reading, meaning, category or tags contain ``q``."""
    results = db.search_items(q, limit=limit) if q.strip() else []
    return {
        "query": q,
        "results": [item.model_dump(mode="json", by_alias=True) for item in results],
    }


@router.get("/suggestions")
async def suggestions(
    q: str = "",
    limit: int = Query(5, ge=1, le=20),
    db: VocabDatabase = Depends(get_db),
):
    """Prefix suggestions for a search box."""
    return {"query": q, "suggestions": db.suggest_words(q, limit=limit)}
