"""FastAPI application for the FluxJP JSON API."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fluxjp import __version__
from fluxjp.core.errors import SessionError, StoreError
from fluxjp.web.routes import backup_router, search_router, session_router, stats_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="FluxJP",
        description="Spaced repetition for Japanese vocabulary",
        version=__version__,
    )

    app.include_router(session_router, prefix="/session", tags=["session"])
    app.include_router(stats_router, prefix="/stats", tags=["stats"])
    app.include_router(backup_router, prefix="/backup", tags=["backup"])
    app.include_router(search_router, prefix="/search", tags=["search"])

    @app.exception_handler(SessionError)
    async def session_error(_request: Request, exc: SessionError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def store_error(_request: Request, exc: StoreError) -> JSONResponse:
        # Nothing was applied; the client may retry
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


# Create the app instance for uvicorn
app = create_app()
