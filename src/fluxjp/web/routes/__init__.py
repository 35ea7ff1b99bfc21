"""Web routes for FluxJP."""

from fluxjp.web.routes.backup import router as backup_router
from fluxjp.web.routes.search import router as search_router
from fluxjp.web.routes.session import router as session_router
from fluxjp.web.routes.stats import router as stats_router

__all__ = ["backup_router", "search_router", "session_router", "stats_router"]
