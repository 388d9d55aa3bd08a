"""HTTP and WebSocket route modules (FastAPI routers) for the application.

This file explicitly exports the router objects provided by each
submodule so callers can do:

	from routes import session_router
	app.include_router(session_router)

Submodules should expose an `APIRouter` named `router`.
"""

from .sessions import router as session_router

__all__ = [
	"session_router",
]
