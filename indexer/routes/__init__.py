"""API routes package."""

from indexer.routes.pointer_routes import router as pointer_router

__all__ = ["pointer_router"]
