"""Service layer for business logic."""

from indexer.services.pointer_service import PointerService

__all__ = ["PointerService"]
