"""Repository layer for data access."""

from indexer.repositories.pointer_repository import PointerRepository, StoredPointer

__all__ = ["PointerRepository", "StoredPointer"]
