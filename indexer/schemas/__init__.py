"""Pydantic schemas for API requests and responses."""

from indexer.schemas.common import ErrorResponse
from indexer.schemas.pointers import PutPointerResponse, PointerListResponse, PointerSummary

__all__ = [
    "ErrorResponse",
    "PutPointerResponse",
    "PointerListResponse",
    "PointerSummary",
]
