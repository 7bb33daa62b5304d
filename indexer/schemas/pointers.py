"""Pydantic schemas for pointer endpoints."""

from typing import List
from pydantic import BaseModel


class PutPointerResponse(BaseModel):
    """Response model for publishing a pointer."""
    share_code: str
    root_digest: str
    created: bool


class PointerSummary(BaseModel):
    """Share code published for a root digest."""
    share_code: str
    file_name: str
    created_at: str


class PointerListResponse(BaseModel):
    """Response model for root digest lookups."""
    root_digest: str
    pointers: List[PointerSummary]
