"""Shared data type definitions (FileHandle, ChunkLayout, StorageLocation, etc.)."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class FileHandle:
    """
    Transient description of a file being uploaded or downloaded.
    """
    byte_length: int
    mime_type: str
    display_name: str


@dataclass(frozen=True)
class SegmentSpan:
    """
    Chunks covered by one segment, relative to the start of the file.
    """
    segment_index: int
    start_entry: int
    length: int

    @property
    def end_entry(self) -> int:
        return self.start_entry + self.length


@dataclass(frozen=True)
class ChunkLayout:
    """
    Chunk and segment geometry of a file. Pure function of its inputs.
    """
    byte_length: int
    chunk_size: int
    max_chunks_per_segment: int
    chunk_count: int
    segment_count: int
    segment_spans: Tuple[SegmentSpan, ...]


@dataclass(frozen=True)
class StorageLocation:
    """
    A storage node able to serve a root digest, ordered by rank (0 is preferred).
    """
    node_endpoint: str
    rank: int
