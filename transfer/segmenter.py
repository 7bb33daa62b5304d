"""
Chunk and segment arithmetic shared by upload planning and download
reconstruction.

All arithmetic is exact integer math. A file of N bytes occupies
ceil(N / chunk_size) storage entries, grouped into segments of at most
max_chunks_per_segment entries. Only the last segment may be short.
"""

from common.constants import CHUNK_SIZE, MAX_CHUNKS_PER_SEGMENT
from common.types import ChunkLayout, SegmentSpan


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer ceiling division for non-negative numerators."""
    return -(-numerator // denominator)


def compute_layout(
    byte_length: int,
    chunk_size: int = CHUNK_SIZE,
    max_chunks_per_segment: int = MAX_CHUNKS_PER_SEGMENT,
) -> ChunkLayout:
    """
    Compute the chunk layout of a file.

    Args:
        byte_length: File size in bytes (zero is allowed and yields an empty layout)
        chunk_size: Bytes per chunk
        max_chunks_per_segment: Chunks per full segment

    Returns:
        ChunkLayout whose span lengths sum to chunk_count

    Raises:
        ValueError: If byte_length is negative or sizes are not positive
    """
    if byte_length < 0:
        raise ValueError(f"byte_length must be non-negative, got {byte_length}")
    if chunk_size <= 0 or max_chunks_per_segment <= 0:
        raise ValueError("chunk_size and max_chunks_per_segment must be positive")

    chunk_count = ceil_div(byte_length, chunk_size)
    segment_count = ceil_div(chunk_count, max_chunks_per_segment)

    spans = []
    for segment_index in range(segment_count):
        start_entry = segment_index * max_chunks_per_segment
        length = min(max_chunks_per_segment, chunk_count - start_entry)
        spans.append(SegmentSpan(segment_index=segment_index, start_entry=start_entry, length=length))

    return ChunkLayout(
        byte_length=byte_length,
        chunk_size=chunk_size,
        max_chunks_per_segment=max_chunks_per_segment,
        chunk_count=chunk_count,
        segment_count=segment_count,
        segment_spans=tuple(spans),
    )


def segment_index_for_entry(entry_index: int, max_chunks_per_segment: int = MAX_CHUNKS_PER_SEGMENT) -> int:
    """Global segment index containing the given global entry index."""
    if entry_index < 0:
        raise ValueError(f"entry_index must be non-negative, got {entry_index}")
    return entry_index // max_chunks_per_segment


def entry_range_for_segment(segment_index: int, layout: ChunkLayout) -> tuple[int, int]:
    """
    File-relative entry range [start, end) of a segment.

    Raises:
        IndexError: If segment_index is outside the layout
    """
    if not 0 <= segment_index < layout.segment_count:
        raise IndexError(f"segment {segment_index} out of range for {layout.segment_count} segment(s)")
    span = layout.segment_spans[segment_index]
    return span.start_entry, span.end_entry


def byte_range_for_segment(segment_index: int, layout: ChunkLayout) -> tuple[int, int]:
    """
    File-relative byte range [start, end) of a segment, excluding tail padding.
    """
    start_entry, end_entry = entry_range_for_segment(segment_index, layout)
    start = start_entry * layout.chunk_size
    end = min(end_entry * layout.chunk_size, layout.byte_length)
    return start, end


def split_segments(data: bytes, layout: ChunkLayout) -> list[bytes]:
    """Slice file bytes into per-segment payloads following the layout."""
    if len(data) != layout.byte_length:
        raise ValueError(f"data length {len(data)} does not match layout length {layout.byte_length}")
    segments = []
    for span in layout.segment_spans:
        start, end = byte_range_for_segment(span.segment_index, layout)
        segments.append(data[start:end])
    return segments
