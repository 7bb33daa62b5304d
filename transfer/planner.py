"""Builds per-segment download tasks from a root digest and its locations."""

from dataclasses import dataclass
from typing import Sequence, Tuple

from common.constants import CHUNK_SIZE, MAX_CHUNKS_PER_SEGMENT
from common.exceptions import NoLocationError
from common.logging_config import get_logger
from common.types import ChunkLayout, StorageLocation
from transfer.protocol import TransactionInfo
from transfer.segmenter import byte_range_for_segment, ceil_div, compute_layout, segment_index_for_entry

logger = get_logger(__name__)


@dataclass(frozen=True)
class SegmentTask:
    """
    One segment to fetch.

    Attributes:
        segment_index: Global segment index in the storage log holding the first entry
        file_segment_index: Segment index relative to the start of the file
        start_entry: File-relative first entry (inclusive)
        end_entry: File-relative last entry (exclusive)
        byte_start: File-relative first byte (inclusive)
        byte_end: File-relative last byte (exclusive), tail padding excluded
        candidates: Ranked nodes to try, in order
    """
    segment_index: int
    file_segment_index: int
    start_entry: int
    end_entry: int
    byte_start: int
    byte_end: int
    candidates: Tuple[StorageLocation, ...]

    @property
    def byte_length(self) -> int:
        return self.byte_end - self.byte_start


@dataclass(frozen=True)
class DownloadPlan:
    root_digest: str
    tx: TransactionInfo
    layout: ChunkLayout
    start_segment_index: int
    end_segment_index: int
    tasks: Tuple[SegmentTask, ...]
    segment_tasks: Tuple[SegmentTask, ...]
    candidates: Tuple[StorageLocation, ...]


def plan_download(
    root_digest: str,
    candidate_nodes: Sequence[StorageLocation],
    tx: TransactionInfo,
    chunk_size: int = CHUNK_SIZE,
    max_chunks_per_segment: int = MAX_CHUNKS_PER_SEGMENT,
) -> DownloadPlan:
    """
    Plan a download of a file in both segment address spaces.

    segment_tasks follow the file's own segments, the same boundaries the
    upload split used; nodes serve them by file-relative segment index.
    tasks follow the global segments of the storage log the file occupies
    and are fetched as entry ranges by transaction sequence. The two lists
    are identical when the file starts on a segment boundary.

    Args:
        root_digest: File root digest
        candidate_nodes: Nodes reported by the indexer
        tx: Transaction info (size and start entry) from a storage node
        chunk_size: Bytes per chunk
        max_chunks_per_segment: Chunks per segment

    Returns:
        DownloadPlan whose tasks share one immutable ranked candidate tuple

    Raises:
        NoLocationError: If candidate_nodes is empty
    """
    if not candidate_nodes:
        raise NoLocationError("No candidate nodes to plan against", stage="plan", root_digest=root_digest)

    candidates = tuple(sorted(candidate_nodes, key=lambda node: node.rank))
    layout = compute_layout(tx.size, chunk_size, max_chunks_per_segment)
    num_chunks = ceil_div(tx.size, chunk_size)

    if num_chunks == 0:
        logger.debug(f"Planned empty download [root={root_digest}]")
        return DownloadPlan(
            root_digest=root_digest,
            tx=tx,
            layout=layout,
            start_segment_index=0,
            end_segment_index=-1,
            tasks=(),
            segment_tasks=(),
            candidates=candidates,
        )

    first_entry = tx.start_entry_index
    last_entry = first_entry + num_chunks - 1
    start_segment_index = segment_index_for_entry(first_entry, max_chunks_per_segment)
    end_segment_index = segment_index_for_entry(last_entry, max_chunks_per_segment)

    tasks = []
    for segment_index in range(start_segment_index, end_segment_index + 1):
        global_start = max(segment_index * max_chunks_per_segment, first_entry)
        global_end = min((segment_index + 1) * max_chunks_per_segment, last_entry + 1)
        start_entry = global_start - first_entry
        end_entry = global_end - first_entry
        tasks.append(SegmentTask(
            segment_index=segment_index,
            file_segment_index=segment_index - start_segment_index,
            start_entry=start_entry,
            end_entry=end_entry,
            byte_start=start_entry * chunk_size,
            byte_end=min(end_entry * chunk_size, tx.size),
            candidates=candidates,
        ))

    segment_tasks = []
    for span in layout.segment_spans:
        byte_start, byte_end = byte_range_for_segment(span.segment_index, layout)
        segment_tasks.append(SegmentTask(
            segment_index=segment_index_for_entry(first_entry + span.start_entry, max_chunks_per_segment),
            file_segment_index=span.segment_index,
            start_entry=span.start_entry,
            end_entry=span.end_entry,
            byte_start=byte_start,
            byte_end=byte_end,
            candidates=candidates,
        ))

    logger.debug(
        f"Planned {len(segment_tasks)} segment task(s), {len(tasks)} range task(s) [root={root_digest}] "
        f"segments={start_segment_index}..{end_segment_index} nodes={len(candidates)}"
    )
    return DownloadPlan(
        root_digest=root_digest,
        tx=tx,
        layout=layout,
        start_segment_index=start_segment_index,
        end_segment_index=end_segment_index,
        tasks=tuple(tasks),
        segment_tasks=tuple(segment_tasks),
        candidates=candidates,
    )
