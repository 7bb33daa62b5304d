"""
Multi-node retrieval executor.

Each segment task walks its ranked candidate nodes until one returns a
usable payload:

    PENDING -> FETCHING(rank) -> SUCCEEDED
                              -> FAILING_OVER(rank + 1) -> FETCHING(...)
                              -> EXHAUSTED

Segments are fetched concurrently (bounded), buffered by index and joined
in ascending index order once every task has succeeded. The whole-file
root digest is verified before any bytes are returned.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from common.constants import DEFAULT_FETCH_TIMEOUT_SECONDS, DEFAULT_MAX_CONCURRENT_FETCHES
from common.exceptions import (
    FetchError,
    IntegrityError,
    NoLocationError,
    SegmentsExhaustedError,
)
from common.logging_config import get_logger
from common.types import StorageLocation
from transfer.integrity import compute_root_digest, verify_segment
from transfer.planner import DownloadPlan, SegmentTask
from transfer.protocol import (
    FileInfo,
    SegmentMalformed,
    SegmentNotFinalized,
    SegmentNotFound,
    SegmentOk,
    SegmentResponse,
)
from transfer.storage_client import StorageNetworkClient

logger = get_logger(__name__)


class TaskState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    FAILING_OVER = "failing_over"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class Outcome(str, Enum):
    OK = "ok"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    NOT_FINALIZED = "not_finalized"
    MALFORMED = "malformed"
    BAD_PROOF = "bad_proof"


@dataclass(frozen=True)
class FetchAttempt:
    rank: int
    endpoint: str
    outcome: Outcome


@dataclass
class TaskProgress:
    task: SegmentTask
    state: TaskState = TaskState.PENDING
    rank: Optional[int] = None
    attempts: List[FetchAttempt] = field(default_factory=list)


Fetch = Callable[[StorageLocation, SegmentTask], Awaitable[SegmentResponse]]


class RetrievalExecutor:
    """
    Downloads a planned file from multiple storage nodes with fail-over.

    The rich path fetches each of the file's own segments by root digest and
    file-relative index, with a proof bound to that index. When any segment
    exhausts every node on that path, the whole file is retried once over the
    fallback path (global-boundary entry ranges by transaction sequence)
    against the nodes that report the file as finalized.
    """

    def __init__(
        self,
        storage: StorageNetworkClient,
        max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        verify_proofs: bool = True,
    ):
        if max_concurrent_fetches < 1:
            raise ValueError("max_concurrent_fetches must be at least 1")
        self.storage = storage
        self.max_concurrent_fetches = max_concurrent_fetches
        self.fetch_timeout = fetch_timeout
        self.verify_proofs = verify_proofs
        self.last_progress: Dict[int, TaskProgress] = {}

    async def retrieve(self, plan: DownloadPlan) -> bytes:
        """
        Fetch, reassemble and verify a whole file.

        Returns:
            File bytes whose root digest equals plan.root_digest

        Raises:
            SegmentsExhaustedError: If both paths leave a segment unfetched
            NoLocationError: If the fallback finds no finalized node
            IntegrityError: If the reassembled bytes do not match the root digest
        """
        try:
            data = await self.run_rich_path(plan)
        except SegmentsExhaustedError as e:
            logger.warning(
                f"Proof download path exhausted, switching to transaction range path "
                f"[root={plan.root_digest}]: {e}"
            )
            data = await self.run_fallback_path(plan)

        self.verify(plan, data)
        return data

    def verify(self, plan: DownloadPlan, data: bytes) -> None:
        """
        Raises:
            IntegrityError: If data does not hash to plan.root_digest
        """
        actual = compute_root_digest(data, plan.layout.chunk_size, plan.layout.max_chunks_per_segment)
        if actual != plan.root_digest.lower():
            logger.error(f"Integrity check failed [root={plan.root_digest}] actual={actual}")
            raise IntegrityError(plan.root_digest, actual, stage="verify", root_digest=plan.root_digest)
        logger.debug(f"Integrity check passed [root={plan.root_digest}] size={len(data)}")

    async def run_rich_path(self, plan: DownloadPlan) -> bytes:
        async def fetch(node: StorageLocation, task: SegmentTask) -> SegmentResponse:
            return await self.storage.fetch_segment(
                node, plan.root_digest, task.file_segment_index, with_proof=self.verify_proofs
            )

        return await self._run(plan, plan.segment_tasks, plan.candidates, fetch, check_proof=self.verify_proofs)

    async def run_fallback_path(self, plan: DownloadPlan) -> bytes:
        """
        Fetch entry ranges by transaction sequence from nodes holding the
        finalized file.

        Raises:
            NoLocationError: If no candidate reports the file as finalized
        """
        finalized = []
        tx_seq = plan.tx.seq
        for node in plan.candidates:
            try:
                info = await asyncio.wait_for(
                    self.storage.query_file_info(node, plan.root_digest), timeout=self.fetch_timeout
                )
            except (FetchError, asyncio.TimeoutError) as e:
                logger.warning(f"File info query failed on {node.node_endpoint}: {e}")
                continue
            if isinstance(info, FileInfo):
                if not finalized:
                    tx_seq = info.tx.seq
                finalized.append(node)

        if not finalized:
            raise NoLocationError(
                "No storage node reports the file as finalized", stage="fallback", root_digest=plan.root_digest
            )

        async def fetch(node: StorageLocation, task: SegmentTask) -> SegmentResponse:
            return await self.storage.fetch_segment_by_tx_seq(node, tx_seq, task.start_entry, task.end_entry)

        return await self._run(plan, plan.tasks, tuple(finalized), fetch, check_proof=False)

    async def _run(
        self,
        plan: DownloadPlan,
        tasks: Sequence[SegmentTask],
        candidates: Sequence[StorageLocation],
        fetch: Fetch,
        check_proof: bool,
    ) -> bytes:
        progress = {task.file_segment_index: TaskProgress(task=task) for task in tasks}
        self.last_progress = progress
        if not tasks:
            return b""

        semaphore = asyncio.Semaphore(self.max_concurrent_fetches)
        buffers: Dict[int, bytes] = {}

        async def run_task(record: TaskProgress) -> None:
            buffers[record.task.file_segment_index] = await self._run_task(
                plan, record, tuple(candidates), fetch, semaphore, check_proof
            )

        pending_tasks = [asyncio.create_task(run_task(record)) for record in progress.values()]
        try:
            done, pending = await asyncio.wait(pending_tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)
            for task in done:
                if task.cancelled() or task.exception() is None:
                    continue
                error = task.exception()
                if isinstance(error, SegmentsExhaustedError):
                    error.attempts = {index: list(r.attempts) for index, r in progress.items()}
                raise error
        finally:
            for task in pending_tasks:
                if not task.done():
                    task.cancel()

        return b"".join(buffers[index] for index in sorted(buffers))

    async def _run_task(
        self,
        plan: DownloadPlan,
        record: TaskProgress,
        candidates: Sequence[StorageLocation],
        fetch: Fetch,
        semaphore: asyncio.Semaphore,
        check_proof: bool,
    ) -> bytes:
        task = record.task
        for node in candidates:
            record.state = TaskState.FETCHING
            record.rank = node.rank
            try:
                async with semaphore:
                    response = await asyncio.wait_for(fetch(node, task), timeout=self.fetch_timeout)
            except asyncio.TimeoutError:
                outcome, payload = Outcome.TIMEOUT, None
            except FetchError as e:
                logger.debug(f"Fetch error on {node.node_endpoint} segment={task.file_segment_index}: {e}")
                outcome, payload = Outcome.NETWORK_ERROR, None
            else:
                outcome, payload = self._evaluate(plan, task, response, check_proof)

            record.attempts.append(FetchAttempt(rank=node.rank, endpoint=node.node_endpoint, outcome=outcome))
            if payload is not None:
                record.state = TaskState.SUCCEEDED
                return payload

            record.state = TaskState.FAILING_OVER
            logger.warning(
                f"Segment {task.file_segment_index} failed on rank {node.rank} ({node.node_endpoint}): "
                f"{outcome.value} [root={plan.root_digest}]"
            )

        record.state = TaskState.EXHAUSTED
        raise SegmentsExhaustedError(
            f"Segment {task.file_segment_index} failed on all {len(candidates)} node(s)",
            attempts={task.file_segment_index: list(record.attempts)},
            stage="fetch",
            root_digest=plan.root_digest,
        )

    def _evaluate(
        self,
        plan: DownloadPlan,
        task: SegmentTask,
        response: SegmentResponse,
        check_proof: bool,
    ) -> tuple[Outcome, Optional[bytes]]:
        if isinstance(response, SegmentNotFound):
            return Outcome.NOT_FOUND, None
        if isinstance(response, SegmentNotFinalized):
            return Outcome.NOT_FINALIZED, None
        if isinstance(response, SegmentMalformed):
            return Outcome.MALFORMED, None
        if not isinstance(response, SegmentOk):
            return Outcome.MALFORMED, None

        if len(response.data) < task.byte_length:
            return Outcome.MALFORMED, None
        payload = response.data[:task.byte_length]

        if check_proof:
            if response.proof is None or not verify_segment(
                payload,
                task.file_segment_index,
                plan.layout.segment_count,
                response.proof,
                plan.root_digest,
                plan.layout.chunk_size,
            ):
                return Outcome.BAD_PROOF, None

        return Outcome.OK, payload
