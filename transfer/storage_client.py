"""JSON-RPC client for the storage network (indexer + storage nodes)."""

import asyncio
import itertools
from dataclasses import dataclass
from typing import List, Optional

import httpx

from common.constants import (
    CHUNK_SIZE,
    DEFAULT_EXPECTED_REPLICA,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    EXPECTED_CHAIN_ID,
    MAX_CHUNKS_PER_SEGMENT,
)
from common.exceptions import (
    FetchError,
    NoLocationError,
    StorageUnavailableError,
    SubmissionError,
)
from common.logging_config import get_logger
from common.types import StorageLocation
from transfer.integrity import MerkleTree
from transfer.protocol import (
    FileInfoResponse,
    NodeInfo,
    SegmentResponse,
    decode_file_info,
    decode_segment_response,
    encode_segment,
    parse_envelope,
    rpc_request,
)
from transfer.segmenter import compute_layout, split_segments
from transfer.signer import Signer

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubmitResult:
    root_digest: str
    transaction_ref: str
    tx_seq: int


@dataclass(frozen=True)
class NetworkStatus:
    connected: bool
    rpc_url: str
    indexer_rpc: str
    chain_id: Optional[int] = None
    node_count: int = 0
    error: Optional[str] = None


class StorageNetworkClient:
    """
    Explicitly constructed client for one storage network.

    Owns an httpx.AsyncClient. Indexer and upload calls are retried with
    exponential backoff; segment fetches are single attempts because the
    retrieval executor fails over across nodes instead.

    Usage:
        async with StorageNetworkClient(rpc_url, indexer_rpc) as storage:
            nodes = await storage.discover_nodes_for(root)
    """

    def __init__(
        self,
        rpc_url: str,
        indexer_rpc: str,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        expected_replica: int = DEFAULT_EXPECTED_REPLICA,
        chunk_size: int = CHUNK_SIZE,
        max_chunks_per_segment: int = MAX_CHUNKS_PER_SEGMENT,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.indexer_rpc = indexer_rpc.rstrip("/")
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.expected_replica = expected_replica
        self.chunk_size = chunk_size
        self.max_chunks_per_segment = max_chunks_per_segment
        self.http = http or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)
        logger.info(f"Initialized StorageNetworkClient [rpc={rpc_url}] [indexer={self.indexer_rpc}]")

    async def __aenter__(self) -> 'StorageNetworkClient':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> NetworkStatus:
        """
        Verify the RPC endpoint and indexer are reachable.

        Raises:
            StorageUnavailableError: If either endpoint cannot be reached
        """
        status = await self.get_network_status()
        if not status.connected:
            raise StorageUnavailableError(f"Storage network unavailable: {status.error}", stage="connect")
        if status.chain_id is not None and status.chain_id != EXPECTED_CHAIN_ID:
            logger.warning(f"Unexpected chain id {status.chain_id} (expected {EXPECTED_CHAIN_ID})")
        logger.info(f"Connected to storage network [chain_id={status.chain_id}] nodes={status.node_count}")
        return status

    async def close(self) -> None:
        await self.http.aclose()

    async def _rpc(self, url: str, method: str, params: list) -> dict:
        """
        Single JSON-RPC call.

        Raises:
            FetchError: On transport failure, HTTP error status or non-JSON body.
                Connect and timeout failures and 5xx responses are marked retryable.
        """
        try:
            response = await self.http.post(url, json=rpc_request(method, params, next(self._ids)))
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise FetchError(
                f"{method} failed: {type(e).__name__}", endpoint=url, stage=method, retryable=True
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"{method} failed: {type(e).__name__}", endpoint=url, stage=method) from e

        if response.status_code >= 400:
            raise FetchError(
                f"{method} failed: status={response.status_code}",
                endpoint=url,
                stage=method,
                retryable=response.status_code >= 500,
            )

        try:
            return parse_envelope(response.content)
        except ValueError as e:
            raise FetchError(f"{method} returned invalid JSON", endpoint=url, stage=method) from e

    async def _rpc_with_retry(self, url: str, method: str, params: list) -> dict:
        """
        JSON-RPC call with exponential backoff for transient failures.

        Client errors (4xx) and malformed bodies are raised at once.

        Raises:
            FetchError: Last failure once retries are exhausted
        """
        last_exception = None
        for attempt in range(self.max_retries + 1):
            try:
                return await self._rpc(url, method, params)
            except FetchError as e:
                if not e.retryable:
                    raise
                last_exception = e
                if attempt < self.max_retries:
                    delay = self.retry_backoff ** attempt
                    logger.warning(
                        f"Transient failure (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{method} {url}, retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
        raise last_exception

    @staticmethod
    def _result_or_raise(envelope: dict, method: str, url: str):
        if "error" in envelope:
            raise FetchError(f"{method} returned error: {envelope['error']}", endpoint=url, stage=method)
        return envelope.get("result")

    async def get_sharded_nodes(self) -> List[NodeInfo]:
        """Storage nodes known to the indexer, trusted ones first."""
        envelope = await self._rpc_with_retry(self.indexer_rpc, "indexer_getShardedNodes", [])
        result = self._result_or_raise(envelope, "indexer_getShardedNodes", self.indexer_rpc) or {}
        nodes = []
        for group in ("trusted", "discovered"):
            for entry in result.get(group) or []:
                try:
                    nodes.append(NodeInfo.from_dict(entry))
                except (KeyError, TypeError):
                    logger.warning(f"Skipping malformed node entry from indexer: {entry!r}")
        return nodes

    async def discover_nodes_for(self, root_digest: str) -> List[StorageLocation]:
        """
        Ranked storage nodes holding a root digest.

        Raises:
            NoLocationError: If the indexer knows no location for the root
        """
        envelope = await self._rpc_with_retry(self.indexer_rpc, "indexer_getFileLocations", [root_digest])
        result = self._result_or_raise(envelope, "indexer_getFileLocations", self.indexer_rpc) or []

        endpoints = []
        for entry in result:
            url = entry.get("url") if isinstance(entry, dict) else entry
            if isinstance(url, str) and url and url not in endpoints:
                endpoints.append(url)

        if not endpoints:
            raise NoLocationError("No storage node holds this file", stage="discover", root_digest=root_digest)

        logger.info(f"Discovered {len(endpoints)} location(s) [root={root_digest}]")
        return [StorageLocation(node_endpoint=url, rank=rank) for rank, url in enumerate(endpoints)]

    async def query_file_info(self, node: StorageLocation, root_digest: str) -> FileInfoResponse:
        envelope = await self._rpc(node.node_endpoint, "zgs_getFileInfo", [root_digest])
        return decode_file_info(envelope)

    async def fetch_segment(
        self,
        node: StorageLocation,
        root_digest: str,
        segment_index: int,
        with_proof: bool = True,
    ) -> SegmentResponse:
        """
        Fetch one segment by root digest and file-relative segment index.

        Raises:
            FetchError: On transport failure (the executor fails over)
        """
        method = "zgs_downloadSegmentWithProof" if with_proof else "zgs_downloadSegment"
        try:
            envelope = await self._rpc(node.node_endpoint, method, [root_digest, segment_index])
        except FetchError as e:
            e.segment_index = segment_index
            e.root_digest = root_digest
            raise
        return decode_segment_response(envelope, with_proof=with_proof)

    async def fetch_segment_by_tx_seq(
        self,
        node: StorageLocation,
        tx_seq: int,
        start_entry: int,
        end_entry: int,
    ) -> SegmentResponse:
        """Fetch a file-relative entry range [start_entry, end_entry) by transaction sequence."""
        try:
            envelope = await self._rpc(
                node.node_endpoint, "zgs_downloadSegmentByTxSeq", [tx_seq, start_entry, end_entry]
            )
        except FetchError as e:
            e.segment_index = start_entry // self.max_chunks_per_segment
            raise
        return decode_segment_response(envelope, with_proof=False)

    async def submit_file(self, data: bytes, signer: Signer) -> SubmitResult:
        """
        Commit a file to the network: sign its root, then upload every
        segment with its proof to each selected node, one after another.

        Raises:
            SubmissionError: If signing, node selection or any upload fails
        """
        tree = MerkleTree.from_bytes(data, self.chunk_size, self.max_chunks_per_segment)
        root_digest = tree.root_digest
        layout = compute_layout(len(data), self.chunk_size, self.max_chunks_per_segment)

        try:
            nodes = await self.get_sharded_nodes()
        except FetchError as e:
            raise SubmissionError(f"Cannot list storage nodes: {e}", stage="select", root_digest=root_digest) from e
        if len(nodes) < self.expected_replica:
            raise SubmissionError(
                f"Need {self.expected_replica} storage node(s), indexer offers {len(nodes)}",
                stage="select",
                root_digest=root_digest,
            )
        targets = nodes[:self.expected_replica]

        receipt = await signer.submit_transaction(root_digest, len(data))

        segments = split_segments(data, layout)
        for node in targets:
            for index, segment in enumerate(segments):
                payload = {
                    "root": root_digest,
                    "index": index,
                    "data": encode_segment(segment),
                    "proof": [step.to_dict() for step in tree.segment_proof(index)],
                    "fileSize": len(data),
                }
                try:
                    envelope = await self._rpc_with_retry(node.url, "zgs_uploadSegments", [[payload]])
                    self._result_or_raise(envelope, "zgs_uploadSegments", node.url)
                except FetchError as e:
                    raise SubmissionError(
                        f"Segment {index} upload to {node.url} failed: {e}",
                        stage="upload",
                        root_digest=root_digest,
                    ) from e
            logger.info(f"Uploaded {len(segments)} segment(s) to {node.url} [root={root_digest}]")

        return SubmitResult(root_digest=root_digest, transaction_ref=receipt.tx_hash, tx_seq=receipt.tx_seq)

    async def get_network_status(self) -> NetworkStatus:
        """Probe the RPC endpoint and the indexer. Never raises."""
        try:
            envelope = await self._rpc(self.rpc_url, "eth_chainId", [])
            chain_hex = self._result_or_raise(envelope, "eth_chainId", self.rpc_url)
            chain_id = int(chain_hex, 16) if isinstance(chain_hex, str) else None
            nodes = await self.get_sharded_nodes()
        except (FetchError, ValueError) as e:
            logger.warning(f"Network status check failed: {e}")
            return NetworkStatus(connected=False, rpc_url=self.rpc_url, indexer_rpc=self.indexer_rpc, error=str(e))

        return NetworkStatus(
            connected=True,
            rpc_url=self.rpc_url,
            indexer_rpc=self.indexer_rpc,
            chain_id=chain_id,
            node_count=len(nodes),
        )
