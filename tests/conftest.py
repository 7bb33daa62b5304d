"""Shared pytest fixtures for all tests."""

import asyncio
import base64
import json

import httpx
import pytest

from cli.config import Config
from common.constants import CHUNK_SIZE, MAX_CHUNKS_PER_SEGMENT
from common.exceptions import FetchError, PublishError
from sharecode.pointer_record import PointerRecord
from transfer.integrity import MerkleTree
from transfer.protocol import RPC_FILE_NOT_FINALIZED
from transfer.segmenter import ceil_div, compute_layout, split_segments
from transfer.signer import TransactionReceipt
from transfer.storage_client import StorageNetworkClient

RPC_URL = "http://rpc.test"
INDEXER_URL = "http://indexer.test"
SIGNER_URL = "http://signer.test"
WALLET = "0x1111111111111111111111111111111111111111"


class FakeStorageNetwork:
    """
    In-memory storage network answering JSON-RPC through httpx.MockTransport.

    Set indexer_down to refuse every indexer connection.

    Node behaviours (per node URL):
        down           connection refused on every call
        not_found      node does not know any file
        not_finalized  file info unfinalized, rich downloads report not finalized
        empty          file info fine, every segment download returns null
        corrupt        segment payloads have their first byte flipped
        no_rich        rich (proof) downloads fail with an unknown rpc error
        bad_proof      proofs carry a wrong sibling
        stale_index    rich downloads return segment 0 and its valid proof for any index
    """

    def __init__(self, node_count: int = 3, chunk_size: int = CHUNK_SIZE, max_chunks: int = MAX_CHUNKS_PER_SEGMENT):
        self.nodes = [f"http://node{i}.test" for i in range(node_count)]
        self.chunk_size = chunk_size
        self.max_chunks = max_chunks
        self.files = {}
        self.behaviour = {}
        self.delays = {}
        self.calls = []
        self.indexer_down = False
        self._next_seq = 0
        self._next_entry = 0

    def _allocate(self, root: str, size: int, holders: list, start_entry=None) -> dict:
        entries = ceil_div(size, self.chunk_size)
        if start_entry is None:
            start_entry = self._next_entry
        entry = {
            "root": root,
            "size": size,
            "seq": self._next_seq,
            "start_entry": start_entry,
            "segments": {},
            "holders": list(holders),
            "segment_count": compute_layout(size, self.chunk_size, self.max_chunks).segment_count,
        }
        self._next_seq += 1
        self._next_entry = max(self._next_entry, ceil_div(start_entry + entries, self.max_chunks) * self.max_chunks)
        self.files[root] = entry
        return entry

    def add_file(self, data: bytes, start_entry=None) -> str:
        """
        Store a finalized file on every node and return its root digest.

        start_entry places the file in the storage log; by default files
        start on the next segment boundary.
        """
        tree = MerkleTree.from_bytes(data, self.chunk_size, self.max_chunks)
        entry = self._allocate(tree.root_digest, len(data), self.nodes, start_entry)
        layout = compute_layout(len(data), self.chunk_size, self.max_chunks)
        entry["segments"] = dict(enumerate(split_segments(data, layout)))
        return tree.root_digest

    def data_for(self, root: str) -> bytes:
        entry = self.files[root]
        return b"".join(entry["segments"][i] for i in range(entry["segment_count"]))

    def register_transaction(self, root: str, size: int) -> int:
        return self._allocate(root, size, self.nodes)["seq"]

    def methods_called(self, method: str) -> list:
        return [c for c in self.calls if c[1] == method]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def storage_client(self, **kwargs) -> StorageNetworkClient:
        kwargs.setdefault("max_retries", 0)
        kwargs.setdefault("chunk_size", self.chunk_size)
        kwargs.setdefault("max_chunks_per_segment", self.max_chunks)
        return StorageNetworkClient(
            RPC_URL, INDEXER_URL, http=httpx.AsyncClient(transport=self.transport()), **kwargs
        )

    async def handle(self, request: httpx.Request) -> httpx.Response:
        url = f"{request.url.scheme}://{request.url.host}"
        if url == SIGNER_URL:
            body = json.loads(request.content)
            seq = self.register_transaction(body["root"], body["size"])
            return httpx.Response(200, json={"txHash": f"0x{seq:064x}", "txSeq": seq})

        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((url, method, params))

        if url == RPC_URL:
            return self._reply(body, "0x40da")
        if url == INDEXER_URL:
            if self.indexer_down:
                raise httpx.ConnectError("connection refused", request=request)
            return self._reply(body, self._indexer(method, params))

        modes = self.behaviour.get(url, set())
        if "down" in modes:
            raise httpx.ConnectError("connection refused", request=request)

        rich = method in ("zgs_downloadSegmentWithProof", "zgs_downloadSegment")
        delay_key = (url, params[1] if rich else None)
        if delay_key in self.delays:
            await asyncio.sleep(self.delays[delay_key])

        if method == "zgs_getFileInfo":
            return self._reply(body, self._file_info(url, params[0], modes))
        if rich:
            return self._rich_segment(body, url, params[0], params[1], modes, method == "zgs_downloadSegmentWithProof")
        if method == "zgs_downloadSegmentByTxSeq":
            return self._range_segment(body, url, params[0], params[1], params[2], modes)
        if method == "zgs_uploadSegments":
            for segment in params[0]:
                entry = self.files[segment["root"]]
                entry["segments"][segment["index"]] = base64.b64decode(segment["data"])
            return self._reply(body, None)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "method not found"}})

    @staticmethod
    def _reply(body: dict, result) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    @staticmethod
    def _error(body: dict, code: int) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": code, "message": "rpc error"}})

    def _indexer(self, method: str, params: list):
        if method == "indexer_getShardedNodes":
            return {
                "trusted": [{"url": n, "config": {"shardId": 0, "numShard": 1}} for n in self.nodes],
                "discovered": [],
            }
        if method == "indexer_getFileLocations":
            entry = self.files.get(params[0])
            return [{"url": n} for n in entry["holders"]] if entry else []
        return None

    def _holds(self, url: str, root: str, modes: set):
        entry = self.files.get(root)
        if entry is None or "not_found" in modes or url not in entry["holders"]:
            return None
        return entry

    def _file_info(self, url: str, root: str, modes: set):
        entry = self._holds(url, root, modes)
        if entry is None:
            return None
        complete = len(entry["segments"]) == entry["segment_count"]
        return {
            "tx": {
                "seq": entry["seq"],
                "size": entry["size"],
                "startEntryIndex": entry["start_entry"],
                "dataMerkleRoot": entry["root"],
            },
            "finalized": complete and "not_finalized" not in modes,
        }

    def _padded(self, data: bytes) -> bytes:
        remainder = len(data) % self.chunk_size
        return data + b"\x00" * ((self.chunk_size - remainder) if remainder else 0)

    @staticmethod
    def _corrupt(data: bytes) -> bytes:
        return bytes([data[0] ^ 0xFF]) + data[1:] if data else data

    def _rich_segment(self, body, url, root, index, modes, with_proof):
        if "no_rich" in modes:
            return self._error(body, -32000)
        if "not_finalized" in modes:
            return self._error(body, RPC_FILE_NOT_FINALIZED)
        entry = self._holds(url, root, modes)
        if entry is None or "empty" in modes or index not in entry["segments"]:
            return self._reply(body, None)

        data = self.data_for(root)
        tree = MerkleTree.from_bytes(data, self.chunk_size, self.max_chunks)
        if "stale_index" in modes:
            index = 0
        segment = entry["segments"][index]
        if "corrupt" in modes:
            segment = self._corrupt(segment)
        encoded = base64.b64encode(self._padded(segment)).decode()
        if not with_proof:
            return self._reply(body, encoded)
        proof = [step.to_dict() for step in tree.segment_proof(index)]
        if "bad_proof" in modes:
            proof = [{"hash": "0x" + "ab" * 32, "position": "left"}]
        return self._reply(body, {"data": encoded, "proof": proof})

    def _range_segment(self, body, url, tx_seq, start, end, modes):
        entry = next((e for e in self.files.values() if e["seq"] == tx_seq), None)
        if entry is None or "not_found" in modes or "empty" in modes or url not in entry["holders"]:
            return self._reply(body, None)
        data = self.data_for(entry["root"])[start * self.chunk_size:end * self.chunk_size]
        if "corrupt" in modes:
            data = self._corrupt(data)
        return self._reply(body, base64.b64encode(self._padded(data)).decode())


class FakeSigner:
    """Signer registering transactions directly with a FakeStorageNetwork."""

    def __init__(self, network: FakeStorageNetwork, address: str = WALLET):
        self.network = network
        self._address = address
        self.submitted = []

    @property
    def address(self) -> str:
        return self._address

    async def submit_transaction(self, root_digest: str, size: int) -> TransactionReceipt:
        seq = self.network.register_transaction(root_digest, size)
        self.submitted.append((root_digest, size))
        return TransactionReceipt(tx_hash=f"0x{seq:064x}", tx_seq=seq)


class InMemoryIndex:
    """PointerIndex keeping records in a dict."""

    def __init__(self):
        self.records = {}
        self.fail = False

    async def put(self, code: str, record: PointerRecord) -> None:
        if self.fail:
            raise PublishError("index down", stage="index", share_code=code)
        self.records[code] = record

    async def get(self, code: str):
        if self.fail:
            raise FetchError("index down", stage="index")
        return self.records.get(code)

    async def exists(self, code: str) -> bool:
        return await self.get(code) is not None

    async def close(self) -> None:
        pass


@pytest.fixture
def network():
    """Three-node fake network with production chunk geometry."""
    return FakeStorageNetwork()


@pytest.fixture
def small_network():
    """Fake network with 4-byte chunks and 4-chunk segments for multi-segment files."""
    return FakeStorageNetwork(chunk_size=4, max_chunks=4)


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .privshare directory
    """
    config_dir = tmp_path / '.privshare'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path
