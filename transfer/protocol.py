"""
JSON-RPC message definitions for the storage network.

Node responses are decoded into tagged variants so the executor can branch
on the variant type. Error codes reported by storage nodes are matched by
number, never by message text.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple, Union

from transfer.integrity import ProofStep

JSONRPC_VERSION = "2.0"

RPC_FILE_NOT_FOUND = 101
RPC_FILE_NOT_FINALIZED = 102


def rpc_request(method: str, params: list, request_id: int = 1) -> dict:
    """Build a JSON-RPC 2.0 request body."""
    return {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params, "id": request_id}


@dataclass(frozen=True)
class TransactionInfo:
    """Log-layer transaction a file was committed under."""
    seq: int
    size: int
    start_entry_index: int
    data_merkle_root: str

    @classmethod
    def from_dict(cls, obj: dict) -> 'TransactionInfo':
        return cls(
            seq=int(obj["seq"]),
            size=int(obj["size"]),
            start_entry_index=int(obj["startEntryIndex"]),
            data_merkle_root=str(obj["dataMerkleRoot"]).lower(),
        )

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "size": self.size,
            "startEntryIndex": self.start_entry_index,
            "dataMerkleRoot": self.data_merkle_root,
        }


@dataclass(frozen=True)
class SegmentOk:
    data: bytes
    proof: Optional[Tuple[ProofStep, ...]] = None
    kind: Literal["ok"] = "ok"


@dataclass(frozen=True)
class SegmentNotFound:
    kind: Literal["not_found"] = "not_found"


@dataclass(frozen=True)
class SegmentNotFinalized:
    kind: Literal["not_finalized"] = "not_finalized"


@dataclass(frozen=True)
class SegmentMalformed:
    reason: str
    kind: Literal["malformed"] = "malformed"


SegmentResponse = Union[SegmentOk, SegmentNotFound, SegmentNotFinalized, SegmentMalformed]


@dataclass(frozen=True)
class FileInfo:
    """A node holds the file and its transaction is finalized."""
    tx: TransactionInfo
    finalized: bool = True
    kind: Literal["found"] = "found"


@dataclass(frozen=True)
class FileNotFoundOnNode:
    kind: Literal["not_found"] = "not_found"


@dataclass(frozen=True)
class FileNotFinalized:
    tx: Optional[TransactionInfo] = None
    kind: Literal["not_finalized"] = "not_finalized"


@dataclass(frozen=True)
class FileInfoMalformed:
    reason: str
    kind: Literal["malformed"] = "malformed"


FileInfoResponse = Union[FileInfo, FileNotFoundOnNode, FileNotFinalized, FileInfoMalformed]


@dataclass(frozen=True)
class NodeInfo:
    """Storage node advertised by the indexer."""
    url: str
    shard_id: Optional[int] = None
    num_shard: Optional[int] = None
    extra: dict = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, obj: dict) -> 'NodeInfo':
        shard = obj.get("config") or {}
        return cls(
            url=str(obj["url"]),
            shard_id=shard.get("shardId"),
            num_shard=shard.get("numShard"),
            extra={k: v for k, v in obj.items() if k not in ("url", "config")},
        )


def _rpc_error_code(envelope: dict) -> Optional[int]:
    error = envelope.get("error")
    if not isinstance(error, dict):
        return None
    code = error.get("code")
    return code if isinstance(code, int) else None


def decode_segment_response(envelope: dict, with_proof: bool) -> SegmentResponse:
    """
    Decode a zgs_downloadSegment* response envelope.

    Args:
        envelope: Parsed JSON-RPC response
        with_proof: Whether the result must carry a proof

    Returns:
        One of the SegmentResponse variants
    """
    if not isinstance(envelope, dict):
        return SegmentMalformed(reason="response is not an object")

    if "error" in envelope:
        code = _rpc_error_code(envelope)
        if code == RPC_FILE_NOT_FOUND:
            return SegmentNotFound()
        if code == RPC_FILE_NOT_FINALIZED:
            return SegmentNotFinalized()
        return SegmentMalformed(reason=f"rpc error code={code}")

    result = envelope.get("result")
    if result is None:
        return SegmentNotFound()

    if isinstance(result, str):
        encoded, raw_proof = result, None
    elif isinstance(result, dict):
        encoded, raw_proof = result.get("data"), result.get("proof")
    else:
        return SegmentMalformed(reason="unexpected result type")

    if not isinstance(encoded, str):
        return SegmentMalformed(reason="missing data field")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return SegmentMalformed(reason="data is not valid base64")

    if not with_proof:
        return SegmentOk(data=data)

    if not isinstance(raw_proof, list):
        return SegmentMalformed(reason="missing proof")
    try:
        proof = tuple(ProofStep.from_dict(step) for step in raw_proof)
    except (KeyError, TypeError, ValueError):
        return SegmentMalformed(reason="invalid proof")
    return SegmentOk(data=data, proof=proof)


def decode_file_info(envelope: dict) -> FileInfoResponse:
    """Decode a zgs_getFileInfo response envelope."""
    if not isinstance(envelope, dict):
        return FileInfoMalformed(reason="response is not an object")

    if "error" in envelope:
        code = _rpc_error_code(envelope)
        if code == RPC_FILE_NOT_FOUND:
            return FileNotFoundOnNode()
        if code == RPC_FILE_NOT_FINALIZED:
            return FileNotFinalized()
        return FileInfoMalformed(reason=f"rpc error code={code}")

    result = envelope.get("result")
    if result is None:
        return FileNotFoundOnNode()
    if not isinstance(result, dict) or not isinstance(result.get("tx"), dict):
        return FileInfoMalformed(reason="missing tx")

    try:
        tx = TransactionInfo.from_dict(result["tx"])
    except (KeyError, TypeError, ValueError):
        return FileInfoMalformed(reason="invalid tx")

    if not result.get("finalized", False):
        return FileNotFinalized(tx=tx)
    return FileInfo(tx=tx)


def encode_segment(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def parse_envelope(body: bytes) -> dict:
    """
    Parse raw response bytes.

    Raises:
        ValueError: If the body is not a JSON object
    """
    obj = json.loads(body)
    if not isinstance(obj, dict):
        raise ValueError("JSON-RPC response is not an object")
    return obj
