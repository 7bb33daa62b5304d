"""
Root digest computation and per-segment proof verification.

The root digest is a SHA-256 Merkle root computed in two levels: each
segment's root is built from the hashes of its chunks, and the file root
is built from the segment roots. Leaves are hashed with a 0x00 prefix and
interior nodes with a 0x01 prefix. An unpaired node is promoted unchanged
to the next level.
"""

import hashlib
from dataclasses import dataclass
from typing import List, Sequence

from common.constants import CHUNK_SIZE, MAX_CHUNKS_PER_SEGMENT
from transfer.segmenter import compute_layout, split_segments

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"
EMPTY_ROOT = hashlib.sha256(LEAF_PREFIX).digest()


@dataclass(frozen=True)
class ProofStep:
    """
    One sibling on the path from a segment root to the file root.

    Attributes:
        sibling: Sibling hash
        sibling_on_left: True when the sibling is the left operand
    """
    sibling: bytes
    sibling_on_left: bool

    def to_dict(self) -> dict:
        return {"hash": to_hex_digest(self.sibling), "position": "left" if self.sibling_on_left else "right"}

    @classmethod
    def from_dict(cls, obj: dict) -> 'ProofStep':
        position = obj["position"]
        if position not in ("left", "right"):
            raise ValueError(f"Invalid proof position: {position}")
        return cls(sibling=from_hex_digest(obj["hash"]), sibling_on_left=position == "left")


def to_hex_digest(raw: bytes) -> str:
    """Render a 32-byte hash as 0x-prefixed lowercase hex."""
    return "0x" + raw.hex()


def from_hex_digest(digest: str) -> bytes:
    """
    Parse a 0x-prefixed hex digest.

    Raises:
        ValueError: If the digest is not 32 bytes of hex
    """
    text = digest[2:] if digest.startswith("0x") else digest
    raw = bytes.fromhex(text)
    if len(raw) != 32:
        raise ValueError(f"Digest must be 32 bytes, got {len(raw)}")
    return raw


def hash_leaf(chunk: bytes) -> bytes:
    return hashlib.sha256(LEAF_PREFIX + chunk).digest()


def hash_node(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(NODE_PREFIX + left + right).digest()


def _next_level(level: Sequence[bytes]) -> List[bytes]:
    parents = []
    for i in range(0, len(level), 2):
        if i + 1 < len(level):
            parents.append(hash_node(level[i], level[i + 1]))
        else:
            parents.append(level[i])
    return parents


def merkle_root(leaves: Sequence[bytes]) -> bytes:
    """Fold a list of leaf hashes into a root. Empty input yields EMPTY_ROOT."""
    if not leaves:
        return EMPTY_ROOT
    level = list(leaves)
    while len(level) > 1:
        level = _next_level(level)
    return level[0]


def segment_root(segment: bytes, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Merkle root of a single segment payload. The last chunk is not padded."""
    leaves = [hash_leaf(segment[i:i + chunk_size]) for i in range(0, len(segment), chunk_size)]
    return merkle_root(leaves)


class MerkleTree:
    """
    Two-level Merkle tree over a file's segments.

    Usage:
        tree = MerkleTree.from_bytes(data)
        root = tree.root_digest
        proof = tree.segment_proof(0)
    """

    def __init__(self, segment_roots: Sequence[bytes]):
        self.segment_roots = list(segment_roots)
        self._levels = [self.segment_roots]
        while len(self._levels[-1]) > 1:
            self._levels.append(_next_level(self._levels[-1]))

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        chunk_size: int = CHUNK_SIZE,
        max_chunks_per_segment: int = MAX_CHUNKS_PER_SEGMENT,
    ) -> 'MerkleTree':
        layout = compute_layout(len(data), chunk_size, max_chunks_per_segment)
        return cls([segment_root(s, chunk_size) for s in split_segments(data, layout)])

    @property
    def root(self) -> bytes:
        if not self.segment_roots:
            return EMPTY_ROOT
        return self._levels[-1][0]

    @property
    def root_digest(self) -> str:
        return to_hex_digest(self.root)

    def segment_proof(self, segment_index: int) -> List[ProofStep]:
        """
        Sibling path from a segment root to the file root.

        Raises:
            IndexError: If segment_index is out of range
        """
        if not 0 <= segment_index < len(self.segment_roots):
            raise IndexError(f"segment {segment_index} out of range")

        proof = []
        index = segment_index
        for level in self._levels[:-1]:
            sibling_index = index ^ 1
            if sibling_index < len(level):
                proof.append(ProofStep(sibling=level[sibling_index], sibling_on_left=sibling_index < index))
            index //= 2
        return proof


def compute_root_digest(
    data: bytes,
    chunk_size: int = CHUNK_SIZE,
    max_chunks_per_segment: int = MAX_CHUNKS_PER_SEGMENT,
) -> str:
    """
    Compute the root digest of file content.

    Identical bytes always give the same digest; any single-byte change
    gives a different one.
    """
    return MerkleTree.from_bytes(data, chunk_size, max_chunks_per_segment).root_digest


def verify_root_digest(
    data: bytes,
    expected: str,
    chunk_size: int = CHUNK_SIZE,
    max_chunks_per_segment: int = MAX_CHUNKS_PER_SEGMENT,
) -> bool:
    """Check reassembled content against an expected root digest."""
    return compute_root_digest(data, chunk_size, max_chunks_per_segment) == expected.lower()


def expected_proof_positions(segment_index: int, segment_count: int) -> List[bool]:
    """
    Sibling sides (True for left) on the path from a segment to the root.

    Levels where the node has no sibling are promoted and contribute no step.

    Raises:
        IndexError: If segment_index is out of range
    """
    if not 0 <= segment_index < segment_count:
        raise IndexError(f"segment {segment_index} out of range for {segment_count} segment(s)")

    positions = []
    index, width = segment_index, segment_count
    while width > 1:
        sibling_index = index ^ 1
        if sibling_index < width:
            positions.append(sibling_index < index)
        index //= 2
        width = (width + 1) // 2
    return positions


def verify_segment(
    segment: bytes,
    segment_index: int,
    segment_count: int,
    proof: Sequence[ProofStep],
    root_digest: str,
    chunk_size: int = CHUNK_SIZE,
) -> bool:
    """
    Verify one segment payload against the file root using its proof.

    The proof must also place the segment at segment_index: a valid proof
    for another segment of the same file is rejected.

    Returns:
        True if the proof shape matches segment_index and folding it from
        the segment's root reaches root_digest
    """
    try:
        expected = from_hex_digest(root_digest)
        positions = expected_proof_positions(segment_index, segment_count)
    except (ValueError, IndexError):
        return False

    if [step.sibling_on_left for step in proof] != positions:
        return False

    node = segment_root(segment, chunk_size)
    for step in proof:
        if step.sibling_on_left:
            node = hash_node(step.sibling, node)
        else:
            node = hash_node(node, step.sibling)
    return node == expected
