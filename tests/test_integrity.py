"""Unit tests for root digests and segment proofs."""

import hashlib

import pytest

from transfer.integrity import (
    EMPTY_ROOT,
    MerkleTree,
    ProofStep,
    compute_root_digest,
    expected_proof_positions,
    from_hex_digest,
    hash_leaf,
    hash_node,
    to_hex_digest,
    verify_root_digest,
    verify_segment,
)
from transfer.segmenter import compute_layout, split_segments

CHUNK = 4
MAX_CHUNKS = 4


class TestRootDigest:
    """Test whole-file root digests."""

    def test_digest_is_stable(self):
        data = b"hello storage network" * 50

        assert compute_root_digest(data) == compute_root_digest(bytes(data))

    def test_digest_format(self):
        digest = compute_root_digest(b"abc")

        assert digest.startswith("0x")
        assert len(digest) == 66
        assert digest == digest.lower()

    def test_single_byte_change_changes_digest(self):
        data = bytearray(b"x" * 1000)
        original = compute_root_digest(bytes(data))

        data[999] ^= 0x01

        assert compute_root_digest(bytes(data)) != original

    def test_empty_file_digest(self):
        assert compute_root_digest(b"") == to_hex_digest(EMPTY_ROOT)
        assert EMPTY_ROOT == hashlib.sha256(b"\x00").digest()

    def test_single_chunk_root_is_leaf_hash(self):
        assert MerkleTree.from_bytes(b"abc").root == hash_leaf(b"abc")

    def test_odd_node_promoted_unchanged(self):
        data = b"aaaabbbbcccc"
        tree = MerkleTree.from_bytes(data, CHUNK, max_chunks_per_segment=1)
        a, b, c = (hash_leaf(part) for part in (b"aaaa", b"bbbb", b"cccc"))

        assert tree.root == hash_node(hash_node(a, b), c)

    def test_verify_root_digest(self):
        data = b"payload" * 100
        digest = compute_root_digest(data, CHUNK, MAX_CHUNKS)

        assert verify_root_digest(data, digest.upper().replace("0X", "0x"), CHUNK, MAX_CHUNKS)
        assert not verify_root_digest(data + b"!", digest, CHUNK, MAX_CHUNKS)


class TestSegmentProofs:
    """Test per-segment proof verification."""

    @pytest.fixture
    def multi_segment(self):
        data = bytes(range(200))
        layout = compute_layout(len(data), CHUNK, MAX_CHUNKS)
        tree = MerkleTree.from_bytes(data, CHUNK, MAX_CHUNKS)
        return tree, split_segments(data, layout)

    def test_every_segment_verifies(self, multi_segment):
        tree, segments = multi_segment
        count = len(segments)

        for index, segment in enumerate(segments):
            assert verify_segment(segment, index, count, tree.segment_proof(index), tree.root_digest, CHUNK)

    def test_tampered_segment_fails(self, multi_segment):
        tree, segments = multi_segment
        tampered = b"\xff" + segments[3][1:]

        assert not verify_segment(tampered, 3, len(segments), tree.segment_proof(3), tree.root_digest, CHUNK)

    def test_proof_for_other_segment_fails(self, multi_segment):
        tree, segments = multi_segment

        assert not verify_segment(segments[0], 0, len(segments), tree.segment_proof(1), tree.root_digest, CHUNK)

    def test_valid_pair_at_wrong_index_fails(self, multi_segment):
        tree, segments = multi_segment
        count = len(segments)

        assert verify_segment(segments[0], 0, count, tree.segment_proof(0), tree.root_digest, CHUNK)
        for index in range(1, count):
            assert not verify_segment(segments[0], index, count, tree.segment_proof(0), tree.root_digest, CHUNK)

    def test_promoted_last_segment(self, multi_segment):
        tree, segments = multi_segment
        last = len(segments) - 1

        assert len(tree.segment_proof(last)) < len(tree.segment_proof(0))
        assert verify_segment(segments[last], last, len(segments), tree.segment_proof(last), tree.root_digest, CHUNK)

    def test_index_outside_file_fails(self, multi_segment):
        tree, segments = multi_segment

        assert not verify_segment(segments[0], len(segments), len(segments), tree.segment_proof(0), tree.root_digest, CHUNK)

    def test_single_segment_has_empty_proof(self):
        tree = MerkleTree.from_bytes(b"tiny", CHUNK, MAX_CHUNKS)

        assert expected_proof_positions(0, 1) == []
        assert verify_segment(b"tiny", 0, 1, [], tree.root_digest, CHUNK)

    def test_expected_positions(self):
        # 5 segments: index 4 is promoted twice, then pairs with the left subtree
        assert expected_proof_positions(4, 5) == [True]
        assert expected_proof_positions(1, 5) == [True, False, False]
        assert expected_proof_positions(2, 5) == [False, True, False]

    def test_wrong_root_fails(self, multi_segment):
        tree, segments = multi_segment

        assert not verify_segment(segments[0], 0, len(segments), tree.segment_proof(0), "0x" + "00" * 32, CHUNK)

    def test_malformed_root_fails(self, multi_segment):
        tree, segments = multi_segment

        assert not verify_segment(segments[0], 0, len(segments), tree.segment_proof(0), "not-a-digest", CHUNK)

    def test_proof_index_out_of_range(self, multi_segment):
        tree, _ = multi_segment

        with pytest.raises(IndexError):
            tree.segment_proof(len(tree.segment_roots))

    def test_proof_step_dict_form(self):
        step = ProofStep(sibling=b"\x01" * 32, sibling_on_left=True)

        assert step.to_dict() == {"hash": "0x" + "01" * 32, "position": "left"}
        assert ProofStep.from_dict(step.to_dict()) == step

    def test_proof_step_rejects_bad_position(self):
        with pytest.raises(ValueError):
            ProofStep.from_dict({"hash": "0x" + "01" * 32, "position": "up"})


class TestHexDigest:
    def test_from_hex_digest_requires_32_bytes(self):
        with pytest.raises(ValueError):
            from_hex_digest("0xabcd")

    def test_from_hex_digest_accepts_unprefixed(self):
        assert from_hex_digest("11" * 32) == b"\x11" * 32
