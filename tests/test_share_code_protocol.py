"""Tests for minting, publishing and resolving share codes."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from common.exceptions import (
    InvalidFormatError,
    PublishError,
    UnresolvedShareCodeError,
)
from sharecode.pointer_cache import LocalPointerCache
from sharecode.pointer_record import PointerRecord
from sharecode.protocol import ShareCodeProtocol
from sharecode.share_code import validate_share_code
from transfer.storage_client import StorageNetworkClient, SubmitResult

from conftest import FakeSigner, InMemoryIndex

CODE = "privshare://0g-ab12-cd34-ef56-gh78"


def make_record(code=CODE):
    return PointerRecord(
        share_code=code,
        root_digest="0x" + "ab" * 32,
        file_name="a.txt",
        file_size=3,
        uploader="0xabc",
        upload_time="2026-01-01T00:00:00+00:00",
    )


@pytest.fixture
def storage():
    storage = Mock(spec=StorageNetworkClient)
    storage.submit_file = AsyncMock(return_value=SubmitResult(root_digest="0x" + "cd" * 32, transaction_ref="0xtx", tx_seq=1))
    return storage


@pytest.fixture
def cache(tmp_path):
    return LocalPointerCache(tmp_path / "pointers.json")


class TestResolve:
    """Test share code resolution."""

    @pytest.mark.asyncio
    async def test_invalid_code_raises_without_io(self, storage, cache):
        index = Mock(spec=InMemoryIndex)
        protocol = ShareCodeProtocol(storage, cache=cache, index=index)

        with pytest.raises(InvalidFormatError):
            await protocol.resolve("privshare://0g-ab12-cd34-ef56")

        index.get.assert_not_called()
        storage.submit_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_code_without_index(self, storage, cache):
        protocol = ShareCodeProtocol(storage, cache=cache)

        with pytest.raises(UnresolvedShareCodeError):
            await protocol.resolve(CODE)

    @pytest.mark.asyncio
    async def test_cache_hit(self, storage, cache):
        cache.put(CODE, make_record())
        protocol = ShareCodeProtocol(storage, cache=cache)

        assert await protocol.resolve(CODE) == make_record()

    @pytest.mark.asyncio
    async def test_index_hit_populates_cache(self, storage, cache):
        index = InMemoryIndex()
        index.records[CODE] = make_record()
        protocol = ShareCodeProtocol(storage, cache=cache, index=index)

        assert await protocol.resolve(CODE) == make_record()
        assert cache.get(CODE) == make_record()

    @pytest.mark.asyncio
    async def test_index_miss(self, storage, cache):
        protocol = ShareCodeProtocol(storage, cache=cache, index=InMemoryIndex())

        with pytest.raises(UnresolvedShareCodeError):
            await protocol.resolve(CODE)

    @pytest.mark.asyncio
    async def test_index_unreachable(self, storage, cache):
        index = InMemoryIndex()
        index.fail = True
        protocol = ShareCodeProtocol(storage, cache=cache, index=index)

        with pytest.raises(UnresolvedShareCodeError) as exc_info:
            await protocol.resolve(CODE)

        assert exc_info.value.__cause__ is not None


class TestPublish:
    """Test publishing pointer records."""

    @pytest.mark.asyncio
    async def test_publish_stores_indexes_and_caches(self, storage, cache, network):
        index = InMemoryIndex()
        protocol = ShareCodeProtocol(storage, cache=cache, index=index)
        signer = FakeSigner(network)

        result = await protocol.publish(CODE, make_record(), signer)

        payload = storage.submit_file.await_args.args[0]
        assert json.loads(payload)["code"] == CODE
        assert json.loads(payload)["rootHash"] == make_record().root_digest
        assert index.records[CODE] == make_record()
        assert cache.get(CODE) == make_record()
        assert result.transaction_ref == "0xtx"

    @pytest.mark.asyncio
    async def test_publish_index_failure_raises(self, storage, cache, network):
        index = InMemoryIndex()
        index.fail = True
        protocol = ShareCodeProtocol(storage, cache=cache, index=index)

        with pytest.raises(PublishError):
            await protocol.publish(CODE, make_record(), FakeSigner(network))

        assert CODE not in cache

    @pytest.mark.asyncio
    async def test_publish_rejects_mismatched_record(self, storage, cache, network):
        protocol = ShareCodeProtocol(storage, cache=cache)

        with pytest.raises(InvalidFormatError):
            await protocol.publish(CODE, make_record("privshare://0g-zzzz-zzzz-zzzz-zzzz"), FakeSigner(network))

        storage.submit_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_published_code_resolves_on_same_device(self, storage, cache, network):
        protocol = ShareCodeProtocol(storage, cache=cache)

        await protocol.publish(CODE, make_record(), FakeSigner(network))

        assert await protocol.resolve(CODE) == make_record()


class TestMintCode:
    """Test share code minting."""

    @pytest.mark.asyncio
    async def test_mint_returns_valid_code(self, storage):
        code = await ShareCodeProtocol(storage).mint_code()

        assert validate_share_code(code)

    @pytest.mark.asyncio
    async def test_collision_check_redraws(self, storage, monkeypatch):
        taken = "privshare://0g-aaaa-aaaa-aaaa-aaaa"
        free = "privshare://0g-bbbb-bbbb-bbbb-bbbb"
        draws = iter([taken, free])
        monkeypatch.setattr("sharecode.protocol.generate_share_code", lambda scheme, namespace: next(draws))
        index = InMemoryIndex()
        index.records[taken] = make_record(taken)
        protocol = ShareCodeProtocol(storage, index=index, check_collisions=True)

        assert await protocol.mint_code() == free

    @pytest.mark.asyncio
    async def test_collision_check_gives_up(self, storage, monkeypatch):
        taken = "privshare://0g-aaaa-aaaa-aaaa-aaaa"
        monkeypatch.setattr("sharecode.protocol.generate_share_code", lambda scheme, namespace: taken)
        index = InMemoryIndex()
        index.records[taken] = make_record(taken)
        protocol = ShareCodeProtocol(storage, index=index, check_collisions=True)

        with pytest.raises(PublishError):
            await protocol.mint_code()

    @pytest.mark.asyncio
    async def test_collision_check_asks_index_for_existence(self, storage):
        index = Mock(spec=InMemoryIndex)
        index.exists = AsyncMock(side_effect=[True, False])
        protocol = ShareCodeProtocol(storage, index=index, check_collisions=True)

        code = await protocol.mint_code()

        assert validate_share_code(code)
        assert index.exists.await_count == 2
        index.get.assert_not_called()
