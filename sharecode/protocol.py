"""
Share-code protocol: mint codes, publish pointer records, resolve codes.

Storage is content-addressed, so a record uploaded to the network cannot be
found again by its share code alone. Resolution therefore relies on the
same-device cache and on a searchable index when one is configured. With
neither, resolution fails with UnresolvedShareCodeError.
"""

import json
from dataclasses import dataclass
from typing import Optional

from common.constants import MAX_MINT_ATTEMPTS, SHARE_CODE_NAMESPACE, SHARE_CODE_SCHEME
from common.exceptions import (
    FetchError,
    InvalidFormatError,
    PublishError,
    UnresolvedShareCodeError,
)
from common.logging_config import get_logger
from sharecode.index_client import PointerIndex
from sharecode.pointer_cache import LocalPointerCache
from sharecode.pointer_record import PointerRecord
from sharecode.share_code import generate_share_code, validate_share_code
from transfer.signer import Signer
from transfer.storage_client import StorageNetworkClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class PublishResult:
    """Where the serialized pointer record itself was stored."""
    root_digest: str
    transaction_ref: str


class ShareCodeProtocol:
    def __init__(
        self,
        storage: StorageNetworkClient,
        cache: Optional[LocalPointerCache] = None,
        index: Optional[PointerIndex] = None,
        scheme: str = SHARE_CODE_SCHEME,
        namespace: str = SHARE_CODE_NAMESPACE,
        check_collisions: bool = False,
    ):
        self.storage = storage
        self.cache = cache
        self.index = index
        self.scheme = scheme
        self.namespace = namespace
        self.check_collisions = check_collisions

    def validate(self, code: str) -> None:
        """
        Raises:
            InvalidFormatError: If code does not follow the share code grammar
        """
        if not validate_share_code(code, self.scheme, self.namespace):
            raise InvalidFormatError(f"Invalid share code format: {code!r}", stage="validate", share_code=str(code))

    async def mint_code(self) -> str:
        """
        Draw a new share code.

        With check_collisions enabled and an index configured, codes already
        known locally or to the index are re-drawn.

        Raises:
            PublishError: If every draw collided
        """
        if not (self.check_collisions and self.index is not None):
            return generate_share_code(self.scheme, self.namespace)

        for attempt in range(MAX_MINT_ATTEMPTS):
            code = generate_share_code(self.scheme, self.namespace)
            in_cache = self.cache is not None and code in self.cache
            try:
                taken = in_cache or await self.index.exists(code)
            except FetchError as e:
                raise PublishError(f"Cannot check share code availability: {e}", stage="mint", share_code=code) from e
            if not taken:
                return code
            logger.warning(f"Share code collision on draw {attempt + 1}/{MAX_MINT_ATTEMPTS}")

        raise PublishError(f"No free share code after {MAX_MINT_ATTEMPTS} draws", stage="mint")

    async def publish(self, code: str, record: PointerRecord, signer: Signer) -> PublishResult:
        """
        Persist {code -> record}.

        The serialized record is uploaded to storage like any other file, then
        written to the index (if any), then cached on this device.

        Raises:
            InvalidFormatError: If code is malformed or does not match the record
            SubmissionError: If uploading the record fails
            PublishError: If the index write fails
        """
        self.validate(code)
        if record.share_code != code:
            raise InvalidFormatError("Pointer record belongs to a different share code", stage="publish", share_code=code)

        payload = json.dumps({**record.to_wire(), "code": code}, sort_keys=True).encode("utf-8")
        submitted = await self.storage.submit_file(payload, signer)
        logger.info(f"Pointer record stored [code={code}] [root={submitted.root_digest}]")

        if self.index is not None:
            await self.index.put(code, record)

        if self.cache is not None and not self.cache.put(code, record):
            logger.warning(f"Pointer for {code} not cached locally; it resolves only through the index")

        return PublishResult(root_digest=submitted.root_digest, transaction_ref=submitted.transaction_ref)

    async def resolve(self, code: str) -> PointerRecord:
        """
        Find the pointer record for a share code.

        Raises:
            InvalidFormatError: If code is malformed (no I/O is attempted)
            UnresolvedShareCodeError: If neither cache nor index knows the code
        """
        self.validate(code)

        if self.cache is not None:
            record = self.cache.get(code)
            if record is not None:
                logger.debug(f"Pointer cache hit [code={code}]")
                return record

        if self.index is None:
            raise UnresolvedShareCodeError(
                "Share code not found on this device and no pointer index is configured",
                stage="resolve",
                share_code=code,
            )

        try:
            record = await self.index.get(code)
        except FetchError as e:
            raise UnresolvedShareCodeError(
                f"Pointer index unavailable: {e}", stage="resolve", share_code=code
            ) from e

        if record is None:
            raise UnresolvedShareCodeError("Share code not found", stage="resolve", share_code=code)

        if self.cache is not None:
            self.cache.put(code, record)
        return record
