"""Write-once pointer publishing and lookup."""

from datetime import datetime, timezone
from typing import List, Tuple

from pydantic import ValidationError

from common.exceptions import InvalidFormatError
from common.logging_config import get_logger
from indexer.config import NAMESPACE, SCHEME
from indexer.exceptions import InvalidPointerRecordError, PointerExistsError, PointerNotFoundError
from indexer.repositories.pointer_repository import PointerRepository, StoredPointer
from sharecode.pointer_record import PointerRecord
from sharecode.share_code import share_code_prefix, validate_share_code

logger = get_logger(__name__)


class PointerService:
    """
    Pointers are write-once: the first record stored under a share code
    wins. Re-publishing the identical record is accepted; any other record
    for a taken code is rejected.
    """

    def __init__(self, scheme: str = SCHEME, namespace: str = NAMESPACE):
        self.scheme = scheme
        self.namespace = namespace

    def full_code(self, code_id: str) -> str:
        code = share_code_prefix(self.scheme, self.namespace) + code_id
        if not validate_share_code(code, self.scheme, self.namespace):
            raise InvalidFormatError(f"Invalid share code: {code_id!r}", stage="index", share_code=code)
        return code

    def put(self, code_id: str, payload: dict) -> Tuple[PointerRecord, bool]:
        """
        Store a pointer record.

        Returns:
            (record, created) where created is False for an idempotent re-publish

        Raises:
            InvalidFormatError: If code_id is malformed
            InvalidPointerRecordError: If payload is not a valid record for this code
            PointerExistsError: If a different record already holds the code
        """
        code = self.full_code(code_id)
        try:
            record = PointerRecord.from_wire(payload)
        except ValidationError as e:
            raise InvalidPointerRecordError(
                f"Invalid pointer record: {e.error_count()} validation error(s)", stage="index", share_code=code
            ) from e
        if record.share_code != code:
            raise InvalidPointerRecordError("Record share code does not match URL", stage="index", share_code=code)

        wire = record.to_wire()
        if PointerRepository.insert(code, record.root_digest.lower(), wire, datetime.now(timezone.utc)):
            logger.info(f"Pointer stored [code={code}] [root={record.root_digest}]")
            return record, True

        existing = PointerRepository.get_by_code(code)
        if existing is not None and existing.record == wire:
            logger.debug(f"Idempotent re-publish [code={code}]")
            return record, False

        logger.warning(f"Rejected overwrite of existing pointer [code={code}]")
        raise PointerExistsError("Share code already published", stage="index", share_code=code)

    def get(self, code_id: str) -> dict:
        """
        Raises:
            InvalidFormatError: If code_id is malformed
            PointerNotFoundError: If nothing is stored under the code
        """
        code = self.full_code(code_id)
        stored = PointerRepository.get_by_code(code)
        if stored is None:
            raise PointerNotFoundError("Share code not found", stage="index", share_code=code)
        return stored.record

    def list_by_root(self, root_digest: str) -> List[StoredPointer]:
        return PointerRepository.list_by_root(root_digest)
