"""Upload and download orchestration."""

import asyncio
import mimetypes
from dataclasses import dataclass
from typing import Optional

from common.constants import (
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONCURRENT_FETCHES,
    MAX_FILE_SIZE,
)
from common.exceptions import (
    EncryptionError,
    FetchError,
    FileTooLargeError,
    NoLocationError,
    StorageUnavailableError,
    SubmissionError,
)
from common.logging_config import get_logger
from common.types import FileHandle
from sharecode.pointer_record import PointerRecord, utc_now_iso
from sharecode.protocol import PublishResult, ShareCodeProtocol
from transfer.crypto_envelope import CryptoEnvelope, generate_key
from transfer.executor import RetrievalExecutor
from transfer.planner import plan_download
from transfer.protocol import FileInfo, TransactionInfo
from transfer.signer import Signer
from transfer.storage_client import StorageNetworkClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadResult:
    share_code: str
    root_digest: str
    transaction_ref: str
    record: PointerRecord
    pointer: PublishResult
    encryption_key: Optional[str] = None


@dataclass(frozen=True)
class DownloadResult:
    data: bytes
    record: PointerRecord


class FileService:
    """
    Drives a full upload (encrypt, commit, mint, publish) or download
    (resolve, locate, plan, fetch, verify, decrypt).
    """

    def __init__(
        self,
        storage: StorageNetworkClient,
        share_codes: ShareCodeProtocol,
        signer: Optional[Signer] = None,
        envelope: Optional[CryptoEnvelope] = None,
        max_file_size: int = MAX_FILE_SIZE,
        max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        verify_proofs: bool = True,
    ):
        self.storage = storage
        self.share_codes = share_codes
        self.signer = signer
        self.envelope = envelope or CryptoEnvelope()
        self.max_file_size = max_file_size
        self.max_concurrent_fetches = max_concurrent_fetches
        self.fetch_timeout = fetch_timeout
        self.verify_proofs = verify_proofs

    @staticmethod
    def describe(data: bytes, file_name: str, mime_type: Optional[str] = None) -> FileHandle:
        guessed, _ = mimetypes.guess_type(file_name)
        return FileHandle(
            byte_length=len(data),
            mime_type=mime_type or guessed or "application/octet-stream",
            display_name=file_name,
        )

    async def upload(
        self,
        data: bytes,
        file_name: str,
        mime_type: Optional[str] = None,
        encrypt: bool = False,
        key: Optional[str] = None,
        store_key: bool = False,
    ) -> UploadResult:
        """
        Upload a file and publish its share code.

        Args:
            data: Plaintext file bytes
            file_name: Display name stored in the pointer record
            mime_type: Optional MIME type (guessed from file_name if omitted)
            encrypt: Encrypt with AES-256-GCM before upload
            key: Key material (64 hex chars or passphrase); generated if omitted
            store_key: Embed the key in the pointer record

        Returns:
            UploadResult with the share code and, for encrypted uploads, the key

        Raises:
            FileTooLargeError: If data exceeds max_file_size
            EncryptionError: If encryption fails
            SubmissionError: If no signer is configured or the upload fails
            PublishError: If the pointer index write fails
        """
        handle = self.describe(data, file_name, mime_type)
        if handle.byte_length > self.max_file_size:
            raise FileTooLargeError(handle.byte_length, self.max_file_size)
        if self.signer is None:
            raise SubmissionError("No signer configured; uploads need a wallet", stage="upload")

        iv = None
        body = data
        if encrypt:
            key = key or generate_key()
            sealed = self.envelope.seal(data, key)
            body, iv = sealed.ciphertext, sealed.iv_hex
        elif key:
            logger.warning("Key supplied without --encrypt; uploading unencrypted")
            key = None

        logger.info(
            f"Uploading {handle.display_name} size={handle.byte_length} encrypted={encrypt}"
        )
        submitted = await self.storage.submit_file(body, self.signer)

        code = await self.share_codes.mint_code()
        record = PointerRecord(
            share_code=code,
            root_digest=submitted.root_digest,
            file_name=handle.display_name,
            file_size=handle.byte_length,
            mime_type=handle.mime_type,
            is_encrypted=encrypt,
            iv=iv,
            encryption_key_material=key if (encrypt and store_key) else None,
            uploader=self.signer.address,
            upload_time=utc_now_iso(),
            transaction_ref=submitted.transaction_ref,
            expected_replica=self.storage.expected_replica,
        )
        pointer = await self.share_codes.publish(code, record, self.signer)

        logger.info(f"Upload complete [code={code}] [root={submitted.root_digest}]")
        return UploadResult(
            share_code=code,
            root_digest=submitted.root_digest,
            transaction_ref=submitted.transaction_ref,
            record=record,
            pointer=pointer,
            encryption_key=key,
        )

    async def preview(self, code: str) -> PointerRecord:
        """Resolve a share code without downloading. Key material is stripped."""
        record = await self.share_codes.resolve(code)
        return record.without_key()

    async def download(self, code: str, key: Optional[str] = None) -> DownloadResult:
        """
        Resolve a share code, fetch the file and decrypt it if needed.

        Raises:
            InvalidFormatError: If code is malformed
            UnresolvedShareCodeError: If code cannot be resolved
            StorageUnavailableError: If the indexer cannot be reached
            LocationError: If no node can serve the file
            SegmentsExhaustedError: If some segment could not be fetched
            IntegrityError: If the reassembled bytes fail verification
            EncryptionError: If the file is encrypted and no usable key is given
        """
        record = await self.share_codes.resolve(code)
        key = key or record.encryption_key_material
        if record.is_encrypted and not key:
            raise EncryptionError(
                "This file is encrypted. Please provide the decryption key.",
                stage="download",
                share_code=code,
            )

        data = await self.fetch_by_root(record.root_digest)

        if record.is_encrypted:
            data = self.envelope.open(data, key, record.iv)
        return DownloadResult(data=data, record=record)

    async def fetch_by_root(self, root_digest: str) -> bytes:
        """
        Download and verify the bytes stored under a root digest.

        Raises:
            StorageUnavailableError: If the indexer cannot be reached
            LocationError: If no node can serve the file
            SegmentsExhaustedError: If some segment could not be fetched
            IntegrityError: If the reassembled bytes fail verification
        """
        try:
            nodes = await self.storage.discover_nodes_for(root_digest)
        except FetchError as e:
            raise StorageUnavailableError(
                f"Cannot look up storage locations: {e}", stage="discover", root_digest=root_digest
            ) from e
        tx = await self._query_transaction(nodes, root_digest)
        plan = plan_download(
            root_digest,
            nodes,
            tx,
            chunk_size=self.storage.chunk_size,
            max_chunks_per_segment=self.storage.max_chunks_per_segment,
        )
        executor = RetrievalExecutor(
            self.storage,
            max_concurrent_fetches=self.max_concurrent_fetches,
            fetch_timeout=self.fetch_timeout,
            verify_proofs=self.verify_proofs,
        )
        return await executor.retrieve(plan)

    async def _query_transaction(self, nodes, root_digest: str) -> TransactionInfo:
        for node in nodes:
            try:
                info = await asyncio.wait_for(
                    self.storage.query_file_info(node, root_digest), timeout=self.fetch_timeout
                )
            except (FetchError, asyncio.TimeoutError) as e:
                logger.warning(f"File info query failed on {node.node_endpoint}: {e}")
                continue
            if isinstance(info, FileInfo):
                return info.tx
            logger.debug(f"Node {node.node_endpoint} cannot serve file info: {info.kind}")

        raise NoLocationError(
            "No storage node reports the file as finalized", stage="locate", root_digest=root_digest
        )
