"""Synchronous facade over the async transfer and share-code services."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx

from cli.config import Config
from cli.constants import GREEN, RESET
from cli.utils import format_file_size, format_record, resolve_output_path
from common.exceptions import (
    EncryptionError,
    FileTooLargeError,
    IntegrityError,
    InvalidFormatError,
    LocationError,
    PrivShareError,
    PublishError,
    SegmentsExhaustedError,
    StorageUnavailableError,
    SubmissionError,
    UnresolvedShareCodeError,
)
from common.logging_config import get_logger
from sharecode.index_client import IndexServiceClient, PinataIndexClient, PointerIndex
from sharecode.pointer_cache import LocalPointerCache
from sharecode.protocol import ShareCodeProtocol
from transfer.file_service import FileService
from transfer.signer import RemoteSigner
from transfer.storage_client import StorageNetworkClient

logger = get_logger(__name__)


class PrivShareClient:
    """Runs one upload/download/preview/status per call and renders the outcome."""

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the client.

        Args:
            config: Configuration instance
            transport: Optional httpx transport shared by every HTTP client (used by tests)
        """
        self.config = config
        self.transport = transport
        self.cache = LocalPointerCache(config.get_cache_path())
        logger.info(
            f"Initialized PrivShareClient [rpc={config.get_rpc_url()}] [indexer={config.get_indexer_rpc()}]"
        )

    def _http(self, base_url: str = "") -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=base_url, timeout=self.config.get_timeout(), transport=self.transport)

    def _make_index(self) -> Optional[PointerIndex]:
        retry = self.config.get_retry_config()
        index_url = self.config.get_index_url()
        if index_url:
            return IndexServiceClient(
                index_url,
                max_retries=retry['max_retries'],
                retry_backoff=retry['retry_backoff_multiplier'],
                http=self._http(index_url.rstrip("/")),
            )
        jwt = self.config.get_pinata_jwt()
        if jwt:
            return PinataIndexClient(jwt=jwt, http=self._http())
        return None

    def _make_signer(self) -> Optional[RemoteSigner]:
        signer_config = self.config.get_signer_config()
        if signer_config is None:
            return None
        return RemoteSigner(signer_config['signer_url'], signer_config['wallet_address'], http=self._http())

    @asynccontextmanager
    async def _session(self, connect: bool = True) -> AsyncIterator[FileService]:
        """
        Build the services for one command and close them afterwards.

        Args:
            connect: Verify the RPC endpoint and indexer before yielding

        Raises:
            StorageUnavailableError: If connect is set and the network is unreachable
        """
        retry = self.config.get_retry_config()
        transfer = self.config.get_transfer_config()
        codes = self.config.get_share_code_config()

        storage = StorageNetworkClient(
            self.config.get_rpc_url(),
            self.config.get_indexer_rpc(),
            max_retries=retry['max_retries'],
            retry_backoff=retry['retry_backoff_multiplier'],
            expected_replica=transfer['expected_replica'],
            http=self._http(),
        )
        index = self._make_index()
        signer = self._make_signer()
        try:
            if connect:
                await storage.connect()
            share_codes = ShareCodeProtocol(
                storage,
                cache=self.cache,
                index=index,
                scheme=codes['scheme'],
                namespace=codes['namespace'],
                check_collisions=codes['check_collisions'],
            )
            yield FileService(
                storage,
                share_codes,
                signer=signer,
                max_file_size=transfer['max_file_size'],
                max_concurrent_fetches=transfer['max_concurrent_fetches'],
                fetch_timeout=self.config.get_timeout(),
                verify_proofs=transfer['enable_proof_verification'],
            )
        finally:
            await storage.close()
            if index is not None:
                await index.close()
            if signer is not None:
                await signer.close()

    def _format_error(self, exc: PrivShareError) -> str:
        """
        Map PrivShare errors to user-friendly messages by exception type.

        Args:
            exc: Raised error

        Returns:
            User-friendly error message
        """
        codes = self.config.get_share_code_config()
        error_messages = {
            InvalidFormatError: (
                f"Invalid share code. Expected {codes['scheme']}://{codes['namespace']}-xxxx-xxxx-xxxx-xxxx "
                "(lowercase letters and digits)."
            ),
            UnresolvedShareCodeError: (
                "Share code not found. Codes published from another device need a pointer index "
                "(set index_url or pinata_jwt in the config)."
            ),
            LocationError: "No storage node can serve this file right now. Please try again later.",
            SegmentsExhaustedError: "Download failed: some segments could not be fetched from any storage node.",
            IntegrityError: "Integrity check failed: downloaded data does not match the file's root digest.",
            StorageUnavailableError: "Storage network is unreachable. Check rpc_url and indexer_rpc.",
            SubmissionError: f"Upload failed: {exc}",
            PublishError: f"Upload stored but share code could not be published: {exc}",
            FileTooLargeError: f"File too large: {exc}",
            EncryptionError: f"Encryption error: {exc}",
        }
        for klass in type(exc).__mro__:
            if klass in error_messages:
                return error_messages[klass]
        return f"Error: {exc}"

    def upload(self, file_path: str, encrypt: bool = False, key: Optional[str] = None, store_key: bool = False) -> str:
        """
        Upload a local file and publish a share code.

        Returns:
            Share code and key details, or error message
        """
        path = Path(file_path).expanduser()
        if not path.is_file():
            return f"Error: File not found: {file_path}"

        try:
            data = path.read_bytes()

            async def run():
                async with self._session() as service:
                    return await service.upload(data, path.name, encrypt=encrypt, key=key, store_key=store_key)

            result = asyncio.run(run())
        except PrivShareError as e:
            logger.error(f"Upload of {path.name} failed: {type(e).__name__} [stage={e.stage}]")
            return self._format_error(e)
        except OSError as e:
            return f"Error: Cannot read {file_path}: {e}"
        except Exception as e:
            logger.error(f"Unexpected error during upload: {e}", exc_info=True)
            return f"Unexpected error during upload: {e}"

        lines = [
            f"Uploaded: {path.name} ({format_file_size(len(data))})",
            f"Share code: {GREEN}{result.share_code}{RESET}",
            f"Root digest: {result.root_digest}",
            f"Transaction: {result.transaction_ref}",
        ]
        if encrypt and store_key:
            lines.append("Encrypted. The key is stored in the share record.")
        elif encrypt:
            lines.append(f"Decryption key: {result.encryption_key}")
            lines.append("Keep this key safe. It is not stored anywhere and cannot be recovered.")
        return "\n".join(lines)

    def download(self, share_code: str, output_path: Optional[str] = None, key: Optional[str] = None) -> str:
        """
        Download a file by share code and write it to disk.

        Returns:
            Success or error message
        """
        try:
            async def run():
                async with self._session() as service:
                    return await service.download(share_code, key=key)

            result = asyncio.run(run())
            target = resolve_output_path(output_path, self.config.get_download_dir(), result.record.file_name)
            target.write_bytes(result.data)
        except PrivShareError as e:
            logger.error(f"Download failed: {type(e).__name__} [stage={e.stage}] [code={share_code}]")
            return self._format_error(e)
        except OSError as e:
            return f"Error: Cannot write output file: {e}"
        except Exception as e:
            logger.error(f"Unexpected error during download: {e}", exc_info=True)
            return f"Unexpected error during download: {e}"

        return f"Downloaded: {result.record.file_name} ({format_file_size(len(result.data))}) -> {target}"

    def preview(self, share_code: str) -> str:
        """
        Show the pointer record behind a share code without downloading.

        Returns:
            Formatted record or error message
        """
        try:
            async def run():
                async with self._session(connect=False) as service:
                    return await service.preview(share_code)

            record = asyncio.run(run())
        except PrivShareError as e:
            return self._format_error(e)
        except Exception as e:
            logger.error(f"Unexpected error during preview: {e}", exc_info=True)
            return f"Unexpected error during preview: {e}"
        return format_record(record)

    def status(self) -> str:
        """
        Report storage network connectivity.

        Returns:
            Status summary
        """
        async def run():
            async with self._session(connect=False) as service:
                return await service.storage.get_network_status()

        try:
            status = asyncio.run(run())
        except Exception as e:
            logger.error(f"Unexpected error during status check: {e}", exc_info=True)
            return f"Unexpected error during status check: {e}"

        if not status.connected:
            return f"Not connected: {status.error}"
        return (
            f"Connected to {status.rpc_url} (chain id {status.chain_id})\n"
            f"Indexer {status.indexer_rpc}: {status.node_count} storage node(s)"
        )
