"""Signing capability used to submit storage transactions."""

from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from common.exceptions import SubmissionError
from common.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    tx_seq: int


class Signer(Protocol):
    """
    Opaque signing/transaction capability.

    Implementations own the wallet. The transfer layer only asks them to
    commit a root digest and size on chain and report the receipt.
    """

    @property
    def address(self) -> str:
        ...

    async def submit_transaction(self, root_digest: str, size: int) -> TransactionReceipt:
        ...


class RemoteSigner:
    """Signer that delegates to an HTTP signing service."""

    def __init__(
        self,
        signer_url: str,
        address: str,
        timeout: float = 30.0,
        http: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            signer_url: Base URL of the signing service
            address: Wallet address the service signs for
            timeout: Request timeout in seconds
            http: Optional pre-built client (used by tests)
        """
        self.signer_url = signer_url.rstrip("/")
        self._address = address
        self.http = http or httpx.AsyncClient(timeout=timeout)

    @property
    def address(self) -> str:
        return self._address

    async def submit_transaction(self, root_digest: str, size: int) -> TransactionReceipt:
        logger.info(f"Submitting storage transaction [root={root_digest}] size={size}")
        try:
            response = await self.http.post(
                f"{self.signer_url}/transactions",
                json={"root": root_digest, "size": size, "from": self._address},
            )
        except httpx.HTTPError as e:
            raise SubmissionError(f"Signing service unreachable: {type(e).__name__}", stage="sign", root_digest=root_digest) from e

        if response.status_code >= 400:
            raise SubmissionError(
                f"Signing service rejected transaction: status={response.status_code}",
                stage="sign",
                root_digest=root_digest,
            )

        try:
            body = response.json()
            receipt = TransactionReceipt(tx_hash=str(body["txHash"]), tx_seq=int(body["txSeq"]))
        except (ValueError, KeyError, TypeError) as e:
            raise SubmissionError("Malformed signing service response", stage="sign", root_digest=root_digest) from e

        logger.info(f"Transaction submitted [root={root_digest}] tx_hash={receipt.tx_hash} tx_seq={receipt.tx_seq}")
        return receipt

    async def close(self) -> None:
        await self.http.aclose()
