"""Clients for searchable pointer indexes (our index service, Pinata)."""

import asyncio
import json
import uuid
from typing import Optional, Protocol

import httpx
from pydantic import ValidationError

from common.constants import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_BACKOFF, STORAGE_PROVIDER
from common.exceptions import FetchError, PublishError
from common.logging_config import get_logger
from sharecode.pointer_record import PointerRecord
from sharecode.share_code import extract_code

logger = get_logger(__name__)


class PointerIndex(Protocol):
    """
    Searchable store mapping share codes to pointer records.

    put() raises PublishError when the record cannot be stored.
    get() returns None on a miss; get() and exists() raise FetchError when
    the index cannot be reached.
    """

    async def put(self, code: str, record: PointerRecord) -> None:
        ...

    async def get(self, code: str) -> Optional[PointerRecord]:
        ...

    async def exists(self, code: str) -> bool:
        ...

    async def close(self) -> None:
        ...


class IndexServiceClient:
    """HTTP client for the PrivShare pointer index service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.http = http or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        logger.info(f"Initialized IndexServiceClient [base_url={self.base_url}]")

    async def _request_with_retry(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Raises:
            FetchError: If max retries exceeded or connection fails
        """
        request_id = str(uuid.uuid4())
        kwargs.setdefault("headers", {})["X-Request-ID"] = request_id
        last_exception = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.http.request(method, endpoint, **kwargs)
                if response.status_code >= 500 and attempt < self.max_retries:
                    delay = self.retry_backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={request_id}]"
                    )
                    await asyncio.sleep(delay)
                    continue
                return response
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self.retry_backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={request_id}]"
                    )
                    await asyncio.sleep(delay)

        raise FetchError(
            f"Cannot reach pointer index at {self.base_url}: {type(last_exception).__name__}",
            endpoint=self.base_url,
            stage="index",
        ) from last_exception

    async def put(self, code: str, record: PointerRecord) -> None:
        try:
            response = await self._request_with_retry("PUT", f"/pointers/{extract_code(code)}", json=record.to_wire())
        except FetchError as e:
            raise PublishError(str(e), stage="index", share_code=code) from e

        if response.status_code in (200, 201):
            logger.info(f"Pointer published to index [code={code}]")
            return
        raise PublishError(
            f"Index rejected pointer: status={response.status_code} code={self._error_code(response)}",
            stage="index",
            share_code=code,
        )

    async def get(self, code: str) -> Optional[PointerRecord]:
        response = await self._request_with_retry("GET", f"/pointers/{extract_code(code)}")
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise FetchError(f"Index lookup failed: status={response.status_code}", endpoint=self.base_url, stage="index")
        try:
            return PointerRecord.from_wire(response.json())
        except (ValueError, ValidationError) as e:
            raise FetchError("Index returned a malformed pointer record", endpoint=self.base_url, stage="index") from e

    async def exists(self, code: str) -> bool:
        return await self.get(code) is not None

    async def close(self) -> None:
        await self.http.aclose()

    @staticmethod
    def _error_code(response: httpx.Response) -> str:
        try:
            return response.json().get("code", "UNKNOWN")
        except ValueError:
            return "UNKNOWN"


class PinataIndexClient:
    """
    Pointer index backed by Pinata pinned JSON.

    Records are pinned with keyvalue metadata {shareCode, rootHash, provider}
    and found again through a pinList metadata query.
    """

    def __init__(
        self,
        jwt: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        api_url: str = "https://api.pinata.cloud",
        gateway_url: str = "https://gateway.pinata.cloud",
        timeout: float = 30.0,
        http: Optional[httpx.AsyncClient] = None,
    ):
        if jwt:
            headers = {"Authorization": f"Bearer {jwt}"}
        elif api_key and api_secret:
            headers = {"pinata_api_key": api_key, "pinata_secret_api_key": api_secret}
        else:
            raise ValueError("Pinata requires a JWT or an API key and secret")
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.headers = headers
        self.http = http or httpx.AsyncClient(timeout=timeout)

    async def put(self, code: str, record: PointerRecord) -> None:
        body = {
            "pinataContent": {**record.to_wire(), "code": code},
            "pinataMetadata": {
                "name": f"privshare-0g-{extract_code(code)}",
                "keyvalues": {"shareCode": code, "rootHash": record.root_digest, "provider": STORAGE_PROVIDER},
            },
        }
        try:
            response = await self.http.post(f"{self.api_url}/pinning/pinJSONToIPFS", json=body, headers=self.headers)
        except httpx.HTTPError as e:
            raise PublishError(f"Pinata unreachable: {type(e).__name__}", stage="index", share_code=code) from e
        if response.status_code >= 400:
            raise PublishError(f"Pinata pin failed: status={response.status_code}", stage="index", share_code=code)
        logger.info(f"Pointer pinned to Pinata [code={code}] cid={self._pin_hash(response)}")

    async def get(self, code: str) -> Optional[PointerRecord]:
        query = json.dumps({"shareCode": {"value": code, "op": "eq"}})
        try:
            response = await self.http.get(
                f"{self.api_url}/data/pinList",
                params={"status": "pinned", "metadata[keyvalues]": query},
                headers=self.headers,
            )
            if response.status_code >= 400:
                raise FetchError(f"Pinata search failed: status={response.status_code}", endpoint=self.api_url, stage="index")
            rows = response.json().get("rows") or []
            if not rows:
                return None
            content = await self.http.get(f"{self.gateway_url}/ipfs/{rows[0]['ipfs_pin_hash']}")
            if content.status_code >= 400:
                raise FetchError(f"Pinata gateway failed: status={content.status_code}", endpoint=self.gateway_url, stage="index")
            return PointerRecord.from_wire(content.json())
        except httpx.HTTPError as e:
            raise FetchError(f"Pinata unreachable: {type(e).__name__}", endpoint=self.api_url, stage="index") from e
        except (ValueError, KeyError, ValidationError) as e:
            raise FetchError("Pinata returned a malformed pointer record", endpoint=self.api_url, stage="index") from e

    async def exists(self, code: str) -> bool:
        return await self.get(code) is not None

    async def close(self) -> None:
        await self.http.aclose()

    @staticmethod
    def _pin_hash(response: httpx.Response) -> str:
        try:
            return response.json().get("IpfsHash", "unknown")
        except (ValueError, AttributeError):
            return "unknown"
