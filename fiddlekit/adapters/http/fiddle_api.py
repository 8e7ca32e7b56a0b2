"""
HTTP adapter for the hosted fiddle service.
Implements the kernel's FiddleTransport contract on top of httpx.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fiddlekit.internal.constants import DEFAULT_BASE_URL, HTTP_TIMEOUT, STREAM_CONNECT_TIMEOUT
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.contracts import CacheID
from fiddlekit.kernel.errors import TransportError

logger = get_logger(__name__)


# ---------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------

class FiddleEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    fiddle: dict[str, Any]


class ExecutionSessionEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    session_id: str = Field(alias="sessionID", min_length=1)


class FiddleApiClient:
    """
    Thin async client for the fiddle REST API and its result stream.

    Non-streaming calls return parsed JSON when the response declares a JSON
    content type and None otherwise; connection failures and error statuses
    raise TransportError.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def fetch_json(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
        try:
            async with self._client(self.timeout) as client:
                r = await client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as exc:
            logger.error("Fiddle API request failed", method=method, url=url, exc_info=exc)
            raise TransportError(f"{method} {url} failed: {exc}", url=url) from exc

        if r.is_error:
            logger.error("Fiddle API returned an error", method=method, url=url, status_code=r.status_code)
            raise TransportError(f"{method} {url} returned {r.status_code}", url=url, status_code=r.status_code)

        if not r.headers.get("content-type", "").startswith("application/json"):
            logger.warning("Fiddle API response is not JSON", url=url, content_type=r.headers.get("content-type"))
            return None

        try:
            return r.json()
        except ValueError as exc:
            raise TransportError(f"{method} {url} returned invalid JSON", url=url, status_code=r.status_code) from exc

    @staticmethod
    def _require(model, data: Any, what: str):
        if data is None:
            raise TransportError(f"No {what} data returned")
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise TransportError(f"Unexpected {what} response: {exc}") from exc

    # ------------------------------------------------------------------
    # FiddleTransport
    # ------------------------------------------------------------------

    async def get_fiddle(self, fiddle_id: str) -> dict:
        data = await self.fetch_json("GET", f"/fiddle/{fiddle_id}")
        logger.debug("Fetched fiddle", fiddle_id=fiddle_id)
        return self._require(FiddleEnvelope, data, "fiddle").fiddle

    async def publish_fiddle(self, fiddle: Mapping[str, Any]) -> dict:
        fiddle_id = fiddle.get("id")
        path, method = (f"/fiddle/{fiddle_id}", "PUT") if fiddle_id else ("/fiddle", "POST")
        logger.info("Publishing fiddle", method=method, path=path)
        data = await self.fetch_json(method, path, json=dict(fiddle))
        return self._require(FiddleEnvelope, data, "fiddle").fiddle

    async def start_execution(self, fiddle_id: str, cache_id: CacheID) -> str:
        data = await self.fetch_json("POST", f"/fiddle/{fiddle_id}/execute", params={"cacheID": cache_id})
        return self._require(ExecutionSessionEnvelope, data, "execution session").session_id

    @asynccontextmanager
    async def stream_results(self, session_id: str) -> AsyncIterator[AsyncIterator[bytes]]:
        url = f"{self.base_url}/results/{session_id}/stream"
        timeout = httpx.Timeout(STREAM_CONNECT_TIMEOUT, read=None)
        try:
            async with self._client(timeout) as client:
                async with client.stream("GET", url, headers={"Accept": "text/event-stream"}) as response:
                    if response.is_error:
                        raise TransportError(
                            f"Result stream {url} returned {response.status_code}",
                            url=url,
                            status_code=response.status_code,
                        )
                    yield response.aiter_bytes()
        except httpx.RequestError as exc:
            logger.error("Result stream connection failed", url=url, exc_info=exc)
            raise TransportError(f"Result stream {url} failed: {exc}", url=url) from exc

    def __repr__(self) -> str:
        return f"<FiddleApiClient base_url={self.base_url}>"
