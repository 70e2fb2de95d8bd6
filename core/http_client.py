import asyncio
import logging
from typing import Any, Mapping

import httpx

import config
from core.errors import RemoteError, TransportError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def _error_message(payload: Any) -> str | None:
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, dict):
                nested = _error_message(value)
                if nested:
                    return nested
    return None


class HttpClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        is_live: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or config.NAV_API_URL).rstrip("/")
        live = config.IS_LIVE if is_live is None else is_live
        self.client = httpx.AsyncClient(
            headers={**config.HEADERS, **(headers or {})},
            params={"is_live": "true" if live else "false"},
            transport=transport,
        )
        self._request_retries = max(0, config.REQUEST_RETRIES)
        self._request_retry_backoff = max(0.0, config.REQUEST_RETRY_BACKOFF)

    def _url(self, url: str) -> str:
        if url.startswith("http"):
            return url
        return self.base_url + (url if url.startswith("/") else "/" + url)

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request; only GETs are retried on transient failures."""
        url = self._url(url)
        kwargs.setdefault("timeout", config.REQUEST_TIMEOUT)
        retries = self._request_retries if method.upper() == "GET" else 0
        for attempt in range(retries + 1):
            try:
                response = await self.client.request(method, url, **kwargs)
            except httpx.RequestError:
                if attempt >= retries:
                    raise
                logger.debug("Transient error on %s %s (attempt %d).", method, url, attempt + 1)
                await asyncio.sleep(self._request_retry_backoff * (2 ** attempt))
                continue

            if response.status_code not in RETRYABLE_STATUS_CODES or attempt >= retries:
                return response

            await asyncio.sleep(self._request_retry_backoff * (2 ** attempt))

        raise RuntimeError("Unexpected request retry flow termination")

    async def request_data(self, method: str, url: str, **kwargs) -> Any:
        """Send a request and unwrap the ``{success, data, error}`` envelope."""
        try:
            response = await self.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            message = _error_message(payload) or response.reason_phrase or "HTTP error"
            raise TransportError(
                f"{method} {url} returned {response.status_code}: {message}",
                status_code=response.status_code,
            )

        if not isinstance(payload, dict) or "success" not in payload:
            raise RemoteError(f"{method} {url} returned a malformed envelope")
        if not payload.get("success"):
            raise RemoteError(
                _error_message(payload) or "Request failed",
                code=payload.get("code") if isinstance(payload.get("code"), str) else None,
            )
        return payload.get("data")

    async def get_data(self, url: str, **kwargs) -> Any:
        return await self.request_data("GET", url, **kwargs)

    async def post_data(self, url: str, **kwargs) -> Any:
        return await self.request_data("POST", url, **kwargs)

    async def put_data(self, url: str, **kwargs) -> Any:
        return await self.request_data("PUT", url, **kwargs)

    async def delete_data(self, url: str, **kwargs) -> Any:
        return await self.request_data("DELETE", url, **kwargs)

    async def close(self):
        await self.client.aclose()
