"""
HTTP client utilities for calling generative provider APIs.
"""

import asyncio
from typing import Any

import aiohttp

from shared.exceptions import ProviderError


class AsyncHTTPClient:
    """Async HTTP client that reports failures as ProviderError."""

    def __init__(self, provider: str = "http", timeout: int = 30) -> None:
        """Initialize HTTP client."""
        self.provider = provider
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "AsyncHTTPClient":
        """Enter async context manager."""
        self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self.session:
            await self.session.close()

    def _require_session(self) -> aiohttp.ClientSession:
        if not self.session:
            raise RuntimeError("HTTP client not initialized. Use async context manager.")
        return self.session

    @staticmethod
    def _extract_error_message(payload: Any, fallback: str) -> str:
        """Pull a readable message out of a provider error body."""
        if isinstance(payload, dict):
            detail = payload.get("detail")
            if isinstance(detail, list):
                return ", ".join(
                    str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail
                )
            if isinstance(detail, dict):
                return str(detail.get("message") or detail)
            if detail:
                return str(detail)
            if payload.get("error"):
                return str(payload["error"])
        return fallback

    async def _ensure_response_ok(self, response: aiohttp.ClientResponse) -> None:
        if 200 <= response.status < 300:
            return
        text = await response.text()
        try:
            payload = await response.json(content_type=None)
        except ValueError:
            payload = None
        message = self._extract_error_message(payload, text[:300] or response.reason or "Unknown API error")
        raise ProviderError(self.provider, message, status=response.status)

    async def _request(self, method: str, url: str, *, read: str, **kwargs: Any) -> Any:
        session = self._require_session()
        try:
            async with session.request(method, url, **kwargs) as response:
                await self._ensure_response_ok(response)
                if read == "json":
                    return await response.json(content_type=None)
                return await response.read()
        except ProviderError:
            raise
        except asyncio.TimeoutError as exc:
            raise ProviderError(self.provider, f"Request to {url} timed out") from exc
        except aiohttp.ClientError as exc:
            raise ProviderError(self.provider, str(exc) or type(exc).__name__) from exc

    async def post_json(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform POST request and decode a JSON response."""
        return await self._request("POST", url, read="json", json=data, headers=headers)

    async def post_for_bytes(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> bytes:
        """Perform POST request and return the raw response body."""
        return await self._request("POST", url, read="bytes", json=data, headers=headers)

    async def get_bytes(
        self,
        url: str,
        headers: dict[str, Any] | None = None,
        timeout: int | None = None,
    ) -> bytes:
        """Perform GET request and return the raw response body."""
        kwargs: dict[str, Any] = {"headers": headers}
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)
        return await self._request("GET", url, read="bytes", **kwargs)

    async def is_reachable(self, url: str) -> bool:
        """HEAD the URL and report whether it answered with a 2xx status."""
        session = self._require_session()
        try:
            async with session.head(url, allow_redirects=True) as response:
                return 200 <= response.status < 300
        except (aiohttp.ClientError, asyncio.TimeoutError):
            return False
