"""Async JSON-over-HTTP client shared by every upstream adapter."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aiohttp


class UpstreamError(Exception):
    """Raised when an upstream call fails (network, timeout, status, body)."""


class HttpClient:
    """Thin wrapper over one lazily created ``aiohttp.ClientSession``.

    Every request carries a bounded total timeout. All failures surface as
    ``UpstreamError`` so callers only need to handle one exception type.
    """

    def __init__(self, timeout: float = 15.0, user_agent: str = "bshorts-feed") -> None:
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._headers)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        return await self._request("GET", url, params=params, timeout=timeout)

    async def post_json(
        self,
        url: str,
        payload: Any,
        *,
        timeout: float | None = None,
    ) -> Any:
        return await self._request("POST", url, payload=payload, timeout=timeout)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        payload: Any = None,
        timeout: float | None = None,
    ) -> Any:
        client_timeout = aiohttp.ClientTimeout(total=timeout or self._timeout)
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=payload,
                timeout=client_timeout,
            ) as response:
                if response.status < 200 or response.status >= 300:
                    raise UpstreamError(f"{method} {url} returned HTTP {response.status}")
                body = await response.read()
        except asyncio.TimeoutError as exc:
            raise UpstreamError(f"{method} {url} timed out after {client_timeout.total}s") from exc
        except aiohttp.ClientError as exc:
            raise UpstreamError(f"{method} {url} failed: {exc}") from exc

        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise UpstreamError(f"{method} {url} returned undecodable body: {exc}") from exc
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise UpstreamError(f"{method} {url} returned invalid JSON: {exc}") from exc
