"""Social-network RPC client and ordered call-shape fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from bshorts_feed.services.http import HttpClient, UpstreamError

logger = logging.getLogger("bshorts_feed")

T = TypeVar("T")


class RpcError(UpstreamError):
    """Raised when the RPC node answers with an error envelope."""


class RpcClient:
    """POSTs ``{"method", "parameters"}`` to ``{base}/rpc/{method}``."""

    def __init__(self, http: HttpClient, base_url: str, timeout: float = 10.0) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def call(self, method: str, params: Any) -> Any:
        url = f"{self._base_url}/rpc/{method}"
        body = await self._http.post_json(
            url,
            {"method": method, "parameters": params},
            timeout=self._timeout,
        )
        return _unwrap_envelope(method, body)


def _unwrap_envelope(method: str, body: Any) -> Any:
    """Strip a JSON-RPC style ``{result, error, id}`` envelope if present."""
    if not isinstance(body, dict):
        return body
    error = body.get("error")
    if error:
        if isinstance(error, dict):
            error = error.get("message") or error
        raise RpcError(f"{method}: {error}")
    if "result" in body and ("id" in body or "error" in body):
        return body["result"]
    return body


@dataclass(frozen=True)
class CallShape:
    """One way of phrasing a canonical request for a given RPC version."""

    name: str
    build: Callable[..., Any]


@dataclass
class FallbackOutcome(Generic[T]):
    value: T | None
    shape: str | None
    attempts: list[str]


async def call_with_fallback(
    rpc: RpcClient,
    method: str,
    shapes: Sequence[CallShape],
    accept: Callable[[Any], T | None],
    *args: Any,
) -> FallbackOutcome[T]:
    """Try each call shape in order until one yields an accepted value.

    ``accept`` converts a raw response into the caller's value, returning
    None for shapes it does not recognize. Upstream failures and rejected
    responses move on to the next shape; the outcome records every attempt.
    """
    attempts: list[str] = []
    for shape in shapes:
        try:
            response = await rpc.call(method, shape.build(*args))
        except UpstreamError as exc:
            attempts.append(f"{shape.name}: {exc}")
            continue
        value = accept(response)
        if value is None:
            attempts.append(f"{shape.name}: unrecognized {type(response).__name__}")
            continue
        attempts.append(f"{shape.name}: ok")
        return FallbackOutcome(value=value, shape=shape.name, attempts=attempts)

    logger.debug("%s: all %d call shapes failed: %s", method, len(shapes), "; ".join(attempts))
    return FallbackOutcome(value=None, shape=None, attempts=attempts)
