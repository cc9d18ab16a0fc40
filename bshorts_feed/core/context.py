"""Process-wide upstream handles, created once and passed to every stage."""

from __future__ import annotations

from bshorts_feed.core.options import FeedOptions
from bshorts_feed.services.http import HttpClient
from bshorts_feed.services.rpc import RpcClient


class FeedContext:
    """Owns the shared HTTP session and RPC client for the process lifetime.

    Usage:
        async with FeedContext(options) as context:
            await run_cycle(options, context)
    """

    def __init__(
        self,
        options: FeedOptions,
        *,
        http: HttpClient | None = None,
        rpc: RpcClient | None = None,
    ) -> None:
        self.options = options
        self.http = http or HttpClient(timeout=options.fetch_timeout)
        self.rpc = rpc or RpcClient(self.http, options.rpc_base, timeout=options.rpc_timeout)

    async def __aenter__(self) -> FeedContext:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.http.close()
