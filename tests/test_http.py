"""Tests for bshorts_feed.services.http against an in-process aiohttp server."""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from bshorts_feed.services.http import HttpClient, UpstreamError
from bshorts_feed.services.playlist import fetch_items
from bshorts_feed.services.rpc import CallShape, RpcClient, call_with_fallback

BAD_UTF8 = b'[{"video_hash": "\xff\xfe"}]'


def _app() -> web.Application:
    async def items(request):
        return web.json_response({
            "items": [{"video_hash": "h1"}],
            "limit": request.query.get("limit"),
            "offset": request.query.get("offset"),
        })

    async def echo(request):
        return web.json_response({"received": await request.json()})

    async def missing(request):
        return web.json_response({"error": "nope"}, status=404)

    async def broken(request):
        return web.Response(text="<html>oops</html>", content_type="text/html")

    async def empty(request):
        return web.Response(text="")

    async def undecodable(request):
        return web.Response(body=BAD_UTF8, content_type="application/json")

    async def paged(request):
        if request.query.get("offset") == "0":
            return web.json_response([{"video_hash": f"h{i}"} for i in range(50)])
        return web.Response(body=BAD_UTF8, content_type="application/json")

    async def rpc_by_shape(request):
        body = await request.json()
        if "bad" in body["parameters"]:
            return web.Response(body=BAD_UTF8, content_type="application/json")
        return web.json_response({"ok": True})

    async def slow(request):
        await asyncio.sleep(1)
        return web.json_response([])

    app = web.Application()
    app.router.add_get("/playlists/en", items)
    app.router.add_post("/rpc/echo", echo)
    app.router.add_get("/missing", missing)
    app.router.add_get("/broken", broken)
    app.router.add_get("/empty", empty)
    app.router.add_get("/undecodable", undecodable)
    app.router.add_get("/playlists/ru", paged)
    app.router.add_post("/rpc/shapes", rpc_by_shape)
    app.router.add_get("/slow", slow)
    return app


def _run(coro_fn):
    async def _main():
        async with test_utils.TestServer(_app()) as server:
            async with HttpClient(timeout=5) as http:
                return await coro_fn(server, http)

    return asyncio.run(_main())


class TestHttpClient:
    def test_get_json_with_params(self):
        async def go(server, http):
            return await http.get_json(
                str(server.make_url("/playlists/en")), params={"limit": 10, "offset": 20},
            )

        data = _run(go)
        assert data["items"] == [{"video_hash": "h1"}]
        assert data["limit"] == "10"
        assert data["offset"] == "20"

    def test_post_json(self):
        async def go(server, http):
            return await http.post_json(str(server.make_url("/rpc/echo")), {"method": "m"})

        assert _run(go) == {"received": {"method": "m"}}

    def test_non_2xx_raises(self):
        async def go(server, http):
            return await http.get_json(str(server.make_url("/missing")))

        with pytest.raises(UpstreamError, match="HTTP 404"):
            _run(go)

    def test_invalid_json_raises(self):
        async def go(server, http):
            return await http.get_json(str(server.make_url("/broken")))

        with pytest.raises(UpstreamError, match="invalid JSON"):
            _run(go)

    def test_empty_body_is_none(self):
        async def go(server, http):
            return await http.get_json(str(server.make_url("/empty")))

        assert _run(go) is None

    def test_timeout_raises(self):
        async def go(server, http):
            return await http.get_json(str(server.make_url("/slow")), timeout=0.1)

        with pytest.raises(UpstreamError, match="timed out"):
            _run(go)

    def test_connection_error_raises(self):
        async def go():
            async with HttpClient(timeout=2) as http:
                return await http.get_json("http://127.0.0.1:9/unreachable")

        with pytest.raises(UpstreamError):
            asyncio.run(go())

    def test_close_is_idempotent(self):
        async def go():
            http = HttpClient()
            await http.close()
            await http.close()

        asyncio.run(go())

    def test_undecodable_body_raises(self):
        async def go(server, http):
            return await http.get_json(str(server.make_url("/undecodable")))

        with pytest.raises(UpstreamError, match="undecodable"):
            _run(go)


# --- undecodable bodies through the adapters ---


class TestUndecodableBodies:
    def test_page_keeps_earlier_items(self):
        async def go(server, http):
            base = str(server.make_url("/")).rstrip("/")
            return await fetch_items(http, base, "ru", 100, page_size=50)

        items = _run(go)
        assert len(items) == 50
        assert items[0] == {"video_hash": "h0"}

    def test_rpc_moves_to_next_shape(self):
        shapes = (
            CallShape("bad", lambda x: {"bad": x}),
            CallShape("good", lambda x: {"good": x}),
        )

        async def go(server, http):
            rpc = RpcClient(http, str(server.make_url("/")))
            return await call_with_fallback(rpc, "shapes", shapes, lambda r: r or None, "v")

        outcome = _run(go)
        assert outcome.shape == "good"
        assert outcome.value == {"ok": True}
        assert outcome.attempts[0].startswith("bad: ")
