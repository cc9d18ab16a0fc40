"""Tests for bshorts_feed.services.playlist."""

import asyncio
import logging

from fakes import FakeHttp, playlist_item

from bshorts_feed.services.http import UpstreamError
from bshorts_feed.services.playlist import extract_page_items, fetch_items

BASE = "http://index.local"
EN_URL = f"{BASE}/playlists/en"


def _pages(*pages):
    """Serve pages by offset; a page may be an exception."""
    by_offset = {}
    offset = 0
    for page in pages:
        by_offset[offset] = page
        offset += len(page) if isinstance(page, list) else 0

    def handler(params):
        return by_offset.get(params["offset"], [])

    return handler


def _items(prefix: str, n: int) -> list[dict]:
    return [playlist_item(f"{prefix}{i}") for i in range(n)]


class TestExtractPageItems:
    def test_bare_array(self):
        assert extract_page_items([{"a": 1}]) == [{"a": 1}]

    def test_items_object(self):
        assert extract_page_items({"items": [{"a": 1}], "total": 1}) == [{"a": 1}]

    def test_unexpected_shape_is_empty(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bshorts_feed"):
            assert extract_page_items({"data": []}, lang="en") == []
        assert "Unexpected upstream shape" in caplog.text
        assert "data" in caplog.text

    def test_scalar_is_empty(self):
        assert extract_page_items("oops") == []

    def test_none_is_empty(self):
        assert extract_page_items(None) == []

    def test_non_dict_entries_dropped(self):
        assert extract_page_items([{"a": 1}, "x", None]) == [{"a": 1}]


class TestFetchItems:
    def test_single_page_reaching_min_count(self):
        http = FakeHttp({EN_URL: _pages(_items("a", 5))})
        items = asyncio.run(fetch_items(http, BASE, "en", 5, page_size=5))
        assert len(items) == 5
        assert len(http.calls) == 1
        assert http.calls[0][2] == {"limit": 5, "offset": 0}

    def test_paginates_until_min_count(self):
        http = FakeHttp({EN_URL: _pages(_items("a", 3), _items("b", 3), _items("c", 3))})
        items = asyncio.run(fetch_items(http, BASE, "en", 6, page_size=3))
        assert [i["video_hash"] for i in items] == ["a0", "a1", "a2", "b0", "b1", "b2"]
        assert [c[2]["offset"] for c in http.calls] == [0, 3]

    def test_offset_counts_skipped_entries(self):
        first = [playlist_item("a0"), None, "junk", playlist_item("a1")]
        http = FakeHttp({EN_URL: _pages(first, _items("b", 4))})
        items = asyncio.run(fetch_items(http, BASE, "en", 6, page_size=4))
        assert [i["video_hash"] for i in items] == ["a0", "a1", "b0", "b1", "b2", "b3"]
        assert [c[2]["offset"] for c in http.calls] == [0, 4]

    def test_page_of_only_junk_does_not_stop_paging(self):
        http = FakeHttp({EN_URL: _pages([None, None], _items("b", 2))})
        items = asyncio.run(fetch_items(http, BASE, "en", 100, page_size=2))
        assert [i["video_hash"] for i in items] == ["b0", "b1"]
        assert [c[2]["offset"] for c in http.calls] == [0, 2, 4]

    def test_stops_on_empty_page(self):
        http = FakeHttp({EN_URL: _pages(_items("a", 2))})
        items = asyncio.run(fetch_items(http, BASE, "en", 100, page_size=2))
        assert len(items) == 2
        assert len(http.calls) == 2

    def test_page_cap(self):
        http = FakeHttp({EN_URL: lambda params: _items(f"p{params['offset']}-", 2)})
        items = asyncio.run(fetch_items(http, BASE, "en", 1000, page_size=2, max_pages=3))
        assert len(items) == 6
        assert len(http.calls) == 3

    def test_items_object_shape(self):
        http = FakeHttp({EN_URL: {"items": _items("a", 4)}})
        items = asyncio.run(fetch_items(http, BASE, "en", 4))
        assert len(items) == 4

    def test_failure_on_later_page_keeps_partial(self):
        http = FakeHttp({EN_URL: _pages(_items("a", 50), UpstreamError("timed out"))})
        items = asyncio.run(fetch_items(http, BASE, "en", 100, page_size=50))
        assert len(items) == 50

    def test_failure_on_first_page_is_empty(self, caplog):
        http = FakeHttp({EN_URL: UpstreamError("connection refused")})
        with caplog.at_level(logging.WARNING, logger="bshorts_feed"):
            items = asyncio.run(fetch_items(http, BASE, "en", 100))
        assert items == []
        assert "connection refused" in caplog.text

    def test_unexpected_shape_ends_pagination(self):
        http = FakeHttp({EN_URL: {"error": "nope"}})
        items = asyncio.run(fetch_items(http, BASE, "en", 100))
        assert items == []
        assert len(http.calls) == 1

    def test_language_is_url_encoded(self):
        url = f"{BASE}/playlists/zh%2FHans"
        http = FakeHttp({url: _items("z", 1)})
        items = asyncio.run(fetch_items(http, BASE, "zh/Hans", 1))
        assert len(items) == 1

    def test_trailing_slash_in_base(self):
        http = FakeHttp({EN_URL: _items("a", 1)})
        items = asyncio.run(fetch_items(http, BASE + "/", "en", 1))
        assert len(items) == 1
