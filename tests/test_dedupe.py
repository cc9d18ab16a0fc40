"""Tests for bshorts_feed.services.dedupe."""

from datetime import datetime, timezone

from fakes import playlist_item

from bshorts_feed.services.dedupe import dedupe, raw_item_key, record_key
from bshorts_feed.services.normalizer import normalize_item

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


class TestDedupe:
    def test_keeps_first_occurrence(self):
        items = [("a", 1), ("b", 2), ("a", 3)]
        assert dedupe(items, lambda t: t[0]) == [("a", 1), ("b", 2)]

    def test_preserves_order(self):
        items = ["c", "a", "b", "a", "c", "d"]
        assert dedupe(items, lambda s: s) == ["c", "a", "b", "d"]

    def test_drops_falsy_keys(self):
        items = [{"k": ""}, {"k": None}, {"k": "x"}]
        assert dedupe(items, lambda d: d["k"]) == [{"k": "x"}]

    def test_empty(self):
        assert dedupe([], lambda x: x) == []

    def test_none_input(self):
        assert dedupe(None, lambda x: x) == []

    def test_output_keys_unique(self):
        items = [i % 7 + 1 for i in range(50)]
        out = dedupe(items, lambda x: x)
        assert len(out) == len(set(out)) == 7
        assert out == [1, 2, 3, 4, 5, 6, 7]


class TestRawItemKey:
    def test_video_hash(self):
        assert raw_item_key({"video_hash": "h1", "hash": "other"}) == "h1"

    def test_hash_fallback(self):
        assert raw_item_key({"hash": "h2"}) == "h2"

    def test_txid_fallback(self):
        assert raw_item_key({"txid": "t3"}) == "t3"

    def test_matches_normalized_hash(self):
        item = {"hash": "", "txid": "t3"}
        assert raw_item_key(item) == normalize_item(item, now=NOW).hash

    def test_missing(self):
        assert raw_item_key({}) == ""

    def test_non_dict(self):
        assert raw_item_key("h1") == ""


class TestRecordKey:
    def test_uses_hash(self):
        record = normalize_item(playlist_item("h1"), now=NOW)
        assert record_key(record) == "h1"

    def test_empty_identity(self):
        record = normalize_item({}, now=NOW)
        assert record_key(record) == ""

    def test_records_deduped(self):
        records = [normalize_item(playlist_item(h), now=NOW) for h in ("h1", "h2", "h1")]
        out = dedupe(records, record_key)
        assert [r.hash for r in out] == ["h1", "h2"]
