"""Tests for bshorts_feed.utils.time_fmt."""

from datetime import datetime, timedelta, timezone

import pytest

from bshorts_feed.utils.time_fmt import snapshot_stamp, to_display_date, to_iso, unix_to_datetime


class TestUnixToDatetime:
    def test_int(self):
        assert unix_to_datetime(1735689600) == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_numeric_string(self):
        assert unix_to_datetime("1735689600") == datetime(2025, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "abc", 0, -5, True, float("nan"), float("inf"), 1e30])
    def test_unusable(self, value):
        assert unix_to_datetime(value) is None


class TestToIso:
    def test_millisecond_precision(self):
        dt = datetime(2025, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
        assert to_iso(dt) == "2025-01-01T00:00:00.123Z"

    def test_converts_to_utc(self):
        dt = datetime(2025, 1, 1, 3, 0, tzinfo=timezone(timedelta(hours=3)))
        assert to_iso(dt) == "2025-01-01T00:00:00.000Z"


class TestToDisplayDate:
    def test_no_zero_padding(self):
        assert to_display_date(datetime(2025, 3, 7, tzinfo=timezone.utc)) == "3/7/2025"


class TestSnapshotStamp:
    def test_format(self):
        dt = datetime(2025, 6, 1, 9, 5, 3, tzinfo=timezone.utc)
        assert snapshot_stamp(dt) == "20250601T090503"

    def test_sortable(self):
        a = snapshot_stamp(datetime(2025, 6, 1, 9, 5, 3, tzinfo=timezone.utc))
        b = snapshot_stamp(datetime(2025, 12, 1, 9, 5, 3, tzinfo=timezone.utc))
        assert a < b
