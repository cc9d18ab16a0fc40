"""Map raw upstream playlist items to CanonicalVideoRecord."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from bshorts_feed.core.models import CanonicalVideoRecord
from bshorts_feed.utils.time_fmt import to_display_date, to_iso, unix_to_datetime

DEFAULT_AVATAR_ORIGIN = "https://bastyon.com"
UNKNOWN_UPLOADER = "Unknown"


def _as_mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def to_number(value: Any) -> float:
    """Coerce to a finite float; anything unusable becomes 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _first_text(*candidates: Any) -> str:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return ""


def parse_hashtags(raw: Any) -> list[str]:
    """Parse ``'["a","b"]'`` or ``"#a #b"`` into ``["a", "b"]``."""
    try:
        if isinstance(raw, list):
            tokens = raw
        elif isinstance(raw, str):
            text = raw.strip()
            if not text:
                return []
            if text.startswith("["):
                tokens = json.loads(text)
                if not isinstance(tokens, list):
                    return []
            else:
                tokens = text.split()
        else:
            return []
        tags = [str(token).strip().lstrip("#") for token in tokens if token is not None]
        return [tag for tag in tags if tag]
    except Exception:
        return []


def average_rating(score: float, ratings_count: float) -> float:
    """Mean rating clamped to [1, 5]; no ratings reads as 1."""
    raw = score / ratings_count if ratings_count > 0 else 1.0
    return max(1.0, min(5.0, raw))


def normalize_avatar_url(url: str, origin: str = DEFAULT_AVATAR_ORIGIN) -> str:
    if not url:
        return url
    if url.startswith(("data:", "http://", "https://")):
        return url
    if url.startswith("/"):
        return f"{origin.rstrip('/')}{url}"
    return url


def resolve_uploader(item: Mapping) -> str:
    """author_name, then author.name/nickname/nick, then address, then Unknown."""
    author = _as_mapping(item.get("author"))
    return (
        _first_text(
            item.get("author_name"),
            author.get("name"),
            author.get("nickname"),
            author.get("nick"),
            item.get("author_address"),
            author.get("address"),
        )
        or UNKNOWN_UPLOADER
    )


def _reputation(item: Mapping) -> float | None:
    author = _as_mapping(item.get("author"))
    for candidate in (item.get("author_reputation"), author.get("reputation"), author.get("rep")):
        if _is_number(candidate):
            return float(candidate)
    return None


def _comment_count(item: Mapping) -> int:
    for key in ("comments_count", "commentsCount", "comments"):
        value = item.get(key)
        if _is_number(value):
            return max(0, int(value))
    return 0


def item_identity(item: Mapping) -> str:
    """Content hash of a raw item: ``video_hash``, then ``hash``, then ``txid``."""
    for key in ("video_hash", "hash", "txid"):
        value = item.get(key)
        if value is not None and not isinstance(value, (dict, list)) and str(value):
            return str(value)
    return ""


def normalize_item(
    item: Any,
    *,
    lang: str = "",
    avatar_origin: str = DEFAULT_AVATAR_ORIGIN,
    now: datetime | None = None,
) -> CanonicalVideoRecord:
    """Map one raw upstream item to a canonical record.

    Never raises: every optional sub-field that fails to parse falls back
    to its default. ``now`` stands in for a missing upload timestamp.
    """
    item = _as_mapping(item)
    author = _as_mapping(item.get("author"))
    ratings = _as_mapping(item.get("ratings"))
    peertube = item.get("peertube")

    identity = item_identity(item)
    url = _first_text(item.get("video_url"))
    uploader_address = _first_text(item.get("author_address"), author.get("address"))

    created = unix_to_datetime(item.get("timestamp"))
    if created is not None:
        timestamp = to_iso(created)
        formatted_date = to_display_date(created)
    else:
        timestamp = to_iso(now or datetime.now(timezone.utc))
        formatted_date = "Unknown date"

    score = to_number(ratings.get("score"))
    ratings_count = to_number(ratings.get("ratingsCount"))
    rating = average_rating(score, ratings_count)

    avatar = _first_text(item.get("author_avatar"), author.get("avatar"))

    return CanonicalVideoRecord(
        id=identity,
        hash=identity,
        txid=identity,
        url=url,
        uploader=resolve_uploader(item),
        uploader_address=uploader_address,
        uploader_avatar=normalize_avatar_url(avatar, avatar_origin),
        uploader_reputation=_reputation(item),
        description=_first_text(item.get("caption"), item.get("description")),
        duration=to_number(_as_mapping(peertube).get("durationSeconds")),
        timestamp=timestamp,
        formatted_date=formatted_date,
        tags=parse_hashtags(item.get("hashtags")),
        likes=score or to_number(ratings.get("ratingUp")),
        ratings_count=max(0, int(ratings_count)),
        average_rating=rating,
        user_rating=rating,
        comments=_comment_count(item),
        language=_first_text(item.get("language"), lang),
        has_video=bool(url),
        video_info={"peertube": dict(peertube) if isinstance(peertube, Mapping) else None},
        bastyon_post_link=_first_text(item.get("bastyon_post_link")),
    )
