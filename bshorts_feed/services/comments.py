"""Recent-comment enrichment via getcomments."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from bshorts_feed.core.models import CanonicalVideoRecord, CommentEntry
from bshorts_feed.services.normalizer import to_number
from bshorts_feed.services.rpc import CallShape, RpcClient, call_with_fallback
from bshorts_feed.utils.time_fmt import to_iso, unix_to_datetime

logger = logging.getLogger("bshorts_feed")

DEFAULT_FETCH_LIMIT = 50

COMMENT_CALL_SHAPES: tuple[CallShape, ...] = (
    CallShape("hash+limit+offset", lambda post, limit: {"hash": post, "limit": limit, "offset": 0}),
    CallShape("postid+parentid", lambda post, limit: {"postid": post, "parentid": ""}),
    CallShape("positional", lambda post, limit: [post, "", "", []]),
)


@dataclass
class CommentPage:
    comments: list[dict]
    total: int | None = None


def comments_from_response(response: Any) -> CommentPage | None:
    """Accept ``[...]``, ``{"comments": [...]}`` or ``{"data": {"comments": [...]}}``."""
    if isinstance(response, list):
        raw = response
    elif isinstance(response, Mapping):
        data = response.get("data")
        if isinstance(response.get("comments"), list):
            raw = response["comments"]
        elif isinstance(data, Mapping) and isinstance(data.get("comments"), list):
            raw = data["comments"]
        else:
            return None
    else:
        return None

    total = None
    if isinstance(response, Mapping):
        count = response.get("commentscount", response.get("count"))
        if isinstance(count, (int, float)) and not isinstance(count, bool):
            total = max(0, int(to_number(count)))
    return CommentPage(comments=[c for c in raw if isinstance(c, Mapping)], total=total)


def extract_comment_text(message: Any) -> str:
    """Plain text, or the message field of a JSON-encoded payload."""
    if isinstance(message, str):
        text = message.strip()
        if text.startswith("{") and text.endswith("}"):
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                return text
            if isinstance(payload, Mapping):
                return str(payload.get("message", payload.get("msg", "")) or "")
        return text
    if isinstance(message, Mapping):
        return str(message.get("message", message.get("msg", "")) or "")
    return ""


def user_label(address: Any, fallback: Any = None) -> str:
    if isinstance(address, str) and address:
        if len(address) <= 10:
            return address
        return f"{address[:6]}…{address[-4:]}"
    if isinstance(fallback, str) and fallback:
        return fallback
    return "Anonymous"


def normalize_comment(raw: Mapping, *, post_hash: str = "", index: int = 0) -> CommentEntry:
    address = raw.get("address") or raw.get("useraddress")
    address = address if isinstance(address, str) else ""
    identity = raw.get("id") or raw.get("hash") or raw.get("postid")
    created = unix_to_datetime(raw.get("time"))
    message = raw.get("msg")
    if message is None:
        message = raw.get("message")
    return CommentEntry(
        id=str(identity) if identity else f"{post_hash}:{index}",
        user=user_label(address, raw.get("user")),
        address=address,
        text=extract_comment_text(message),
        timestamp=to_iso(created) if created else "",
    )


async def fetch_comments(
    rpc: RpcClient,
    post_hash: str,
    *,
    limit: int = DEFAULT_FETCH_LIMIT,
) -> CommentPage | None:
    """Fetch raw comments for one post, trying every known call shape."""
    outcome = await call_with_fallback(
        rpc, "getcomments", COMMENT_CALL_SHAPES, comments_from_response, post_hash, limit,
    )
    return outcome.value


async def _enrich_one(
    record: CanonicalVideoRecord,
    rpc: RpcClient,
    *,
    per_video: int,
    fetch_limit: int,
    semaphore: asyncio.Semaphore,
) -> bool:
    async with semaphore:
        page = await fetch_comments(rpc, record.hash, limit=fetch_limit)
    if page is None:
        logger.warning("getcomments failed for %s", record.hash)
        return False

    record.comment_data = [
        normalize_comment(raw, post_hash=record.hash, index=i)
        for i, raw in enumerate(page.comments[:per_video])
    ]
    if page.total is not None:
        record.comments = page.total
    else:
        record.comments = max(record.comments, len(page.comments))
    return True


async def enrich_comments(
    records: list[CanonicalVideoRecord],
    rpc: RpcClient,
    capacity: int = 10,
    *,
    per_video: int = 5,
    fetch_limit: int = DEFAULT_FETCH_LIMIT,
    workers: int = 8,
) -> int:
    """Attach up to ``per_video`` recent comments to the first ``capacity`` records.

    Lookups run concurrently; a failure on one record never affects the
    others. Returns the number of records that were enriched.
    """
    subset = [r for r in records[:capacity] if r.hash]
    semaphore = asyncio.Semaphore(max(1, workers))
    outcomes = await asyncio.gather(
        *(
            _enrich_one(r, rpc, per_video=per_video, fetch_limit=fetch_limit, semaphore=semaphore)
            for r in subset
        ),
        return_exceptions=True,
    )

    enriched = 0
    for record, outcome in zip(subset, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning("Comment enrichment failed for %s: %s", record.hash, outcome)
        elif outcome:
            enriched += 1
    logger.info("Enriched comments for %d/%d videos", enriched, len(subset))
    return enriched
