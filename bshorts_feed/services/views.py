"""PeerTube view-count enrichment."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping
from typing import Any, NamedTuple

from bshorts_feed.core.models import CanonicalVideoRecord
from bshorts_feed.services.http import HttpClient, UpstreamError

logger = logging.getLogger("bshorts_feed")

PEERTUBE_SCHEME = "peertube://"

# PeerTube v4+ moved the counter under stats on some instances.
VIEW_COUNT_PATHS: tuple[tuple[str, ...], ...] = (
    ("views",),
    ("stats", "viewers"),
    ("stats", "views"),
)


class PeerTubeRef(NamedTuple):
    host: str
    video_id: str


def parse_peertube_url(url: Any) -> PeerTubeRef | None:
    """Parse ``peertube://host/uuid``; anything else yields None."""
    if not isinstance(url, str) or not url.startswith(PEERTUBE_SCHEME):
        return None
    parts = url[len(PEERTUBE_SCHEME):].split("/")
    if len(parts) >= 2 and parts[0] and parts[1]:
        return PeerTubeRef(host=parts[0], video_id=parts[1])
    return None


def extract_view_count(details: Any) -> int | None:
    """First finite number found along the known view-count paths."""
    for path in VIEW_COUNT_PATHS:
        node = details
        for key in path:
            node = node.get(key) if isinstance(node, Mapping) else None
        if isinstance(node, bool):
            continue
        if isinstance(node, int):
            return node
        if isinstance(node, float) and math.isfinite(node):
            return int(node)
        if isinstance(node, str) and node.strip().isdigit():
            return int(node.strip())
    return None


async def fetch_view_count(
    http: HttpClient,
    ref: PeerTubeRef,
    *,
    timeout: float | None = None,
) -> int | None:
    url = f"https://{ref.host}/api/v1/videos/{ref.video_id}"
    try:
        details = await http.get_json(url, timeout=timeout)
    except UpstreamError as exc:
        logger.debug("PeerTube lookup failed for %s: %s", ref.video_id, exc)
        return None
    return extract_view_count(details)


async def enrich_views(
    records: list[CanonicalVideoRecord],
    http: HttpClient,
    *,
    timeout: float | None = None,
    workers: int = 8,
) -> int:
    """Set ``views`` on every record whose PeerTube lookup succeeds.

    Records without a ``peertube://`` url are skipped. Returns the number
    of records that received a view count.
    """
    semaphore = asyncio.Semaphore(max(1, workers))

    async def _one(record: CanonicalVideoRecord) -> bool:
        ref = parse_peertube_url(record.url)
        if ref is None:
            return False
        async with semaphore:
            views = await fetch_view_count(http, ref, timeout=timeout)
        if views is None:
            return False
        record.views = views
        return True

    outcomes = await asyncio.gather(*(_one(r) for r in records), return_exceptions=True)
    enriched = 0
    for record, outcome in zip(records, outcomes):
        if isinstance(outcome, BaseException):
            logger.debug("View enrichment failed for %s: %s", record.hash, outcome)
        elif outcome:
            enriched += 1
    logger.info("Enriched views for %d/%d videos", enriched, len(records))
    return enriched
