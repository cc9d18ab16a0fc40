"""Upstream playlist index adapter (paged fetch of raw items per language)."""

from __future__ import annotations

import logging
from typing import Any, NamedTuple
from urllib.parse import quote

from bshorts_feed.core.logging import log_event
from bshorts_feed.services.http import HttpClient, UpstreamError

logger = logging.getLogger("bshorts_feed")


class PlaylistPage(NamedTuple):
    items: list[dict]
    size: int  # raw entry count, including entries that were not objects


def _page_entries(data: Any, *, lang: str, offset: int) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    keys = sorted(data.keys()) if isinstance(data, dict) else None
    log_event(
        logging.WARNING,
        "Unexpected upstream shape for %s @ offset %d: %s %s",
        lang,
        offset,
        type(data).__name__,
        keys,
        lang=lang,
        event="unexpected_shape",
        details=f"type={type(data).__name__} keys={keys}",
    )
    return []


def extract_page_items(data: Any, *, lang: str = "", offset: int = 0) -> list[dict]:
    """Accept a bare array or ``{"items": [...]}``; anything else is an empty page."""
    return [item for item in _page_entries(data, lang=lang, offset=offset) if isinstance(item, dict)]


async def fetch_page(
    http: HttpClient,
    base_url: str,
    lang: str,
    *,
    limit: int,
    offset: int,
    timeout: float | None = None,
) -> PlaylistPage:
    """Fetch one page of raw playlist items. Raises UpstreamError on failure."""
    url = f"{base_url.rstrip('/')}/playlists/{quote(lang, safe='')}"
    data = await http.get_json(url, params={"limit": limit, "offset": offset}, timeout=timeout)
    entries = _page_entries(data, lang=lang, offset=offset)
    return PlaylistPage(items=[e for e in entries if isinstance(e, dict)], size=len(entries))


async def fetch_items(
    http: HttpClient,
    base_url: str,
    lang: str,
    min_count: int = 100,
    *,
    page_size: int = 100,
    max_pages: int = 10,
    timeout: float | None = None,
) -> list[dict]:
    """Page the index until ``min_count`` items or ``max_pages`` pages.

    A failed page ends pagination and whatever was gathered so far is
    returned; this function never raises for upstream failures.
    """
    collected: list[dict] = []
    offset = 0

    for _ in range(max_pages):
        try:
            page = await fetch_page(
                http, base_url, lang, limit=page_size, offset=offset, timeout=timeout,
            )
        except UpstreamError as exc:
            log_event(
                logging.WARNING,
                "Failed to fetch playlist items for %s at offset %d: %s",
                lang,
                offset,
                exc,
                lang=lang,
                event="fetch_failed",
                error=str(exc),
            )
            break

        logger.debug("%s: page @ offset %d returned %d items", lang, offset, len(page.items))
        if not page.size:
            break
        collected.extend(page.items)
        if len(collected) >= min_count:
            break
        offset += page.size

    return collected
