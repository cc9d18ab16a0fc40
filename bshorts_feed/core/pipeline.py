"""Per-language playlist generation pipeline."""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime, timezone

from bshorts_feed.core.context import FeedContext
from bshorts_feed.core.logging import get_logger, log_event
from bshorts_feed.core.models import CanonicalVideoRecord, CycleResult, LanguageResult
from bshorts_feed.core.options import FeedOptions
from bshorts_feed.core.writer import publish_snapshot
from bshorts_feed.services.comments import enrich_comments
from bshorts_feed.services.dedupe import dedupe, raw_item_key, record_key
from bshorts_feed.services.normalizer import normalize_item
from bshorts_feed.services.playlist import fetch_items
from bshorts_feed.services.profiles import enrich_profiles
from bshorts_feed.services.views import enrich_views


def build_records(
    raw_items: list[dict],
    *,
    lang: str,
    avatar_origin: str,
    now: datetime | None = None,
) -> list[CanonicalVideoRecord]:
    """Dedupe raw items, normalize them, and dedupe the normalized records."""
    unique_items = dedupe(raw_items, raw_item_key)
    records = [
        normalize_item(item, lang=lang, avatar_origin=avatar_origin, now=now)
        for item in unique_items
    ]
    return dedupe(records, record_key)


async def enrich_records(
    records: list[CanonicalVideoRecord],
    options: FeedOptions,
    context: FeedContext,
) -> tuple[int, int]:
    """Run profile, comment, and view enrichment concurrently.

    The three stages write disjoint fields of the same records. Returns
    (records with comments, records with views).
    """
    _, with_comments, with_views = await asyncio.gather(
        enrich_profiles(
            records,
            context.rpc,
            avatar_origin=options.avatar_origin,
            workers=options.workers,
        ),
        enrich_comments(
            records,
            context.rpc,
            options.comment_capacity,
            per_video=options.comments_per_video,
            fetch_limit=options.comment_fetch_limit,
            workers=options.workers,
        ),
        enrich_views(
            records,
            context.http,
            timeout=options.views_timeout,
            workers=options.workers,
        ),
    )
    return with_comments, with_views


async def process_language(
    lang: str,
    options: FeedOptions,
    context: FeedContext,
    *,
    now: datetime | None = None,
) -> LanguageResult:
    """Run fetch -> normalize -> dedupe -> enrich -> publish for one language.

    Steps:
    1. Page the playlist index until min_items or max_pages
    2. Dedupe raw items, normalize, dedupe records
    3. Enrich profiles, comments, and views (best-effort, concurrent)
    4. Publish latest + timestamped snapshot (skipped when empty)
    """
    now = now or datetime.now(timezone.utc)
    raw_items = await fetch_items(
        context.http,
        options.playlists_api_base,
        lang,
        options.min_items,
        page_size=options.page_size,
        max_pages=options.max_pages,
        timeout=options.fetch_timeout,
    )
    log = get_logger(lang)
    records = build_records(raw_items, lang=lang, avatar_origin=options.avatar_origin, now=now)
    log.info("fetched %d raw items, %d unique records", len(raw_items), len(records))

    with_comments = with_views = 0
    if records:
        with_comments, with_views = await enrich_records(records, options, context)

    loop = asyncio.get_running_loop()
    published = await loop.run_in_executor(
        None,
        functools.partial(
            publish_snapshot,
            lang,
            records,
            options.playlists_dir(lang),
            now=now,
            keep=options.snapshot_keep,
        ),
    )
    if published is not None and published.count < options.min_items:
        log.warning("generated playlist has < %d items (%d)", options.min_items, published.count)

    return LanguageResult(
        lang=lang,
        fetched=len(raw_items),
        records=len(records),
        with_comments=with_comments,
        with_views=with_views,
        published=published is not None,
        latest_path=published.latest_path if published else None,
        snapshot_path=published.snapshot_path if published else None,
    )


async def run_cycle(options: FeedOptions, context: FeedContext) -> CycleResult:
    """Generate snapshots for every configured language, one after another.

    A failure in one language is logged and recorded on its result; the
    remaining languages still run.
    """
    started = datetime.now(timezone.utc)
    log_event(logging.INFO, "Generating playlists...", event="cycle_start")

    results: list[LanguageResult] = []
    for lang in options.languages:
        try:
            result = await process_language(lang, options, context)
        except Exception as exc:
            log_event(
                logging.ERROR,
                "Failed to generate playlist for %s: %s",
                lang,
                exc,
                lang=lang,
                event="language_failed",
                error=repr(exc),
            )
            result = LanguageResult(lang=lang, error=str(exc) or type(exc).__name__)
        results.append(result)

    finished = datetime.now(timezone.utc)
    published = sum(1 for r in results if r.published)
    failed = sum(1 for r in results if r.error is not None)
    cycle = CycleResult(
        started_at=started,
        finished_at=finished,
        total=len(results),
        published=published,
        skipped=len(results) - published - failed,
        failed=failed,
        results=results,
    )
    print_summary(cycle)
    return cycle


def print_summary(cycle: CycleResult) -> None:
    """Log a human-readable cycle summary."""
    elapsed = (cycle.finished_at - cycle.started_at).total_seconds()
    lines = [
        "",
        "=" * 40,
        "  bshorts-feed Summary",
        "=" * 40,
        f"  Languages:    {cycle.total}",
        f"  Published:    {cycle.published}",
        f"  Skipped:      {cycle.skipped}",
        f"  Failed:       {cycle.failed}",
    ]
    for r in cycle.results:
        status = "published" if r.published else ("failed" if r.error else "skipped")
        lines.append(f"    {r.lang:<4} {status:<10} {r.records:>4} records")
    lines.extend([f"  Elapsed:      {elapsed:.1f}s", "=" * 40, ""])
    log_event(logging.INFO, "\n".join(lines), event="cycle_done")
