"""bshorts-feed: BShorts playlist generation and enrichment for Bastyon."""

__version__ = "0.3.0"

import asyncio

from bshorts_feed.core.models import CanonicalVideoRecord, CommentEntry, CycleResult, LanguageResult
from bshorts_feed.core.options import FeedOptions


def generate_once(options: FeedOptions | None = None) -> CycleResult:
    """Run a single generation cycle for every configured language.

    This is the primary library entry point for one-shot generation.

    Args:
        options: Configuration options. Uses defaults if not provided.

    Returns:
        CycleResult with per-language outcomes and summary counts.
    """
    from bshorts_feed.core.context import FeedContext
    from bshorts_feed.core.pipeline import run_cycle

    if options is None:
        options = FeedOptions()

    async def _run() -> CycleResult:
        async with FeedContext(options) as context:
            return await run_cycle(options, context)

    return asyncio.run(_run())


def start_scheduler(options: FeedOptions | None = None) -> None:
    """Generate immediately, then keep regenerating on the configured interval.

    Blocks for the lifetime of the process.

    Args:
        options: Configuration options. Uses defaults if not provided.
    """
    from bshorts_feed.core.context import FeedContext
    from bshorts_feed.core.scheduler import PlaylistScheduler

    if options is None:
        options = FeedOptions()

    async def _run() -> None:
        async with FeedContext(options) as context:
            await PlaylistScheduler(options, context).run_forever()

    asyncio.run(_run())


__all__ = [
    "__version__",
    "generate_once",
    "start_scheduler",
    "FeedOptions",
    "CanonicalVideoRecord",
    "CommentEntry",
    "CycleResult",
    "LanguageResult",
]
