# Copyright (c) 2026 Pointmatic
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""CLI entry point for bshorts-feed."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from bshorts_feed import __version__
from bshorts_feed.core.logging import setup_logging, get_logger
from bshorts_feed.core.options import FeedOptions


# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2
EXIT_ALL_FAILED = 3


def _common_options(fn):
    """Shared Click options that map to FeedOptions fields."""
    decorators = [
        click.option("--out", type=click.Path(path_type=Path), default=None, help="Output root (playlists/<lang>/ is created under it)."),
        click.option("--verbose", is_flag=True, default=None, help="Verbose console output."),
        click.option("--log-file", type=click.Path(path_type=Path), default=None, help="Also write JSONL logs to this file."),
    ]
    for decorator in reversed(decorators):
        fn = decorator(fn)
    return fn


def _build_options(**cli_kwargs) -> FeedOptions:
    """Build FeedOptions from CLI kwargs, filtering out unset (None) values.

    Only explicitly-provided CLI flags are passed to FeedOptions as init
    overrides. Unset flags fall through to env vars → YAML → defaults.
    """
    overrides = {}
    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key == "langs":
            if value:
                overrides["languages"] = [lang.strip() for lang in value if lang.strip()]
        else:
            overrides[key] = value
    return FeedOptions(**overrides)


def _exit_code(total: int, failed: int, strict: bool) -> int:
    """Determine exit code from cycle results."""
    if total == 0:
        return EXIT_OK
    if failed == 0:
        return EXIT_OK
    if failed == total:
        return EXIT_ALL_FAILED
    if strict:
        return EXIT_PARTIAL
    return EXIT_OK


def _echo_json(data: object) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


@click.group()
@click.version_option(version=__version__, prog_name="bshorts_feed")
def cli() -> None:
    """BShorts playlist generator for Bastyon."""


@cli.command()
def run():
    """Generate now, then regenerate on the configured interval."""
    options = FeedOptions()
    setup_logging(verbose=options.verbose, jsonl_path=options.log_file)

    from bshorts_feed import start_scheduler

    try:
        start_scheduler(options)
    except KeyboardInterrupt:
        get_logger().info("Scheduler stopped")
    sys.exit(EXIT_OK)


@cli.command()
@click.option("--lang", "langs", multiple=True, help="Language code (repeatable). Defaults to all configured.")
@click.option("--strict", is_flag=True, default=False, help="Exit 2 when some languages were not published.")
@_common_options
def generate(langs, strict, **kwargs):
    """Run one generation cycle and exit."""
    options = _build_options(langs=langs, **kwargs)
    setup_logging(verbose=options.verbose, jsonl_path=options.log_file)

    from bshorts_feed import generate_once

    result = generate_once(options)
    not_published = result.total - result.published
    sys.exit(_exit_code(result.total, not_published, strict))


@cli.command()
@click.argument("address")
@_common_options
def profile(address, **kwargs):
    """Resolve one author profile and print it as JSON."""
    options = _build_options(**kwargs)
    setup_logging(verbose=options.verbose, jsonl_path=options.log_file)
    log = get_logger()

    from bshorts_feed.core.context import FeedContext
    from bshorts_feed.services.profiles import (
        extract_avatar_url,
        extract_display_name,
        extract_reputation,
        fetch_profile,
    )

    async def _run():
        async with FeedContext(options) as context:
            return await fetch_profile(context.rpc, address)

    prof = asyncio.run(_run())
    if prof is None:
        log.error("Profile not found for %s", address)
        sys.exit(EXIT_ERROR)

    _echo_json({
        "address": address,
        "name": extract_display_name(prof),
        "reputation": extract_reputation(prof),
        "avatar": extract_avatar_url(prof, options.avatar_origin),
        "raw": prof,
    })
    sys.exit(EXIT_OK)


@cli.command()
@click.argument("post_hash")
@click.option("--limit", type=int, default=None, help="Maximum comments to request.")
@_common_options
def comments(post_hash, limit, **kwargs):
    """Fetch comments for one post and print them as JSON."""
    options = _build_options(**kwargs)
    setup_logging(verbose=options.verbose, jsonl_path=options.log_file)
    log = get_logger()

    from bshorts_feed.core.context import FeedContext
    from bshorts_feed.services.comments import fetch_comments, normalize_comment

    fetch_limit = limit or options.comment_fetch_limit

    async def _run():
        async with FeedContext(options) as context:
            return await fetch_comments(context.rpc, post_hash, limit=fetch_limit)

    page = asyncio.run(_run())
    if page is None:
        log.error("getcomments failed for %s", post_hash)
        sys.exit(EXIT_ERROR)

    entries = [
        normalize_comment(raw, post_hash=post_hash, index=i).model_dump(mode="json")
        for i, raw in enumerate(page.comments[:fetch_limit])
    ]
    _echo_json({
        "hash": post_hash,
        "count": page.total if page.total is not None else len(entries),
        "comments": entries,
    })
    sys.exit(EXIT_OK)


if __name__ == "__main__":
    cli()
