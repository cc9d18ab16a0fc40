"""Snapshot publishing (latest + timestamped JSON per language)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from bshorts_feed.core.logging import log_event
from bshorts_feed.core.models import CanonicalVideoRecord
from bshorts_feed.utils.time_fmt import snapshot_stamp

logger = logging.getLogger("bshorts_feed")

LATEST_NAME = "latest.json"
SNAPSHOT_PREFIX = "playlist-"


@dataclass
class PublishResult:
    latest_path: Path
    snapshot_path: Path
    count: int


def publish_snapshot(
    lang: str,
    records: list[CanonicalVideoRecord],
    lang_dir: Path,
    *,
    now: datetime | None = None,
    keep: int = 0,
) -> PublishResult | None:
    """Write ``latest.json`` and a timestamped copy for one language.

    An empty record list publishes nothing (the previous ``latest.json``
    stays in place) and only runs the empty-file cleanup. Returns None in
    that case.
    """
    lang_dir = Path(lang_dir)
    if not records:
        log_event(
            logging.WARNING,
            "%s: upstream returned 0 items; skipping write",
            lang,
            lang=lang,
            event="publish_skipped",
        )
        cleanup_empty_snapshots(lang_dir)
        return None

    payload = [record.to_snapshot() for record in records]
    now = now or datetime.now(timezone.utc)

    latest_path = lang_dir / LATEST_NAME
    _atomic_write_json(latest_path, payload)

    snapshot_path = lang_dir / f"{SNAPSHOT_PREFIX}{snapshot_stamp(now)}.json"
    _atomic_write_json(snapshot_path, payload)

    cleanup_empty_snapshots(lang_dir)
    if keep > 0:
        prune_snapshots(lang_dir, keep)

    log_event(
        logging.INFO,
        "%s: wrote %d entries -> %s",
        lang,
        len(payload),
        latest_path,
        lang=lang,
        event="published",
        details=str(snapshot_path),
    )
    return PublishResult(latest_path=latest_path, snapshot_path=snapshot_path, count=len(payload))


def is_empty_array_file(path: Path) -> bool:
    """True for blank files and files holding an empty JSON array."""
    try:
        text = Path(path).read_text(encoding="utf-8").strip()
    except OSError:
        return False
    if not text:
        return True
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text == "[]"
    return isinstance(data, list) and not data


def cleanup_empty_snapshots(lang_dir: Path) -> list[Path]:
    """Remove empty ``*.json`` playlist files left behind by older runs."""
    lang_dir = Path(lang_dir)
    if not lang_dir.is_dir():
        return []
    removed: list[Path] = []
    for path in sorted(lang_dir.glob("*.json")):
        if not path.is_file() or not is_empty_array_file(path):
            continue
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Could not remove empty playlist file %s: %s", path, exc)
            continue
        removed.append(path)
        log_event(
            logging.WARNING,
            "Removed empty playlist file: %s",
            path,
            event="empty_file_removed",
            details=str(path),
        )
    return removed


def prune_snapshots(lang_dir: Path, keep: int) -> list[Path]:
    """Keep only the newest ``keep`` timestamped snapshots."""
    snapshots = sorted(Path(lang_dir).glob(f"{SNAPSHOT_PREFIX}*.json"))
    stale = snapshots[:-keep] if keep > 0 else []
    for path in stale:
        path.unlink(missing_ok=True)
    if stale:
        logger.debug("Pruned %d old snapshots in %s", len(stale), lang_dir)
    return stale


def _atomic_write_json(dest: Path, data: object) -> None:
    """Write JSON atomically: write to temp file, then rename."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=dest.parent, suffix=".tmp", prefix=".bshorts_"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, dest)
    except BaseException:
        os.unlink(tmp_path)
        raise
