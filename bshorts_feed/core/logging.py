# Copyright (c) 2026 Pointmatic
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Logging for the feed: rich console output plus an optional JSONL event log."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, MutableMapping

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "bshorts_feed"

# Structured fields every JSONL line carries (null when not set).
EVENT_FIELDS = ("lang", "event", "details", "error")

_console = Console(stderr=True)


class JsonlFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's own UTC time."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
        }
        entry.update({field: getattr(record, field, None) for field in EVENT_FIELDS})
        message = record.getMessage()
        if message:
            entry["message"] = message
        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class LangAdapter(logging.LoggerAdapter):
    """Stamps every record with the language being generated."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("lang", self.extra["lang"])
        kwargs["extra"] = extra
        return f"[{self.extra['lang']}] {msg}", kwargs


def setup_logging(*, verbose: bool = False, jsonl_path: Path | None = None) -> logging.Logger:
    """Configure the feed logger; calling it again replaces the handlers.

    Both the console and the optional JSONL file log at INFO, or DEBUG
    when ``verbose``.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(level)

    console = RichHandler(
        console=_console,
        level=level,
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    logger.addHandler(console)

    if jsonl_path is not None:
        path = Path(jsonl_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        events = logging.FileHandler(path, mode="a", encoding="utf-8")
        events.setFormatter(JsonlFormatter())
        logger.addHandler(events)

    return logger


def get_logger(lang: str | None = None) -> logging.Logger | LangAdapter:
    """The feed logger, or a per-language adapter when ``lang`` is given."""
    logger = logging.getLogger(LOGGER_NAME)
    if lang is None:
        return logger
    return LangAdapter(logger, {"lang": lang})


def log_event(
    level: int,
    message: str,
    *args: object,
    lang: str | None = None,
    event: str | None = None,
    details: str | None = None,
    error: str | None = None,
) -> None:
    """Log ``message`` with the structured event fields attached."""
    fields = {"lang": lang, "event": event, "details": details, "error": error}
    logging.getLogger(LOGGER_NAME).log(level, message, *args, extra=fields)
