"""Order-preserving deduplication by content identity."""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from bshorts_feed.core.models import CanonicalVideoRecord
from bshorts_feed.services.normalizer import item_identity

T = TypeVar("T")


def dedupe(items: Iterable[T], key: Callable[[T], Any]) -> list[T]:
    """Keep the first item per key, in input order. Falsy keys are dropped."""
    seen: set = set()
    result: list[T] = []
    for item in items or ():
        k = key(item)
        if not k or k in seen:
            continue
        seen.add(k)
        result.append(item)
    return result


def raw_item_key(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    return item_identity(item)


def record_key(record: CanonicalVideoRecord) -> str:
    return record.hash or record.id or record.txid
