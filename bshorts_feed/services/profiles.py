"""Author profile enrichment via getuserprofile."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from bshorts_feed.core.models import CanonicalVideoRecord
from bshorts_feed.services.normalizer import (
    DEFAULT_AVATAR_ORIGIN,
    UNKNOWN_UPLOADER,
    normalize_avatar_url,
)
from bshorts_feed.services.rpc import CallShape, RpcClient, call_with_fallback

logger = logging.getLogger("bshorts_feed")

PROFILE_CALL_SHAPES: tuple[CallShape, ...] = (
    CallShape("address+shortForm=basic", lambda address: {"address": address, "shortForm": "basic"}),
    CallShape("address+shortForm=yes", lambda address: {"address": address, "shortForm": "yes"}),
    CallShape("address", lambda address: {"address": address}),
    CallShape("addresses", lambda address: {"addresses": [address]}),
)

NAME_FIELDS = ("name", "nickname", "nick", "displayName", "display_name", "profileName", "username")
AVATAR_NESTED_KEYS = ("url", "src", "original", "large", "small")


def profile_from_response(response: Any) -> dict | None:
    """A profile is the object itself or the first element of a list."""
    if isinstance(response, list):
        response = response[0] if response else None
    if isinstance(response, Mapping) and response:
        return dict(response)
    return None


def extract_display_name(profile: Any) -> str | None:
    if not isinstance(profile, Mapping):
        return None
    for field in NAME_FIELDS:
        value = profile.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return None


def extract_avatar_url(profile: Any, origin: str = DEFAULT_AVATAR_ORIGIN) -> str | None:
    if not isinstance(profile, Mapping):
        return None
    nested = profile.get("profile")
    nested = nested if isinstance(nested, Mapping) else {}
    candidates = [
        profile.get("avatar"),
        profile.get("i"),
        profile.get("image"),
        profile.get("icon"),
        profile.get("photo"),
        profile.get("picture"),
        nested.get("avatar"),
        nested.get("image"),
    ]
    for candidate in candidates:
        if not candidate:
            continue
        if isinstance(candidate, str):
            return normalize_avatar_url(candidate, origin)
        if isinstance(candidate, Mapping):
            for key in AVATAR_NESTED_KEYS:
                value = candidate.get(key)
                if isinstance(value, str) and value:
                    return normalize_avatar_url(value, origin)
    return None


def extract_reputation(profile: Any) -> float | None:
    if not isinstance(profile, Mapping):
        return None
    for key in ("reputation", "rep"):
        value = profile.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


async def fetch_profile(rpc: RpcClient, address: str) -> dict | None:
    """Resolve one address, trying every known getuserprofile call shape."""
    outcome = await call_with_fallback(
        rpc, "getuserprofile", PROFILE_CALL_SHAPES, profile_from_response, address,
    )
    if outcome.value is not None:
        logger.debug("Profile for %s resolved via %s", address, outcome.shape)
    return outcome.value


def merge_profile(
    record: CanonicalVideoRecord,
    profile: Mapping,
    origin: str = DEFAULT_AVATAR_ORIGIN,
) -> None:
    """Fill placeholder fields only; never overwrite a real value."""
    if record.uploader in ("", UNKNOWN_UPLOADER, record.uploader_address):
        name = extract_display_name(profile)
        if name:
            record.uploader = name
    if record.uploader_reputation is None:
        record.uploader_reputation = extract_reputation(profile)
    if not record.uploader_avatar:
        avatar = extract_avatar_url(profile, origin)
        if avatar:
            record.uploader_avatar = avatar


async def enrich_profiles(
    records: list[CanonicalVideoRecord],
    rpc: RpcClient,
    *,
    avatar_origin: str = DEFAULT_AVATAR_ORIGIN,
    workers: int = 8,
) -> list[CanonicalVideoRecord]:
    """Fill uploader name, avatar, and reputation from profile lookups.

    One lookup per unique address, at most ``workers`` in flight. Records
    are updated in place and the same list is returned; unresolved
    addresses leave their records as-is.
    """
    addresses = list(dict.fromkeys(r.uploader_address for r in records if r.uploader_address))
    logger.info("Enriching %d unique profiles via getuserprofile", len(addresses))

    semaphore = asyncio.Semaphore(max(1, workers))

    async def _lookup(address: str) -> dict | None:
        async with semaphore:
            return await fetch_profile(rpc, address)

    outcomes = await asyncio.gather(*(_lookup(a) for a in addresses), return_exceptions=True)

    profiles: dict[str, dict] = {}
    for address, profile in zip(addresses, outcomes):
        if isinstance(profile, BaseException):
            logger.warning("getuserprofile failed for %s: %s", address, profile)
            continue
        if profile is None:
            logger.warning("Profile not found via RPC for address %s", address)
            continue
        profiles[address] = profile

    for record in records:
        profile = profiles.get(record.uploader_address)
        if profile is not None:
            merge_profile(record, profile, avatar_origin)

    logger.info("Resolved %d/%d profiles", len(profiles), len(addresses))
    return records
