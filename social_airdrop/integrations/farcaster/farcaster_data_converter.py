#!/usr/bin/env python3
"""
Farcaster Data Converter

Utilities for converting Farcaster API cast data into canonical users,
keeping one user per author.
"""
import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from ...core.structures import CanonicalUser, SearchHit

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_fid(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _verified_addresses(raw: Any) -> Dict[str, List[str]]:
    if not isinstance(raw, dict):
        return {}
    addresses: Dict[str, List[str]] = {}
    for kind, values in raw.items():
        if isinstance(values, list):
            addresses[kind] = [str(v) for v in values if v]
    return copy.deepcopy(addresses)


def user_from_author(author: Dict[str, Any]) -> Optional[CanonicalUser]:
    """Build a CanonicalUser from a cast's author object, None without a username or a usable fid."""
    username = author.get("username")
    if not username:
        return None
    fid = _parse_fid(author.get("fid"))
    if fid is None:
        return None
    return CanonicalUser(
        fid=fid,
        username=username,
        display_name=author.get("display_name") or username,
        verified_addresses=_verified_addresses(author.get("verified_addresses")),
        follower_count=_as_int(author.get("follower_count")),
        profile_image=author.get("pfp_url") or "",
    )


class UserDeduplicator:
    """Reduces search hits to one CanonicalUser per fid, first-seen wins."""

    def __init__(self):
        self.duplicate_count = 0
        self.skipped_count = 0

    def dedupe(self, hits: Iterable[SearchHit]) -> List[CanonicalUser]:
        self.duplicate_count = 0
        self.skipped_count = 0
        users: Dict[int, CanonicalUser] = {}
        total = 0

        for hit in hits:
            total += 1
            author = hit.get("author") if isinstance(hit, dict) else None
            user = user_from_author(author) if isinstance(author, dict) else None
            if user is None:
                self.skipped_count += 1
                continue
            if user.fid in users:
                self.duplicate_count += 1
                continue
            users[user.fid] = user

        logger.info(
            f"Found {len(users)} unique users in {total} casts "
            f"(removed {self.duplicate_count} duplicate casts, skipped {self.skipped_count})"
        )
        return list(users.values())
