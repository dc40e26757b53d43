"""Farcaster search integration backed by the Neynar API."""

from .cast_search_fetcher import CastSearchFetcher
from .farcaster_data_converter import UserDeduplicator, user_from_author
from .neynar_api_client import (
    NeynarAPIClient,
    NeynarAPIError,
    NeynarAuthError,
    NeynarNetworkError,
    NeynarRateLimitError,
)

__all__ = [
    "CastSearchFetcher",
    "UserDeduplicator",
    "user_from_author",
    "NeynarAPIClient",
    "NeynarAPIError",
    "NeynarAuthError",
    "NeynarNetworkError",
    "NeynarRateLimitError",
]
