#!/usr/bin/env python3
"""
Neynar API Client for Farcaster

This module provides a thin client for the Neynar cast search endpoint.
Each call performs exactly one HTTP request and turns failures into typed
exceptions; retry and pacing decisions belong to the caller.
"""
import logging
import time
from typing import Any, Dict, Optional

import httpx

from ...exceptions import FarcasterIntegrationError

logger = logging.getLogger(__name__)


class NeynarAPIError(FarcasterIntegrationError):
    """Base exception for Neynar API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NeynarNetworkError(NeynarAPIError):
    """Network-related errors when connecting to Neynar API."""
    pass


class NeynarRateLimitError(NeynarAPIError):
    """Rate limit exceeded error."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class NeynarAuthError(NeynarAPIError):
    """The API key was rejected."""

    def __init__(self, message: str):
        super().__init__(message, status_code=401)


class NeynarAPIClient:
    """
    A client for making requests to the Neynar Farcaster API.
    """

    DEFAULT_BASE_URL = "https://api.neynar.com/v2"
    CAST_SEARCH_ENDPOINT = "/farcaster/cast/search/"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ValueError("API key is required for NeynarAPIClient.")
        self.api_key = api_key
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")

        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout=timeout, connect=10.0),
            limits=httpx.Limits(max_connections=2, max_keepalive_connections=1),
        )

        # Rate limit tracking
        self.rate_limit_info: Dict[str, Any] = {
            "limit": None,
            "remaining": None,
            "reset": None,
            "last_updated_client": 0.0,
        }

    async def __aenter__(self) -> "NeynarAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "api_key": self.api_key,
        }

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"GET {url} params={params}")

        try:
            response = await self._client.get(url, params=params, headers=self._get_headers())
        except httpx.TimeoutException as e:
            raise NeynarNetworkError(f"Timeout error for GET {url}: {e}") from e
        except httpx.RequestError as e:
            raise NeynarNetworkError(f"Request error for GET {url}: {e}") from e

        self._update_rate_limits(response)

        if response.status_code == 401:
            raise NeynarAuthError(f"Unauthorized (401) for GET {url}: check NEYNAR_API_KEY")
        if response.status_code == 429:
            raise NeynarRateLimitError(
                f"Rate limited by Neynar API for GET {url}",
                retry_after=self.rate_limit_info.get("retry_after"),
            )
        if response.status_code >= 400:
            raise NeynarAPIError(
                f"HTTP {response.status_code} for GET {url}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NeynarAPIError(
                f"Invalid JSON from GET {url}: {e}", status_code=response.status_code
            ) from e
        if not isinstance(data, dict):
            raise NeynarAPIError(
                f"Unexpected response shape from GET {url}", status_code=response.status_code
            )
        return data

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """
        Parse and store rate limit information from Neynar API response headers.
        Neynar typically provides rate limit headers like:
        - x-ratelimit-limit: The rate limit ceiling for that given request
        - x-ratelimit-remaining: The number of requests left for the time window
        - x-ratelimit-reset: When the window resets (usually a Unix timestamp)
        """
        headers = response.headers
        limit_hdr = headers.get("x-ratelimit-limit") or headers.get("ratelimit-limit")
        remaining_hdr = headers.get("x-ratelimit-remaining") or headers.get("ratelimit-remaining")
        reset_hdr = headers.get("x-ratelimit-reset") or headers.get("ratelimit-reset")
        retry_after_hdr = headers.get("x-ratelimit-retry-after") or headers.get("retry-after")

        updated = False
        try:
            if limit_hdr:
                self.rate_limit_info["limit"] = int(limit_hdr)
                updated = True
            if remaining_hdr:
                remaining = int(remaining_hdr)
                self.rate_limit_info["remaining"] = remaining
                updated = True
                if remaining < 10:
                    logger.warning(f"Neynar API rate limit approaching: {remaining} requests remaining")
            if reset_hdr:
                self.rate_limit_info["reset"] = int(reset_hdr)
                updated = True
            if retry_after_hdr:
                self.rate_limit_info["retry_after"] = int(retry_after_hdr)
                updated = True
        except ValueError as e:
            logger.debug(f"NeynarAPIClient: Could not parse rate limit headers: {e}")

        if updated:
            self.rate_limit_info["last_updated_client"] = time.time()

    async def close(self) -> None:
        """Close the HTTP client connection."""
        await self._client.aclose()

    async def search_casts_page(
        self,
        query: str,
        limit: int = 100,
        cursor: Optional[str] = None,
        mode: str = "literal",
        sort_type: str = "desc_chron",
    ) -> Dict[str, Any]:
        """Fetch a single page of global cast search results."""
        params: Dict[str, Any] = {
            "q": query,
            "limit": min(max(limit, 1), 100),
            "mode": mode,
            "sort_type": sort_type,
        }
        if cursor:
            params["cursor"] = cursor
        return await self._get(self.CAST_SEARCH_ENDPOINT, params)
