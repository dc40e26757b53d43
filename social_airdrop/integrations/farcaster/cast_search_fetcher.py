"""
Cast Search Fetcher

Crawls every cast matching a search text through Neynar's cursor-paginated
search endpoint. Progress is checkpointed to the keyed cache, together with the
cursor for the next page, so an interrupted crawl resumes where it stopped.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ...core.cache import KeyedCache, cast_cache_key
from ...core.pacing import CrawlPacing, Sleeper, real_sleep
from ...core.structures import CrawlResult, SearchHit
from .neynar_api_client import (
    NeynarAPIError,
    NeynarAuthError,
    NeynarRateLimitError,
)

logger = logging.getLogger(__name__)


class CastSearchClient(Protocol):
    async def search_casts_page(
        self,
        query: str,
        limit: int = 100,
        cursor: Optional[str] = None,
        mode: str = "literal",
        sort_type: str = "desc_chron",
    ) -> Dict[str, Any]: ...


def extract_page(response: Dict[str, Any]) -> Tuple[List[SearchHit], Optional[str]]:
    """
    Pull the casts and next cursor out of a search response.

    Raises NeynarAPIError when the body does not have the search response
    shape, so a malformed page is retried like any other failed request.
    """
    if not isinstance(response, dict):
        raise NeynarAPIError("Unexpected response shape: body is not an object")
    result = response.get("result")
    if result is None:
        result = {}
    if not isinstance(result, dict):
        raise NeynarAPIError("Unexpected response shape: 'result' is not an object")

    casts = result.get("casts", response.get("casts"))
    if casts is None:
        casts = []
    if not isinstance(casts, list) or not all(isinstance(c, dict) for c in casts):
        raise NeynarAPIError("Unexpected response shape: 'casts' is not a list of objects")

    next_info = result.get("next") or response.get("next") or {}
    cursor = next_info.get("cursor") if isinstance(next_info, dict) else None
    if cursor is not None and not isinstance(cursor, str):
        raise NeynarAPIError("Unexpected response shape: 'next.cursor' is not a string")
    return list(casts), cursor or None


class CastSearchFetcher:
    """Accumulates all search hits for a query, with pacing and checkpoints."""

    def __init__(
        self,
        client: CastSearchClient,
        cache: KeyedCache,
        pacing: Optional[CrawlPacing] = None,
        use_cache: bool = True,
        page_size: int = 100,
        search_mode: str = "literal",
        sort_type: str = "desc_chron",
        sleeper: Optional[Sleeper] = None,
    ):
        self.client = client
        self.cache = cache
        self.pacing = pacing or CrawlPacing()
        self.use_cache = use_cache
        self.page_size = page_size
        self.search_mode = search_mode
        self.sort_type = sort_type
        self._sleep = sleeper or real_sleep

    async def fetch(self, search_text: str) -> List[SearchHit]:
        result = await self.crawl(search_text)
        return result.hits

    async def crawl(self, search_text: str) -> CrawlResult:
        cache_key = cast_cache_key(search_text)
        hits: List[SearchHit] = []
        cursor: Optional[str] = None
        page_count = 0

        if self.use_cache:
            cached = self.cache.load(cache_key)
            cached_hits = cached.payload if cached and isinstance(cached.payload, list) else []
            if cached and cached_hits:
                saved_cursor = cached.metadata.get("cursor")
                if cached.complete or not saved_cursor:
                    logger.info(
                        f"Loaded {len(cached_hits)} casts from cache (saved at {cached.saved_at}, "
                        f"complete={cached.complete}). Use --no-cache to fetch fresh data."
                    )
                    return CrawlResult(
                        hits=cached_hits,
                        complete=cached.complete,
                        from_cache=True,
                        page_count=int(cached.metadata.get("page_count", 0)),
                        stop_reason="cached",
                    )
                hits = list(cached_hits)
                cursor = saved_cursor
                page_count = int(cached.metadata.get("page_count", 0))
                logger.info(
                    f"Resuming interrupted crawl for '{search_text}' from page {page_count + 1} "
                    f"with {len(hits)} cached casts"
                )

        logger.info(f"Searching all casts for '{search_text}' (mode={self.search_mode})")

        consecutive_errors = 0
        stop_reason = "exhausted"

        while True:
            try:
                response = await self.client.search_casts_page(
                    search_text,
                    limit=self.page_size,
                    cursor=cursor,
                    mode=self.search_mode,
                    sort_type=self.sort_type,
                )
                page_hits, next_cursor = extract_page(response)
            except NeynarAuthError as e:
                logger.error(f"Unauthorized: check your NEYNAR_API_KEY. Stopping crawl. ({e})")
                stop_reason = "unauthorized"
                break
            except NeynarRateLimitError:
                logger.warning(
                    f"Rate limit exceeded on page {page_count + 1}. "
                    f"Waiting {self.pacing.rate_limit_wait:g} seconds..."
                )
                await self._sleep(self.pacing.rate_limit_wait)
                continue
            except NeynarAPIError as e:
                consecutive_errors += 1
                logger.warning(
                    f"Error fetching page {page_count + 1} "
                    f"({consecutive_errors}/{self.pacing.max_consecutive_errors}): {e}"
                )
                if consecutive_errors >= self.pacing.max_consecutive_errors:
                    logger.error("Too many consecutive errors. Stopping crawl.")
                    stop_reason = "too_many_errors"
                    break
                await self._sleep(self.pacing.error_backoff)
                continue

            if not page_hits:
                logger.info("No more results.")
                cursor = None
                break

            hits.extend(page_hits)
            page_count += 1
            consecutive_errors = 0
            cursor = next_cursor
            logger.info(f"Page {page_count}: +{len(page_hits)} casts (total: {len(hits)})")

            if page_count % self.pacing.checkpoint_every == 0:
                self._checkpoint(cache_key, search_text, hits, page_count, cursor, complete=False)
                logger.info(f"Progress saved ({page_count} pages, {len(hits)} casts)")

            if not cursor:
                break

            await self._sleep(self.pacing.page_interval)

        complete = stop_reason == "exhausted"
        logger.info(
            f"Found {len(hits)} total casts across {page_count} pages "
            f"({'complete' if complete else stop_reason})"
        )
        if complete or hits:
            self._checkpoint(cache_key, search_text, hits, page_count, cursor, complete=complete)

        return CrawlResult(
            hits=hits,
            complete=complete,
            from_cache=False,
            page_count=page_count,
            stop_reason=stop_reason,
        )

    def _checkpoint(
        self,
        cache_key: str,
        search_text: str,
        hits: List[SearchHit],
        page_count: int,
        cursor: Optional[str],
        complete: bool,
    ) -> None:
        metadata: Dict[str, Any] = {
            "search_text": search_text,
            "page_count": page_count,
            "total_casts": len(hits),
        }
        if not complete and cursor:
            metadata["cursor"] = cursor
        self.cache.save(cache_key, hits, metadata=metadata, complete=complete)
