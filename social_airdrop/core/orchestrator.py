"""
Airdrop Pipeline Orchestrator

Runs the four batch stages in order, each fully materialized before the next:
cast search, user deduplication, balance verification and the CSV report.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import AppConfig
from ..exceptions import ConfigurationError
from ..integrations.base_chain.rpc_pool import RpcEndpointPool, Web3BalanceReader
from ..integrations.eligibility_service import BalanceVerifier
from ..integrations.farcaster.cast_search_fetcher import CastSearchFetcher
from ..integrations.farcaster.farcaster_data_converter import UserDeduplicator
from ..integrations.farcaster.neynar_api_client import NeynarAPIClient
from ..utils.logging_config import StageMetricsLogger
from .cache import FileKeyedCache
from .pacing import BalanceCheckPolicy, CrawlPacing
from .report_writer import ReportWriter

logger = logging.getLogger(__name__)


def resolve_search_text(ticker: str, search_text: Optional[str] = None) -> str:
    """Custom search text wins; otherwise search for the cashtag."""
    if search_text:
        return search_text
    return f"${ticker}"


def default_output_path(ticker: str) -> Path:
    return Path(f"{ticker.lower()}_airdrop_eligible.csv")


@dataclass
class AirdropRunResult:
    status: str
    search_text: str
    total_casts: int = 0
    unique_users: int = 0
    duplicate_casts: int = 0
    eligible_users: int = 0
    records_written: int = 0
    output_path: Optional[Path] = None
    crawl_complete: bool = False
    message: str = ""


class AirdropPipeline:
    """
    Coordinates the pipeline stages.

    The stages share nothing but their inputs and outputs; the only state that
    outlives a run is what the fetcher and verifier persist in their caches.
    """

    def __init__(
        self,
        fetcher: CastSearchFetcher,
        deduplicator: UserDeduplicator,
        verifier: BalanceVerifier,
        writer: ReportWriter,
        neynar_client: Optional[NeynarAPIClient] = None,
    ):
        self.fetcher = fetcher
        self.deduplicator = deduplicator
        self.verifier = verifier
        self.writer = writer
        self.neynar_client = neynar_client
        self.metrics = StageMetricsLogger()

    async def aclose(self) -> None:
        if self.neynar_client is not None:
            await self.neynar_client.close()

    async def run(
        self, search_text: str, token_address: str, output_path: Path
    ) -> AirdropRunResult:
        result = AirdropRunResult(status="running", search_text=search_text)

        # Stage 1: search casts
        started = time.monotonic()
        crawl = await self.fetcher.crawl(search_text)
        result.total_casts = len(crawl.hits)
        result.crawl_complete = crawl.complete
        self.metrics.log_stage(
            "search",
            (time.monotonic() - started) * 1000,
            casts=len(crawl.hits),
            pages=crawl.page_count,
            from_cache=crawl.from_cache,
            stop_reason=crawl.stop_reason,
        )
        if not crawl.hits:
            logger.warning("No casts found. Try a different search term.")
            result.status = "no_casts"
            result.message = f"No casts found for '{search_text}'"
            return result
        if not crawl.complete:
            logger.warning(
                f"Cast search stopped early ({crawl.stop_reason}); continuing with "
                f"{len(crawl.hits)} casts"
            )

        # Stage 2: unique users
        started = time.monotonic()
        users = self.deduplicator.dedupe(crawl.hits)
        result.unique_users = len(users)
        result.duplicate_casts = self.deduplicator.duplicate_count
        self.metrics.log_stage(
            "dedupe",
            (time.monotonic() - started) * 1000,
            users=len(users),
            duplicates=self.deduplicator.duplicate_count,
            skipped=self.deduplicator.skipped_count,
        )
        if not users:
            logger.warning("No users found in casts.")
            result.status = "no_users"
            result.message = "No cast authors could be identified"
            return result

        # Stage 3: balances
        started = time.monotonic()
        records = await self.verifier.verify(users, token_address)
        result.eligible_users = len(records)
        stats = self.verifier.stats
        self.metrics.log_stage(
            "balances",
            (time.monotonic() - started) * 1000,
            users=stats.users_checked,
            cache_hits=stats.cache_hits,
            new_checks=stats.new_checks,
            failed_checks=stats.failed_checks,
            eligible=stats.eligible,
        )
        if not records:
            logger.warning("All users already have the token!")
            result.status = "all_holders"
            result.message = "Every user already holds the token"
            return result

        # Stage 4: report
        started = time.monotonic()
        result.records_written = self.writer.write(records, output_path)
        result.output_path = Path(output_path)
        self.metrics.log_stage(
            "report",
            (time.monotonic() - started) * 1000,
            records=result.records_written,
            path=str(output_path),
        )

        result.status = "success"
        result.message = f"Wrote {result.records_written} eligible users to {output_path}"
        return result


def build_pipeline(settings: AppConfig, use_cache: bool = True) -> AirdropPipeline:
    """Wire the production pipeline from configuration."""
    api_key = settings.neynar.api_key
    if not api_key:
        raise ConfigurationError("NEYNAR_API_KEY not found in environment variables")

    rpc_pool = RpcEndpointPool(settings.chain.rpc_urls)
    cache = FileKeyedCache(settings.cache.directory)
    client = NeynarAPIClient(
        api_key=api_key,
        base_url=settings.neynar.base_url,
        timeout=settings.neynar.api_timeout,
    )
    fetcher = CastSearchFetcher(
        client=client,
        cache=cache,
        pacing=CrawlPacing.from_config(settings.crawl),
        use_cache=use_cache,
        page_size=settings.neynar.page_size,
        search_mode=settings.neynar.search_mode,
        sort_type=settings.neynar.sort_type,
    )
    verifier = BalanceVerifier(
        rpc_pool=rpc_pool,
        reader=Web3BalanceReader(request_timeout=settings.chain.request_timeout),
        cache=cache,
        policy=BalanceCheckPolicy.from_config(settings.balance),
        use_cache=use_cache,
    )
    return AirdropPipeline(
        fetcher=fetcher,
        deduplicator=UserDeduplicator(),
        verifier=verifier,
        writer=ReportWriter(),
        neynar_client=client,
    )
