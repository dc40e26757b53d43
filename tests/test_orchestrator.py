"""
Tests for the end-to-end airdrop pipeline with fake network and chain access.
"""

import csv
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from social_airdrop.config import AppConfig, CacheConfig, ChainConfig, NeynarConfig
from social_airdrop.core.orchestrator import (
    AirdropPipeline,
    build_pipeline,
    default_output_path,
    resolve_search_text,
)
from social_airdrop.core.pacing import BalanceCheckPolicy
from social_airdrop.core.report_writer import ReportWriter
from social_airdrop.exceptions import ConfigurationError
from social_airdrop.integrations.base_chain.rpc_pool import RpcEndpointPool
from social_airdrop.integrations.eligibility_service import BalanceVerifier
from social_airdrop.integrations.farcaster.cast_search_fetcher import CastSearchFetcher
from social_airdrop.integrations.farcaster.farcaster_data_converter import UserDeduplicator
from social_airdrop.integrations.farcaster.neynar_api_client import (
    NeynarAPIClient,
    NeynarAuthError,
)
from tests.factories import make_cast, make_page
from tests.test_utils import FakeBalanceReader, ScriptedSearchClient

TOKEN = "0xea17df5cf6d172224892b5477a16acb111182478"
HOLDER = "0x" + "11" * 20
EMPTY = "0x" + "22" * 20


def build_test_pipeline(steps, cache, sleeper, balances=None, neynar_client=None):
    client = ScriptedSearchClient(steps)
    fetcher = CastSearchFetcher(client=client, cache=cache, sleeper=sleeper)
    verifier = BalanceVerifier(
        rpc_pool=RpcEndpointPool(["https://rpc.example"]),
        reader=FakeBalanceReader(balances=balances),
        cache=cache,
        policy=BalanceCheckPolicy(),
        sleeper=sleeper,
    )
    return AirdropPipeline(
        fetcher=fetcher,
        deduplicator=UserDeduplicator(),
        verifier=verifier,
        writer=ReportWriter(),
        neynar_client=neynar_client,
    )


class TestHelpers:
    def test_search_text_defaults_to_cashtag(self):
        assert resolve_search_text("DEGEN") == "$DEGEN"
        assert resolve_search_text("DEGEN", "degen season") == "degen season"

    def test_default_output_path(self):
        assert str(default_output_path("elizaOS")) == "elizaos_airdrop_eligible.csv"


@pytest.mark.integration
class TestAirdropPipeline:
    """Test the four stages wired together."""

    @pytest.mark.asyncio
    async def test_full_run_writes_eligible_users(self, memory_cache, sleeper, temp_dir):
        steps = [
            make_page(
                [
                    make_cast(1, eth_addresses=[HOLDER]),
                    make_cast(2),
                    make_cast(1, eth_addresses=[HOLDER]),
                ],
                cursor="c1",
            ),
            make_page([make_cast(3, eth_addresses=[EMPTY])]),
        ]
        pipeline = build_test_pipeline(steps, memory_cache, sleeper, balances={HOLDER: 1})
        output = temp_dir / "eligible.csv"

        result = await pipeline.run("$TEST", TOKEN, output)

        assert result.status == "success"
        assert result.total_casts == 4
        assert result.unique_users == 3
        assert result.duplicate_casts == 1
        assert result.eligible_users == 2
        assert result.records_written == 2
        assert result.crawl_complete is True
        assert result.output_path == output

        with open(output, newline="", encoding="utf-8") as handle:
            rows = list(csv.DictReader(handle))
        assert [(r["FID"], r["Reason"], r["Wallet Address"]) for r in rows] == [
            ("2", "NO_ADDRESS", "NO_VERIFIED_ADDRESS"),
            ("3", "NO_TOKEN", EMPTY),
        ]

    @pytest.mark.asyncio
    async def test_no_casts_stops_early(self, memory_cache, sleeper, temp_dir):
        pipeline = build_test_pipeline([make_page([])], memory_cache, sleeper)
        output = temp_dir / "eligible.csv"

        result = await pipeline.run("$NOTHING", TOKEN, output)

        assert result.status == "no_casts"
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_no_identifiable_users(self, memory_cache, sleeper, temp_dir):
        pipeline = build_test_pipeline(
            [make_page([make_cast(1, username="")])], memory_cache, sleeper
        )

        result = await pipeline.run("$TEST", TOKEN, temp_dir / "eligible.csv")

        assert result.status == "no_users"

    @pytest.mark.asyncio
    async def test_all_holders_writes_no_file(self, memory_cache, sleeper, temp_dir):
        pipeline = build_test_pipeline(
            [make_page([make_cast(1, eth_addresses=[HOLDER])])],
            memory_cache,
            sleeper,
            balances={HOLDER: 100},
        )
        output = temp_dir / "eligible.csv"

        result = await pipeline.run("$TEST", TOKEN, output)

        assert result.status == "all_holders"
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_partial_crawl_still_produces_report(self, memory_cache, sleeper, temp_dir):
        steps = [make_page([make_cast(5)], cursor="c1"), NeynarAuthError("revoked")]
        pipeline = build_test_pipeline(steps, memory_cache, sleeper)

        result = await pipeline.run("$TEST", TOKEN, temp_dir / "eligible.csv")

        assert result.status == "success"
        assert result.crawl_complete is False
        assert result.records_written == 1

    @pytest.mark.asyncio
    async def test_second_run_is_served_from_cache(self, memory_cache, sleeper, temp_dir):
        steps = [make_page([make_cast(1, eth_addresses=[EMPTY])])]
        first = build_test_pipeline(steps, memory_cache, sleeper)
        await first.run("$TEST", TOKEN, temp_dir / "first.csv")

        second = build_test_pipeline([], memory_cache, sleeper)
        result = await second.run("$TEST", TOKEN, temp_dir / "second.csv")

        assert result.status == "success"
        assert second.fetcher.client.calls == []
        assert second.verifier.reader.calls == []
        assert (temp_dir / "first.csv").read_text() == (temp_dir / "second.csv").read_text()

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self, memory_cache, sleeper):
        neynar_client = MagicMock()
        neynar_client.close = AsyncMock()
        pipeline = build_test_pipeline([], memory_cache, sleeper, neynar_client=neynar_client)

        await pipeline.aclose()

        neynar_client.close.assert_awaited_once()


class TestBuildPipeline:
    def test_requires_api_key(self, temp_dir):
        settings = AppConfig(
            neynar=NeynarConfig(api_key=None),
            cache=CacheConfig(directory=str(temp_dir)),
        )
        with pytest.raises(ConfigurationError):
            build_pipeline(settings)

    @pytest.mark.asyncio
    async def test_wires_production_components(self, temp_dir):
        settings = AppConfig(
            neynar=NeynarConfig(api_key="secret"),
            cache=CacheConfig(directory=str(temp_dir)),
        )

        pipeline = build_pipeline(settings, use_cache=False)
        try:
            assert isinstance(pipeline.neynar_client, NeynarAPIClient)
            assert pipeline.fetcher.use_cache is False
            assert pipeline.verifier.use_cache is False
            assert len(pipeline.verifier.rpc_pool) == len(settings.chain.rpc_urls)
            assert pipeline.fetcher.cache is pipeline.verifier.cache
        finally:
            await pipeline.aclose()

    def test_empty_rpc_list_fails_before_client_is_opened(self, temp_dir):
        settings = AppConfig(
            neynar=NeynarConfig(api_key="secret"),
            chain=ChainConfig(rpc_urls=[]),
            cache=CacheConfig(directory=str(temp_dir)),
        )

        with patch("social_airdrop.core.orchestrator.NeynarAPIClient") as client_class:
            with pytest.raises(ConfigurationError):
                build_pipeline(settings)

        client_class.assert_not_called()
