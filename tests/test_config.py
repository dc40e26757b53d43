"""
Tests for the configuration system.
"""

import pytest

from social_airdrop.config import (
    DEFAULT_BASE_RPC_URLS,
    AppConfig,
    BalanceCheckConfig,
    ChainConfig,
    CrawlConfig,
    NeynarConfig,
    create_settings,
    get_settings,
)

ENV_VARS = [
    "NEYNAR_API_KEY",
    "NEYNAR_PAGE_SIZE",
    "CHAIN_RPC_URLS",
    "CRAWL_PAGE_INTERVAL",
    "BALANCE_ASSUME_HOLDER_ON_FAILURE",
    "CACHE_DIRECTORY",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch, temp_dir):
    """Run with no relevant env vars and no .env file in the working directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(temp_dir)
    return monkeypatch


class TestDefaults:
    def test_section_defaults(self, clean_env):
        config = AppConfig()

        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.neynar.api_key is None
        assert config.neynar.base_url == "https://api.neynar.com/v2"
        assert config.neynar.page_size == 100
        assert config.chain.rpc_urls == DEFAULT_BASE_RPC_URLS
        assert config.crawl.checkpoint_every == 10
        assert config.balance.checkpoint_every == 25
        assert config.balance.assume_holder_on_failure is False
        assert config.cache.directory == ".cache"

    def test_five_public_base_endpoints(self):
        assert len(DEFAULT_BASE_RPC_URLS) == 5
        assert "https://mainnet.base.org" in DEFAULT_BASE_RPC_URLS


class TestEnvironmentOverrides:
    def test_prefixed_env_vars(self, clean_env):
        clean_env.setenv("NEYNAR_API_KEY", "abc123")
        clean_env.setenv("NEYNAR_PAGE_SIZE", "50")
        clean_env.setenv("CHAIN_RPC_URLS", '["https://one.example", "https://two.example"]')
        clean_env.setenv("CRAWL_PAGE_INTERVAL", "0.5")
        clean_env.setenv("BALANCE_ASSUME_HOLDER_ON_FAILURE", "true")
        clean_env.setenv("CACHE_DIRECTORY", "/tmp/airdrop-cache")
        clean_env.setenv("LOG_LEVEL", "DEBUG")

        config = create_settings()

        assert config.neynar.api_key == "abc123"
        assert config.neynar.page_size == 50
        assert config.chain.rpc_urls == ["https://one.example", "https://two.example"]
        assert config.crawl.page_interval == 0.5
        assert config.balance.assume_holder_on_failure is True
        assert config.cache.directory == "/tmp/airdrop-cache"
        assert config.log_level == "DEBUG"

    def test_every_section_reads_dotenv_file(self, clean_env, temp_dir):
        (temp_dir / ".env").write_text(
            "NEYNAR_API_KEY=from-dotenv\n"
            'CHAIN_RPC_URLS=["https://mine.example"]\n'
            "CRAWL_PAGE_INTERVAL=0.25\n"
            "BALANCE_ASSUME_HOLDER_ON_FAILURE=true\n"
            "CACHE_DIRECTORY=/tmp/airdrop-dotenv\n",
            encoding="utf-8",
        )

        config = AppConfig()

        assert config.neynar.api_key == "from-dotenv"
        assert NeynarConfig().api_key == "from-dotenv"
        assert config.chain.rpc_urls == ["https://mine.example"]
        assert config.crawl.page_interval == 0.25
        assert config.balance.assume_holder_on_failure is True
        assert config.cache.directory == "/tmp/airdrop-dotenv"

    def test_environment_beats_dotenv_file(self, clean_env, temp_dir):
        (temp_dir / ".env").write_text("CACHE_DIRECTORY=from-file\n", encoding="utf-8")
        clean_env.setenv("CACHE_DIRECTORY", "from-env")

        assert AppConfig().cache.directory == "from-env"

    def test_explicit_values_win(self, clean_env):
        clean_env.setenv("CRAWL_PAGE_INTERVAL", "5")

        assert CrawlConfig(page_interval=2.0).page_interval == 2.0

    def test_sections_are_independent(self, clean_env):
        clean_env.setenv("CHAIN_REQUEST_TIMEOUT", "12")

        assert ChainConfig().request_timeout == 12.0
        assert BalanceCheckConfig().check_interval == 1.0


def test_get_settings_returns_global_instance():
    assert get_settings() is get_settings()
    assert isinstance(get_settings(), AppConfig)
