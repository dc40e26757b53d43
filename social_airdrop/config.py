"""
Centralized Configuration Management

This module provides centralized configuration management for the social airdrop tool.
It loads and validates configuration from environment variables and .env files,
grouped into nested sections with their own environment prefixes.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_RPC_URLS = [
    "https://base.llamarpc.com",
    "https://mainnet.base.org",
    "https://base.meowrpc.com",
    "https://base-mainnet.public.blastapi.io",
    "https://base.gateway.tenderly.co",
]

DEFAULT_TICKER = "elizaOS"
DEFAULT_TOKEN_ADDRESS = "0xea17df5cf6d172224892b5477a16acb111182478"


class NeynarConfig(BaseSettings):
    """Neynar (Farcaster search) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NEYNAR_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_key: Optional[str] = None
    base_url: str = "https://api.neynar.com/v2"
    api_timeout: float = 30.0

    # Search request shape
    page_size: int = 100
    search_mode: str = "literal"
    sort_type: str = "desc_chron"


class ChainConfig(BaseSettings):
    """Base chain RPC configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CHAIN_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    rpc_urls: List[str] = DEFAULT_BASE_RPC_URLS
    request_timeout: float = 30.0


class CrawlConfig(BaseSettings):
    """Pacing for the cast search crawl."""

    model_config = SettingsConfigDict(
        env_prefix="CRAWL_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    page_interval: float = 1.0
    rate_limit_wait: float = 10.0
    error_backoff: float = 3.0
    max_consecutive_errors: int = 3
    checkpoint_every: int = 10


class BalanceCheckConfig(BaseSettings):
    """Pacing, retry and fallback policy for on-chain balance checks."""

    model_config = SettingsConfigDict(
        env_prefix="BALANCE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    check_interval: float = 1.0
    backoff_base_delay: float = 0.5
    backoff_max_delay: float = 10.0
    backoff_jitter: float = 0.0
    attempts_per_endpoint: int = 2
    checkpoint_every: int = 25

    # What an address counts as once every RPC endpoint has failed for it.
    # False keeps the user eligible, True drops them from the list.
    assume_holder_on_failure: bool = False


class CacheConfig(BaseSettings):
    """Local cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    directory: str = ".cache"


class AppConfig(BaseSettings):
    """
    Centralized application configuration with nested sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    log_level: str = "INFO"
    log_format: str = "text"
    log_file: Optional[str] = None

    # Nested configuration sections
    neynar: NeynarConfig = Field(default_factory=NeynarConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    balance: BalanceCheckConfig = Field(default_factory=BalanceCheckConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


def create_settings() -> AppConfig:
    """Create settings instance from environment variables and .env files only."""
    return AppConfig()


settings = create_settings()


def get_settings() -> AppConfig:
    """Get the global settings instance."""
    return settings
