"""
Pacing and Backoff Policies

The pipeline talks to two rate-limited services one request at a time, so all
flow control is expressed as sleeps. The intervals live in small policy objects,
and the sleep itself is injected so tests can record delays instead of waiting.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from ..config import BalanceCheckConfig, CrawlConfig

Sleeper = Callable[[float], Awaitable[None]]


async def real_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


@dataclass
class BackoffPolicy:
    """Exponential backoff: ``min(base_delay * 2**attempt, max_delay)`` plus jitter."""
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter: float = 0.0

    def delay_for(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        if self.jitter > 0:
            delay += (rng or random).uniform(0, self.jitter)
        return delay


@dataclass
class CrawlPacing:
    """Timing and error ceilings for paging through cast search."""
    page_interval: float = 1.0
    rate_limit_wait: float = 10.0
    error_backoff: float = 3.0
    max_consecutive_errors: int = 3
    checkpoint_every: int = 10

    @classmethod
    def from_config(cls, config: CrawlConfig) -> "CrawlPacing":
        return cls(
            page_interval=config.page_interval,
            rate_limit_wait=config.rate_limit_wait,
            error_backoff=config.error_backoff,
            max_consecutive_errors=max(config.max_consecutive_errors, 1),
            checkpoint_every=max(config.checkpoint_every, 1),
        )


@dataclass
class BalanceCheckPolicy:
    """Timing, retry ceiling and failure fallback for on-chain balance checks."""
    check_interval: float = 1.0
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    attempts_per_endpoint: int = 2
    checkpoint_every: int = 25
    assume_holder_on_failure: bool = False

    def max_attempts(self, endpoint_count: int) -> int:
        return max(self.attempts_per_endpoint, 1) * max(endpoint_count, 1)

    @classmethod
    def from_config(cls, config: BalanceCheckConfig) -> "BalanceCheckPolicy":
        return cls(
            check_interval=config.check_interval,
            backoff=BackoffPolicy(
                base_delay=config.backoff_base_delay,
                max_delay=config.backoff_max_delay,
                jitter=config.backoff_jitter,
            ),
            attempts_per_endpoint=config.attempts_per_endpoint,
            checkpoint_every=max(config.checkpoint_every, 1),
            assume_holder_on_failure=config.assume_holder_on_failure,
        )
