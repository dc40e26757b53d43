#!/usr/bin/env python3
"""
Airdrop Eligibility Service

This service decides which Farcaster users are eligible for an airdrop by
checking whether any of their verified Base addresses already hold the token.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..core.cache import KeyedCache, balance_cache_key
from ..core.pacing import BalanceCheckPolicy, Sleeper, real_sleep
from ..core.structures import (
    NO_VERIFIED_ADDRESS,
    CanonicalUser,
    EligibilityReason,
    EligibilityRecord,
)
from .base_chain.rpc_pool import Erc20BalanceReader, RpcEndpointPool

logger = logging.getLogger(__name__)


def balance_entry_key(wallet_address: str, token_address: str) -> str:
    return f"{wallet_address.lower()}#{token_address.lower()}"


@dataclass
class BalanceCheckStats:
    users_checked: int = 0
    cache_hits: int = 0
    new_checks: int = 0
    failed_checks: int = 0
    eligible: int = 0


class BalanceVerifier:
    """
    Service for checking token possession across a user's verified addresses.

    This service:
    1. Emits users without a verified EVM address straight away
    2. Checks each address on-chain, consulting a persistent per-token cache first
    3. Rotates RPC endpoints with exponential backoff when a call fails
    4. Checkpoints the balance cache while it works
    """

    def __init__(
        self,
        rpc_pool: RpcEndpointPool,
        reader: Erc20BalanceReader,
        cache: KeyedCache,
        policy: Optional[BalanceCheckPolicy] = None,
        use_cache: bool = True,
        sleeper: Optional[Sleeper] = None,
    ):
        self.rpc_pool = rpc_pool
        self.reader = reader
        self.cache = cache
        self.policy = policy or BalanceCheckPolicy()
        self.use_cache = use_cache
        self._sleep = sleeper or real_sleep

        self.balances: Dict[str, bool] = {}
        self.stats = BalanceCheckStats()
        self._loaded_tokens: set = set()

    def _load_cached_balances(self, token_address: str) -> None:
        token_key = token_address.lower()
        if not self.use_cache or token_key in self._loaded_tokens:
            return
        self._loaded_tokens.add(token_key)

        cached = self.cache.load(balance_cache_key(token_key))
        if cached is None or not isinstance(cached.payload, dict):
            return
        loaded = 0
        for key, value in cached.payload.items():
            if isinstance(value, bool):
                self.balances.setdefault(key.lower(), value)
                loaded += 1
        logger.info(f"Loaded {loaded} cached balance checks")

    def _save_balances(self, token_address: str, complete: bool) -> None:
        token_key = token_address.lower()
        suffix = f"#{token_key}"
        payload = {k: v for k, v in self.balances.items() if k.endswith(suffix)}
        self.cache.save(
            balance_cache_key(token_key),
            payload,
            metadata={"token_address": token_address, "total_checks": len(payload)},
            complete=complete,
        )

    async def holds_token(self, wallet_address: str, token_address: str) -> bool:
        """Check on-chain whether the address holds any of the token. Never raises."""
        max_attempts = self.policy.max_attempts(len(self.rpc_pool))

        for attempt in range(max_attempts):
            rpc_url = self.rpc_pool.current()
            try:
                balance = await self.reader.balance_of(rpc_url, token_address, wallet_address)
                return balance > 0
            except Exception as e:
                self.rpc_pool.advance()
                logger.debug(
                    f"balanceOf failed for {wallet_address[:10]}... on {rpc_url} "
                    f"(attempt {attempt + 1}/{max_attempts}): {e}"
                )
                if attempt < max_attempts - 1:
                    await self._sleep(self.policy.backoff.delay_for(attempt))

        self.stats.failed_checks += 1
        fallback = self.policy.assume_holder_on_failure
        logger.error(
            f"Failed after {max_attempts} attempts (all RPCs) for {wallet_address[:10]}..., "
            f"assuming {'holder' if fallback else 'no token'}"
        )
        return fallback

    async def _address_holds(self, wallet_address: str, token_address: str) -> bool:
        key = balance_entry_key(wallet_address, token_address)
        cached = self.balances.get(key)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached

        holds = await self.holds_token(wallet_address, token_address)
        self.balances[key] = holds
        self.stats.new_checks += 1
        await self._sleep(self.policy.check_interval)
        return holds

    async def check_user(
        self, user: CanonicalUser, token_address: str
    ) -> Optional[EligibilityRecord]:
        """Return an eligibility record for a non-holder, None for a holder."""
        addresses = user.eth_addresses
        if not addresses:
            return EligibilityRecord(
                user=user,
                wallet_address=NO_VERIFIED_ADDRESS,
                reason=EligibilityReason.NO_ADDRESS,
            )

        checked_address = addresses[0]
        for address in addresses:
            checked_address = address
            if await self._address_holds(address, token_address):
                return None

        return EligibilityRecord(
            user=user,
            wallet_address=checked_address,
            reason=EligibilityReason.NO_TOKEN,
        )

    async def verify(
        self, users: Sequence[CanonicalUser], token_address: str
    ) -> List[EligibilityRecord]:
        logger.info(f"Checking wallet token balances for {len(users)} users (token {token_address})")
        self.stats = BalanceCheckStats()
        self._load_cached_balances(token_address)

        records: List[EligibilityRecord] = []
        total = len(users)
        for index, user in enumerate(users, start=1):
            record = await self.check_user(user, token_address)
            self.stats.users_checked += 1
            if record is not None:
                records.append(record)
                self.stats.eligible += 1

            if index % self.policy.checkpoint_every == 0:
                logger.info(f"Progress: {index}/{total} users ({round(index / total * 100)}%)")
                self._save_balances(token_address, complete=False)

        self._save_balances(token_address, complete=True)
        logger.info(
            f"Balance check complete: {self.stats.users_checked} users, "
            f"{self.stats.cache_hits} cache hits, {self.stats.new_checks} new checks, "
            f"{self.stats.failed_checks} failed checks, {self.stats.eligible} eligible"
        )
        return records
