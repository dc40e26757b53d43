"""
Base Chain RPC Access

Round-robin pool of public Base RPC endpoints and a minimal ERC-20
``balanceOf`` reader built on web3's async provider.
"""

import logging
from typing import Dict, List, Protocol, Sequence

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3

from ...exceptions import ChainIntegrationError, ConfigurationError

logger = logging.getLogger(__name__)

# Minimal ERC20 ABI
ERC20_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
]


class RpcEndpointPool:
    """
    Rotating cursor over the configured RPC URLs.

    The cursor only moves on failure, so a healthy endpoint keeps serving
    requests and a broken one is skipped on the next attempt.
    """

    def __init__(self, urls: Sequence[str]):
        cleaned = [url.strip() for url in urls if url and url.strip()]
        if not cleaned:
            raise ConfigurationError("At least one RPC endpoint URL is required")
        self.urls: List[str] = cleaned
        self.cursor = 0
        self.advance_count = 0

    def __len__(self) -> int:
        return len(self.urls)

    def current(self) -> str:
        return self.urls[self.cursor % len(self.urls)]

    def advance(self) -> str:
        self.cursor += 1
        self.advance_count += 1
        return self.current()


class Erc20BalanceReader(Protocol):
    async def balance_of(self, rpc_url: str, token_address: str, wallet_address: str) -> int: ...


class Web3BalanceReader:
    """Reads ERC-20 balances through one AsyncWeb3 instance per endpoint."""

    def __init__(self, request_timeout: float = 30.0):
        self.request_timeout = request_timeout
        self._clients: Dict[str, AsyncWeb3] = {}

    def _client_for(self, rpc_url: str) -> AsyncWeb3:
        client = self._clients.get(rpc_url)
        if client is None:
            provider = AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.request_timeout)},
            )
            client = AsyncWeb3(provider)
            self._clients[rpc_url] = client
        return client

    async def balance_of(self, rpc_url: str, token_address: str, wallet_address: str) -> int:
        w3 = self._client_for(rpc_url)
        try:
            contract = w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(token_address), abi=ERC20_ABI
            )
            balance = await contract.functions.balanceOf(
                AsyncWeb3.to_checksum_address(wallet_address)
            ).call()
        except Exception as e:
            raise ChainIntegrationError(f"balanceOf call via {rpc_url} failed: {e}") from e
        return int(balance)
