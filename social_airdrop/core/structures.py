"""
Pipeline Data Structures

Plain data carried between the pipeline stages: raw search hits, the canonical
user built from a cast author, and the eligibility records written to the report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

# A raw cast object exactly as the Neynar search endpoint returned it.
SearchHit = Dict[str, Any]

NO_VERIFIED_ADDRESS = "NO_VERIFIED_ADDRESS"
ETH_ADDRESSES_KEY = "eth_addresses"


@dataclass(frozen=True)
class CanonicalUser:
    """
    One Farcaster author, as first seen in the search results.

    Attributes:
        fid: Farcaster ID number, unique per user
        username: Farcaster username (handle)
        display_name: Display name, falls back to the username
        verified_addresses: Mapping of address kind to verified addresses,
            e.g. {"eth_addresses": [...], "sol_addresses": [...]}
        follower_count: Number of followers at the time of the cast
        profile_image: Profile picture URL
    """
    fid: int
    username: str
    display_name: str
    verified_addresses: Dict[str, List[str]] = field(default_factory=dict)
    follower_count: int = 0
    profile_image: str = ""

    @property
    def eth_addresses(self) -> List[str]:
        """Verified EVM addresses, the only ones checked on Base."""
        return list(self.verified_addresses.get(ETH_ADDRESSES_KEY) or [])


class EligibilityReason(str, Enum):
    """Why a user ended up on the airdrop list."""
    NO_ADDRESS = "NO_ADDRESS"
    NO_TOKEN = "NO_TOKEN"


@dataclass(frozen=True)
class EligibilityRecord:
    """A user who does not hold the token, with the address that was checked."""
    user: CanonicalUser
    wallet_address: str
    reason: EligibilityReason


@dataclass
class CrawlResult:
    """Outcome of one cast search crawl."""
    hits: List[SearchHit]
    complete: bool
    from_cache: bool = False
    page_count: int = 0
    stop_reason: str = "exhausted"
