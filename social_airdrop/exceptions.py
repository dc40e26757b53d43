"""
Custom Exception Classes

This module defines custom exceptions for the social airdrop pipeline
so that fatal conditions can be told apart from recoverable ones.
"""

from pathlib import Path
from typing import Optional, Union


class SocialAirdropError(Exception):
    """Base exception for the social airdrop application."""

    pass


class ConfigurationError(SocialAirdropError):
    """Raised for configuration problems such as a missing API key."""

    pass


class FarcasterIntegrationError(SocialAirdropError):
    """Raised for errors specific to the Farcaster search integration."""

    pass


class ChainIntegrationError(SocialAirdropError):
    """Raised for errors talking to the on-chain RPC layer."""

    pass


class ReportWriteError(SocialAirdropError):
    """Raised when the eligibility report cannot be written."""

    def __init__(
        self,
        path: Union[str, Path],
        original_error: Exception,
        message: Optional[str] = None,
    ):
        self.path = Path(path)
        self.original_error = original_error
        details = f"Failed to write report to '{self.path}': {original_error}"
        if message:
            super().__init__(f"{message} - Details: {details}")
        else:
            super().__init__(details)
