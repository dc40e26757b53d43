"""
Social Airdrop - find Farcaster users who talk about a token but don't hold it.

This package provides a resumable, four-stage batch pipeline:
- Cast search crawling against the Neynar API with checkpointed pagination
- Deduplication of cast authors into canonical users
- On-chain ERC-20 balance verification with RPC failover and a persistent cache
- CSV export of the users eligible for an airdrop
"""

__version__ = "0.1.0"
__author__ = "Social Airdrop Team"
