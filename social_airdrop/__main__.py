"""
Allow the social_airdrop package to be executed as a module.

This enables running the tool with:
    python -m social_airdrop social-airdrop --ticker DEGEN --token-address 0x...
"""

import sys

from social_airdrop.main import main

if __name__ == "__main__":
    sys.exit(main())
