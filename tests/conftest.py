"""
Global test configuration and fixtures.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from social_airdrop.core.cache import InMemoryKeyedCache
from tests.test_utils import RecordingSleeper


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def memory_cache() -> InMemoryKeyedCache:
    return InMemoryKeyedCache()


@pytest.fixture
def token_address() -> str:
    return "0xea17df5cf6d172224892b5477a16acb111182478"
