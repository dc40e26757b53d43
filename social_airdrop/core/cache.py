"""
Keyed JSON Cache

Persistent mapping from a cache key to a JSON payload, used to checkpoint the
cast crawl and the balance checks. Reads and writes fail soft: a corrupt or
unreadable record is a cache miss, and a failed write is logged and skipped so
the pipeline keeps running.
"""

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9]")

# Errors that mean "treat as a miss" on read or "skip" on write.
_SOFT_ERRORS = (OSError, ValueError, TypeError)


def sanitize_key(text: str) -> str:
    """Turn arbitrary text into a filesystem-safe cache key."""
    return _UNSAFE_KEY_CHARS.sub("_", text)


def cast_cache_key(search_text: str) -> str:
    return f"casts_{sanitize_key(search_text)}"


def balance_cache_key(token_address: str) -> str:
    return f"balances_{sanitize_key(token_address)}"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CacheRecord:
    """A cached payload and its bookkeeping."""
    key: str
    payload: Any
    saved_at: str
    complete: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "payload": self.payload,
            "saved_at": self.saved_at,
            "complete": self.complete,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, key: str, data: Any) -> "CacheRecord":
        if not isinstance(data, dict) or "payload" not in data:
            raise ValueError(f"Malformed cache record for key '{key}'")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError(f"Malformed metadata in cache record for key '{key}'")
        return cls(
            key=data.get("key", key),
            payload=data["payload"],
            saved_at=str(data.get("saved_at", "")),
            complete=bool(data.get("complete", False)),
            metadata=metadata,
        )


class KeyedCache(ABC):
    """
    Base class for keyed caches.

    Subclasses only move records in and out of storage. Error handling and the
    rule that a complete record is never replaced by an incomplete one during
    the life of this cache instance live here.
    """

    def __init__(self):
        self._completed_keys: Set[str] = set()

    @abstractmethod
    def _read(self, key: str) -> Optional[CacheRecord]:
        """Return the stored record, None when absent. May raise."""

    @abstractmethod
    def _write(self, record: CacheRecord) -> None:
        """Persist the record. May raise."""

    def load(self, key: str) -> Optional[CacheRecord]:
        try:
            return self._read(key)
        except _SOFT_ERRORS as e:
            logger.error(f"Error loading cache {key}: {e}")
            return None

    def save(
        self,
        key: str,
        payload: Any,
        metadata: Optional[Dict[str, Any]] = None,
        complete: bool = False,
    ) -> bool:
        """Persist a payload. Returns False when the write was skipped or failed."""
        if not complete and key in self._completed_keys:
            logger.warning(
                f"Refusing to overwrite complete cache record {key} with a partial one"
            )
            return False

        record = CacheRecord(
            key=key,
            payload=payload,
            saved_at=_utc_now_iso(),
            complete=complete,
            metadata=dict(metadata or {}),
        )
        try:
            self._write(record)
        except _SOFT_ERRORS as e:
            logger.error(f"Error saving cache {key}: {e}")
            return False

        if complete:
            self._completed_keys.add(key)
        logger.debug(f"Cached {key} (complete={complete})")
        return True


class FileKeyedCache(KeyedCache):
    """One JSON document per key under a cache directory."""

    def __init__(self, directory: Union[str, Path] = ".cache"):
        super().__init__()
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{sanitize_key(key)}.json"

    def _read(self, key: str) -> Optional[CacheRecord]:
        path = self.path_for(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        return CacheRecord.from_dict(key, data)

    def _write(self, record: CacheRecord) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.path_for(record.key)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.stem}.", suffix=".tmp", dir=self.directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(record.to_dict(), handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise


class InMemoryKeyedCache(KeyedCache):
    """Cache kept in process memory; stores serialized snapshots."""

    def __init__(self):
        super().__init__()
        self._records: Dict[str, str] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def keys(self):
        return list(self._records.keys())

    def _read(self, key: str) -> Optional[CacheRecord]:
        raw = self._records.get(key)
        if raw is None:
            return None
        return CacheRecord.from_dict(key, json.loads(raw))

    def _write(self, record: CacheRecord) -> None:
        self._records[record.key] = json.dumps(record.to_dict())
