"""Time-boxed cache for AI responses over a persistent key/value store.

Entries live under a reserved key prefix inside a store that may be shared
with other data, so every operation here ignores keys outside that prefix.
Each entry is a JSON object ``{"data": <value>, "timestamp": <epoch ms>}``
and is valid for ``ttl`` after it was written.

Caching is best-effort. A missing, corrupt or stale entry is a miss, and a
store that refuses a write is ignored, so callers never see a cache error.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import time
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any, Protocol, TypedDict

log = logging.getLogger(__name__)

CACHE_PREFIX = "tripz_cache_"
CACHE_TTL = timedelta(hours=1)


class CacheEntry(TypedDict):
    data: Any
    timestamp: int


class StoreFullError(Exception):
    """Raised by a store when a write would exceed its capacity."""


class StoreUnreadableError(Exception):
    """Raised by a store asked to write over data it could not parse."""


class KeyValueStore(Protocol):
    def keys(self) -> list[str]: ...

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store, mostly for tests."""

    def __init__(self, items: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(items or {})

    def keys(self) -> list[str]:
        return list(self.items)

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStore:
    """String key/value store persisted as a single JSON object on disk.

    ``max_bytes`` caps the encoded size of the whole file; a write that would
    go past it raises :class:`StoreFullError` and leaves the file untouched.
    A file that cannot be parsed reads as empty but is never overwritten.
    """

    def __init__(self, path: Path, max_bytes: int | None = None):
        self.path = path
        self.max_bytes = max_bytes
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("{}")

    def _load(self, for_write: bool = False) -> dict[str, str]:
        try:
            raw = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            if for_write:
                raise StoreUnreadableError(f"Store {self.path} is unreadable") from exc
            log.warning("Cache store %s is unreadable, reading as empty", self.path)
            return {}
        if not isinstance(raw, dict):
            if for_write:
                raise StoreUnreadableError(f"Store {self.path} is not a JSON object")
            return {}
        return raw

    def _save(self, items: dict[str, str]) -> None:
        encoded = json.dumps(items)
        if self.max_bytes is not None and len(encoded.encode()) > self.max_bytes:
            raise StoreFullError(
                f"Store {self.path} would exceed {self.max_bytes} bytes"
            )
        self.path.write_text(encoded)

    def keys(self) -> list[str]:
        return list(self._load())

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load(for_write=True)
        items[key] = value
        self._save(items)

    def remove_item(self, key: str) -> None:
        items = self._load(for_write=True)
        if items.pop(key, None) is not None:
            self._save(items)


def _now_ms() -> int:
    return int(time.time() * 1000)


def make_key(kind: str, *parts: object) -> str:
    """Build a deterministic cache signature from request parameters.

    The kind stays readable; the normalized parameters are hashed as a JSON
    list, so separators inside a parameter cannot merge two requests.
    """
    normalized = [re.sub(r"\s+", " ", str(p).strip().lower()) for p in (kind, *parts)]
    digest = hashlib.sha256(json.dumps(normalized).encode()).hexdigest()[:32]
    return f"{normalized[0]}_{digest}"


class ResponseCache:
    def __init__(
        self,
        store: KeyValueStore,
        prefix: str = CACHE_PREFIX,
        ttl: timedelta = CACHE_TTL,
        clock: Callable[[], int] = _now_ms,
    ):
        self.store = store
        self.prefix = prefix
        self.ttl_ms = int(ttl.total_seconds() * 1000)
        self.clock = clock

    def _is_stale(self, entry: Any) -> bool:
        return self.clock() - entry["timestamp"] > self.ttl_ms

    @staticmethod
    def _parse(raw: str) -> CacheEntry:
        entry = json.loads(raw)
        if not isinstance(entry, dict) or "data" not in entry:
            raise ValueError("not a cache entry")
        if not isinstance(entry.get("timestamp"), (int, float)):
            raise ValueError("cache entry has no timestamp")
        return entry

    def get(self, key: str) -> Any | None:
        """Return the cached value for ``key``, or None on a miss."""
        full_key = self.prefix + key
        try:
            raw = self.store.get_item(full_key)
        except Exception:
            log.warning("Cache read failed for %s", full_key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            entry = self._parse(raw)
        except ValueError:
            log.debug("Dropping corrupt cache entry %s", full_key)
            self._discard(full_key)
            return None
        if self._is_stale(entry):
            log.debug("Dropping stale cache entry %s", full_key)
            self._discard(full_key)
            return None
        return entry["data"]

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``. Failures are logged and ignored."""
        entry: CacheEntry = {"data": value, "timestamp": self.clock()}
        try:
            self.store.set_item(self.prefix + key, json.dumps(entry))
        except Exception:
            log.warning("Cache write skipped for %s", key, exc_info=True)

    def sweep(self) -> int:
        """Remove every stale or unparsable entry under the prefix.

        Returns the number of entries removed.
        """
        try:
            keys = self.store.keys()
        except Exception:
            log.warning("Cache sweep could not list keys", exc_info=True)
            return 0
        removed = 0
        for key in keys:
            if not key.startswith(self.prefix):
                continue
            try:
                raw = self.store.get_item(key)
                if raw is None:
                    continue
                try:
                    stale = self._is_stale(self._parse(raw))
                except ValueError:
                    stale = True
                if stale:
                    self.store.remove_item(key)
                    removed += 1
            except Exception:
                log.warning("Cache sweep skipped %s", key, exc_info=True)
        if removed:
            log.info("Cache sweep removed %d entries", removed)
        return removed

    def _discard(self, full_key: str) -> None:
        try:
            self.store.remove_item(full_key)
        except Exception:
            log.warning("Could not remove cache entry %s", full_key, exc_info=True)


def default_cache() -> ResponseCache:
    """Cache backed by a JSON file under ``TRIPZ_DATA_DIR``."""
    data_dir = Path(os.environ.get("TRIPZ_DATA_DIR", Path(__file__).parent.parent.parent / "data"))
    max_bytes = os.environ.get("TRIPZ_CACHE_MAX_BYTES")
    store = JsonFileStore(
        data_dir / "response_cache.json",
        max_bytes=int(max_bytes) if max_bytes else None,
    )
    return ResponseCache(store)
