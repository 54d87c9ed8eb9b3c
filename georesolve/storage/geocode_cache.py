"""Disk-backed cache of geocoding outcomes keyed by normalised location text."""
from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import orjson
import structlog

from georesolve.observability.metrics import MetricsRegistry
from georesolve.storage.models import CacheEntry, CacheStats, Coordinate

LOGGER = structlog.get_logger(__name__)

_CACHE_SCHEMA_VERSION = 1


class CacheNotOpenError(RuntimeError):
    """Raised when a cache handle is used outside its open/close lifecycle."""


def normalise_key(query: str) -> str:
    """Cache keys are trimmed but keep their original case."""
    return str(query).strip()


class GeocodeCache:
    """Persist geocoding results and tombstones to a single JSON document.

    The handle must be opened before use, either explicitly with ``open()``
    or as an async context manager. Every mutation is flushed before the
    call returns; writes are serialised by one lock and land through an
    atomic rename so the file is never observed half-written.
    """

    def __init__(
        self,
        path: Path,
        *,
        entry_ttl: Optional[float] = None,
        tombstone_ttl: Optional[float] = None,
        metrics: Optional[MetricsRegistry] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = path
        self._entry_ttl = entry_ttl
        self._tombstone_ttl = tombstone_ttl
        self._metrics = metrics
        self._clock = clock
        self._index: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._opened = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._opened

    async def __aenter__(self) -> "GeocodeCache":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def open(self) -> None:
        """Load the persisted cache, starting empty when the file is absent or unreadable."""
        if self._opened:
            return
        self._index = await asyncio.to_thread(self._read_payload)
        expired = self._drop_expired()
        self._opened = True
        LOGGER.info("geocode_cache_loaded", path=str(self._path), size=len(self._index), expired=expired)
        if expired:
            await self._persist()

    async def close(self) -> None:
        if not self._opened:
            return
        async with self._lock:
            self._opened = False
        LOGGER.debug("geocode_cache_closed", path=str(self._path), size=len(self._index))

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the cached entry for ``key``; expired entries read as misses."""
        self._require_open()
        entry = self._index.get(normalise_key(key))
        if entry is None or self._is_expired(entry):
            return None
        return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store ``entry`` under ``key`` and flush to disk."""
        self._require_open()
        self._index[normalise_key(key)] = entry
        await self._persist()

    async def remember(self, key: str, coordinate: Optional[Coordinate]) -> CacheEntry:
        """Record a lookup outcome; ``None`` stores a tombstone."""
        entry = CacheEntry(coordinate=coordinate, cached_at=int(self._clock()))
        await self.put(key, entry)
        return entry

    def stats(self) -> CacheStats:
        """Count live entries only; expired ones awaiting ``prune`` are left out."""
        self._require_open()
        live = [key for key, entry in self._index.items() if not self._is_expired(entry)]
        return CacheStats(size=len(live), locations=live)

    async def clear(self) -> None:
        """Drop every entry and persist the empty state; safe on an unopened handle."""
        self._index.clear()
        await self._persist()
        LOGGER.info("geocode_cache_cleared", path=str(self._path))

    async def prune(self) -> int:
        """Remove expired entries, returning how many were dropped."""
        self._require_open()
        removed = self._drop_expired()
        if removed:
            await self._persist()
        LOGGER.info("geocode_cache_pruned", removed=removed, size=len(self._index))
        return removed

    def _require_open(self) -> None:
        if not self._opened:
            raise CacheNotOpenError(f"Geocode cache {self._path} is not open")

    def _ttl_for(self, entry: CacheEntry) -> Optional[float]:
        return self._tombstone_ttl if entry.is_tombstone else self._entry_ttl

    def _is_expired(self, entry: CacheEntry) -> bool:
        ttl = self._ttl_for(entry)
        if ttl is None:
            return False
        return self._clock() - entry.cached_at >= ttl

    def _drop_expired(self) -> int:
        expired = [key for key, entry in self._index.items() if self._is_expired(entry)]
        for key in expired:
            del self._index[key]
        return len(expired)

    def _read_payload(self) -> Dict[str, CacheEntry]:
        if not self._path.exists():
            return {}
        try:
            payload = orjson.loads(self._path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            LOGGER.warning("geocode_cache_unreadable", path=str(self._path), error=str(exc))
            return {}
        if not isinstance(payload, dict) or payload.get("version") != _CACHE_SCHEMA_VERSION:
            LOGGER.warning("geocode_cache_version_mismatch", path=str(self._path))
            return {}
        rows = payload.get("data") or {}
        if not isinstance(rows, dict):
            LOGGER.warning("geocode_cache_unreadable", path=str(self._path), error="data is not an object")
            return {}
        index: Dict[str, CacheEntry] = {}
        for key, row in rows.items():
            try:
                index[key] = CacheEntry.from_payload(row)
            except (TypeError, ValueError) as exc:
                LOGGER.warning("geocode_cache_row_skipped", key=key, error=str(exc))
        return index

    async def _persist(self) -> None:
        async with self._lock:
            snapshot = {key: entry.to_payload() for key, entry in self._index.items()}
            try:
                await asyncio.to_thread(self._write_payload, snapshot)
            except OSError as exc:
                if self._metrics is not None:
                    self._metrics.incr("cache_write_failures")
                LOGGER.error("geocode_cache_write_failed", path=str(self._path), error=str(exc))

    def _write_payload(self, snapshot: Dict[str, Dict[str, object]]) -> None:
        payload = {"version": _CACHE_SCHEMA_VERSION, "data": snapshot}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        tmp_path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        os.replace(tmp_path, self._path)
