"""Resolve location strings to coordinates through parser, cache and provider."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import structlog

from georesolve.fetch.provider import GeocodingProvider
from georesolve.observability.metrics import MetricsRegistry, record_duration
from georesolve.observability.tracing import clear_context, set_context
from georesolve.parse.coordinates import parse_coordinate
from georesolve.storage.geocode_cache import GeocodeCache, normalise_key
from georesolve.storage.models import Coordinate

LOGGER = structlog.get_logger(__name__)

BatchResult = Dict[str, Coordinate]


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of resolving one query."""

    query: str
    coordinate: Optional[Coordinate]
    source: str  # literal / cache / provider / empty / error


class LocationResolver:
    """Public entry point combining the coordinate parser, cache and provider."""

    def __init__(
        self,
        cache: GeocodeCache,
        provider: GeocodingProvider,
        *,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._cache = cache
        self._provider = provider
        self._metrics = metrics or MetricsRegistry()
        self._inflight: Dict[str, asyncio.Future] = {}

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    async def resolve(self, query: Optional[str]) -> Optional[Coordinate]:
        """Return coordinates for ``query`` or None when it cannot be located; never raises."""
        resolution = await self._resolve_isolated(query)
        return resolution.coordinate

    async def _resolve(self, query: Optional[str]) -> Resolution:
        if not query or not str(query).strip():
            return Resolution(query=query or "", coordinate=None, source="empty")
        self._metrics.incr("queries")

        literal = parse_coordinate(query)
        if literal is not None:
            self._metrics.incr("coordinate_literals")
            return Resolution(query=query, coordinate=literal, source="literal")

        key = normalise_key(query)
        cached = self._cache.get(key)
        if cached is not None:
            self._metrics.incr("cache_hits")
            if cached.is_tombstone:
                self._metrics.incr("tombstone_hits")
            return Resolution(query=query, coordinate=cached.coordinate, source="cache")

        pending = self._inflight.get(key)
        if pending is not None:
            self._metrics.incr("inflight_joins")
            coordinate = await asyncio.shield(pending)
            return Resolution(query=query, coordinate=coordinate, source="provider")

        self._metrics.incr("cache_misses")
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            coordinate = await self._lookup_and_remember(key)
        except Exception as exc:
            future.set_exception(exc)
            # Joiners observe the failure; mark it retrieved for the owner.
            future.exception()
            raise
        else:
            future.set_result(coordinate)
        finally:
            if not future.done():
                future.cancel()
            self._inflight.pop(key, None)
        return Resolution(query=query, coordinate=coordinate, source="provider")

    async def _lookup_and_remember(self, key: str) -> Optional[Coordinate]:
        LOGGER.info("geocoding_new_location", query=key)
        coordinate = await self._provider.lookup(key)
        if coordinate is None:
            LOGGER.info("geocoding_unresolved", query=key)
        await self._cache.remember(key, coordinate)
        return coordinate

    async def _resolve_isolated(self, query: Optional[str]) -> Resolution:
        try:
            return await self._resolve(query)
        except Exception as error:
            self._metrics.incr("resolve_errors")
            LOGGER.error("geocoding_item_failed", query=query, error=str(error), exc_info=True)
            return Resolution(query=query or "", coordinate=None, source="error")

    async def resolve_batch(self, queries: Iterable[Optional[str]]) -> BatchResult:
        """Resolve many queries concurrently, omitting those that cannot be located."""
        distinct: List[str] = list(dict.fromkeys(q for q in queries if q))
        if not distinct:
            return {}
        batch_id = uuid.uuid4().hex[:12]
        set_context(batch_id=batch_id, size=len(distinct))
        try:
            with record_duration(self._metrics, "batch_duration_ms"):
                self._metrics.incr("batch_items", len(distinct))
                resolutions = await asyncio.gather(*(self._resolve_isolated(q) for q in distinct))
        finally:
            clear_context()
        results: BatchResult = {r.query: r.coordinate for r in resolutions if r.coordinate is not None}
        LOGGER.info("geocoding_batch_done", batch_id=batch_id, requested=len(distinct), resolved=len(results))
        return results

    def cache_stats(self) -> Dict[str, object]:
        return self._cache.stats().as_dict()

    async def clear_cache(self) -> None:
        await self._cache.clear()
