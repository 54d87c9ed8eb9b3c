"""Wire the cache, provider client and resolver together from settings."""
from __future__ import annotations

import contextlib
from typing import AsyncIterator, Optional

import httpx

from georesolve.config import Settings
from georesolve.fetch.nominatim import NominatimClient
from georesolve.fetch.session import create_geocode_session
from georesolve.observability.metrics import MetricsRegistry
from georesolve.orchestrator.resolver import LocationResolver
from georesolve.storage.geocode_cache import GeocodeCache


def build_cache(settings: Settings, metrics: Optional[MetricsRegistry] = None) -> GeocodeCache:
    return GeocodeCache(
        settings.cache.path,
        entry_ttl=settings.cache.entry_ttl_seconds,
        tombstone_ttl=settings.cache.tombstone_ttl_seconds,
        metrics=metrics,
    )


@contextlib.asynccontextmanager
async def open_resolver(
    settings: Settings,
    *,
    metrics: Optional[MetricsRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[LocationResolver]:
    """Yield a ready resolver; the cache is flushed and the HTTP session closed on exit."""
    metrics = metrics or MetricsRegistry()
    provider_cfg = settings.provider
    async with build_cache(settings, metrics) as cache:
        async with create_geocode_session(
            user_agent=provider_cfg.user_agent,
            timeout=provider_cfg.timeout_seconds,
            max_connections=provider_cfg.max_connections,
            transport=transport,
        ) as session:
            client = NominatimClient(
                session,
                base_url=provider_cfg.base_url,
                min_interval=provider_cfg.min_interval_seconds,
                metrics=metrics,
            )
            yield LocationResolver(cache, client, metrics=metrics)
