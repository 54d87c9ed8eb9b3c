"""Nominatim search client with request spacing."""
from __future__ import annotations

import asyncio
import time
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from georesolve.observability.metrics import MetricsRegistry
from georesolve.observability.tracing import log_lookup_result, span
from georesolve.storage.models import Coordinate

LOGGER = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org/search"
# Public Nominatim allows at most one request per second; stay under it.
DEFAULT_MIN_INTERVAL = 1.5


class NominatimCandidate(BaseModel):
    """One entry of the ``/search`` response list."""

    lat: float
    lon: float
    display_name: Optional[str] = None

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)


class NominatimClient:
    """Forward geocoder backed by the Nominatim ``/search`` endpoint.

    Failures of any kind come back as ``None``; nothing is retried here so
    request volume against the provider stays predictable.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        *,
        base_url: str = DEFAULT_BASE_URL,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._session = session
        self._base_url = base_url
        self._min_interval = min_interval
        self._metrics = metrics or MetricsRegistry()
        self._last_request_ts = 0.0
        self._throttle_lock = asyncio.Lock()

    async def _throttle(self) -> None:
        if self._min_interval <= 0:
            return
        async with self._throttle_lock:
            wait = self._last_request_ts + self._min_interval - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request_ts = time.monotonic()

    def _failed(self, query: str, reason: str, *, status: Optional[int] = None) -> None:
        self._metrics.incr("provider_failures")
        LOGGER.warning("provider_lookup_failed", query=query, status=status, reason=reason)

    async def lookup(self, address: str) -> Optional[Coordinate]:
        query = (address or "").strip()
        if not query:
            return None
        await self._throttle()
        self._metrics.incr("provider_calls")
        params = {"q": query, "format": "json", "limit": 1}
        start = time.perf_counter()
        try:
            with span(name="provider_lookup", query=query):
                response = await self._session.get(self._base_url, params=params)
        except httpx.HTTPError as exc:
            self._failed(query, f"{type(exc).__name__}: {exc}")
            return None
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        if not response.is_success:
            log_lookup_result(query=query, status=response.status_code, found=False, elapsed_ms=elapsed_ms)
            self._failed(query, "http_status", status=response.status_code)
            return None

        try:
            candidates = response.json()
        except ValueError as exc:
            self._failed(query, f"invalid_json: {exc}", status=response.status_code)
            return None
        if not isinstance(candidates, list):
            self._failed(query, "unexpected_payload", status=response.status_code)
            return None
        if not candidates:
            self._metrics.incr("provider_empty")
            log_lookup_result(query=query, status=response.status_code, found=False, elapsed_ms=elapsed_ms)
            LOGGER.info("provider_no_results", query=query)
            return None

        try:
            best = NominatimCandidate.model_validate(candidates[0])
            coordinate = best.to_coordinate()
        except (ValidationError, ValueError) as exc:
            self._failed(query, f"malformed_candidate: {exc}", status=response.status_code)
            return None
        log_lookup_result(query=query, status=response.status_code, found=True, elapsed_ms=elapsed_ms)
        LOGGER.debug("provider_match", query=query, display_name=best.display_name, **coordinate.as_dict())
        return coordinate
