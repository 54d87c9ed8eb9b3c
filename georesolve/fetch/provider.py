"""Geocoding provider interface."""
from __future__ import annotations

from typing import Optional, Protocol

from georesolve.storage.models import Coordinate


class GeocodingProvider(Protocol):
    """Forward geocoder returning the best match for an address, or None."""

    async def lookup(self, address: str) -> Optional[Coordinate]: ...
