"""Value types shared by the parser, cache and resolver."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Represents a resolved coordinate pair."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            raise ValueError(f"Coordinate values must be finite: {self.lat}, {self.lon}")
        if not LAT_RANGE[0] <= self.lat <= LAT_RANGE[1]:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not LON_RANGE[0] <= self.lon <= LON_RANGE[1]:
            raise ValueError(f"Longitude out of range: {self.lon}")

    def as_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Cached outcome for a single location; ``coordinate=None`` marks a tombstone."""

    coordinate: Optional[Coordinate]
    cached_at: int

    @property
    def is_tombstone(self) -> bool:
        return self.coordinate is None

    def to_payload(self) -> Dict[str, object]:
        """Serialise to the on-disk representation."""
        if self.coordinate is None:
            return {"lat": None, "lon": None, "cached_at": self.cached_at}
        return {"lat": self.coordinate.lat, "lon": self.coordinate.lon, "cached_at": self.cached_at}

    @classmethod
    def from_payload(cls, payload: Dict[str, object]) -> "CacheEntry":
        """Rebuild an entry from disk; raises ``ValueError`` for malformed rows."""
        if not isinstance(payload, dict):
            raise ValueError(f"Cache row must be an object, got {type(payload).__name__}")
        lat = payload.get("lat")
        lon = payload.get("lon")
        cached_at = int(payload.get("cached_at") or 0)
        if lat is None and lon is None:
            return cls(coordinate=None, cached_at=cached_at)
        if lat is None or lon is None:
            raise ValueError("Cache row has only one of lat/lon")
        return cls(coordinate=Coordinate(float(lat), float(lon)), cached_at=cached_at)


@dataclass(slots=True)
class CacheStats:
    """Introspection snapshot of the geocode cache."""

    size: int = 0
    locations: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {"size": self.size, "locations": list(self.locations)}
