"""Settings loading and validation."""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from georesolve.fetch.nominatim import DEFAULT_BASE_URL, DEFAULT_MIN_INTERVAL

VERSION = "0.4.0"
DEFAULT_USER_AGENT = f"georesolve/{VERSION}"
DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
DEFAULT_LOGGING_PATH = Path("config/logging.yaml")

_SECONDS_PER_DAY = 24 * 60 * 60

ENV_OVERRIDES = {
    "GEORESOLVE_CACHE_PATH": ("cache", "path"),
    "GEORESOLVE_USER_AGENT": ("provider", "user_agent"),
    "GEORESOLVE_PROVIDER_URL": ("provider", "base_url"),
}


class AppSettings(BaseModel):
    data_root: Path = Path("data")
    metrics_dir: Path = Path("data/metrics")


class CacheSettings(BaseModel):
    path: Path = Path("data/geocode-cache.json")
    entry_ttl_days: Optional[float] = Field(default=None, gt=0)
    tombstone_ttl_days: Optional[float] = Field(default=None, gt=0)

    @property
    def entry_ttl_seconds(self) -> Optional[float]:
        return None if self.entry_ttl_days is None else self.entry_ttl_days * _SECONDS_PER_DAY

    @property
    def tombstone_ttl_seconds(self) -> Optional[float]:
        return None if self.tombstone_ttl_days is None else self.tombstone_ttl_days * _SECONDS_PER_DAY


class ProviderSettings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = Field(default=10.0, gt=0)
    min_interval_seconds: float = Field(default=DEFAULT_MIN_INTERVAL, ge=0)
    max_connections: int = Field(default=4, gt=0)

    @field_validator("user_agent")
    @classmethod
    def _require_user_agent(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("user_agent must not be blank")
        return value.strip()


class Settings(BaseModel):
    """Validated runtime configuration."""

    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)


def _apply_env(raw: dict, environ: Mapping[str, str]) -> dict:
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            raw.setdefault(section, {})[key] = value
    return raw


def load_settings(path: Path = DEFAULT_SETTINGS_PATH, *, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read the TOML configuration file, apply environment overrides and validate.

    A missing file yields the defaults; an unreadable or invalid one raises ``ValueError``.
    """
    raw: dict = {}
    if path.exists():
        try:
            with path.open("rb") as handle:
                raw = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Invalid settings file {path}: {exc}") from exc
    raw = _apply_env(raw, os.environ if environ is None else environ)
    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings in {path}: {exc}") from exc
