from pathlib import Path

import pytest

from georesolve.config import DEFAULT_USER_AGENT, load_settings


def test_defaults_when_file_missing(tmp_path):
    settings = load_settings(tmp_path / "missing.toml", environ={})
    assert settings.provider.user_agent == DEFAULT_USER_AGENT
    assert settings.provider.min_interval_seconds == 1.5
    assert settings.cache.entry_ttl_seconds is None
    assert settings.cache.tombstone_ttl_seconds is None


def test_repository_settings_file_loads():
    settings = load_settings(Path("config/settings.toml"), environ={})
    assert settings.provider.base_url.startswith("https://nominatim.openstreetmap.org")
    assert settings.cache.path == Path("data/geocode-cache.json")


def test_toml_values_and_env_overrides(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text(
        "[cache]\npath = 'cache.json'\nentry_ttl_days = 90\n\n[provider]\nuser_agent = 'planner/1.0'\n",
        encoding="utf-8",
    )
    settings = load_settings(path, environ={"GEORESOLVE_CACHE_PATH": "/tmp/override.json"})
    assert settings.cache.path == Path("/tmp/override.json")
    assert settings.cache.entry_ttl_seconds == 90 * 24 * 60 * 60
    assert settings.provider.user_agent == "planner/1.0"


@pytest.mark.parametrize(
    "content",
    [
        "[provider\nuser_agent = 'x'",
        "[provider]\nuser_agent = '   '\n",
        "[provider]\nmax_connections = 0\n",
        "[cache]\ntombstone_ttl_days = -1\n",
    ],
)
def test_invalid_settings_raise_value_error(tmp_path, content):
    path = tmp_path / "settings.toml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(path, environ={})
