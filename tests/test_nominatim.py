import asyncio

import httpx
import pytest

from georesolve.fetch.nominatim import NominatimClient
from georesolve.fetch.session import build_headers, create_geocode_session
from georesolve.observability.metrics import MetricsRegistry
from georesolve.storage.models import Coordinate


def _lookup(handler, address, *, metrics=None):
    seen = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    async def _run():
        async with create_geocode_session(
            user_agent="georesolve-tests/1.0",
            timeout=5.0,
            max_connections=2,
            transport=httpx.MockTransport(_record),
        ) as session:
            client = NominatimClient(session, min_interval=0, metrics=metrics)
            return await client.lookup(address)

    return asyncio.run(_run()), seen


def test_first_candidate_is_returned():
    def handler(request):
        return httpx.Response(
            200,
            json=[
                {"lat": "52.5200", "lon": "13.4050", "display_name": "Berlin, Deutschland"},
                {"lat": "1.0", "lon": "1.0", "display_name": "Elsewhere"},
            ],
        )

    result, seen = _lookup(handler, "Berlin, Germany")
    assert result == Coordinate(52.52, 13.405)
    request = seen[0]
    assert request.url.params["q"] == "Berlin, Germany"
    assert request.url.params["format"] == "json"
    assert request.url.params["limit"] == "1"
    assert "Berlin%2C" in str(request.url) or "Berlin%2c" in str(request.url)
    assert request.headers["User-Agent"] == "georesolve-tests/1.0"


def test_empty_candidate_list_returns_none():
    metrics = MetricsRegistry()
    result, _ = _lookup(lambda request: httpx.Response(200, json=[]), "NonexistentPlace12345", metrics=metrics)
    assert result is None
    assert metrics.get("provider_empty") == 1
    assert metrics.get("provider_failures") == 0


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(429, json=[]),
        httpx.Response(200, text="<html>busy</html>"),
        httpx.Response(200, json={"error": "Unable to geocode"}),
        httpx.Response(200, json=[{"lat": "north", "lon": "13.4"}]),
        httpx.Response(200, json=[{"lat": "95.0", "lon": "13.4"}]),
        httpx.Response(200, json=[{"display_name": "No coordinates"}]),
    ],
)
def test_failures_return_none(response):
    metrics = MetricsRegistry()
    result, _ = _lookup(lambda request: response, "Some Address", metrics=metrics)
    assert result is None
    assert metrics.get("provider_failures") == 1


def test_network_error_returns_none():
    def handler(request):
        raise httpx.ConnectError("Network error", request=request)

    result, _ = _lookup(handler, "Some Address")
    assert result is None


def test_timeout_returns_none():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result, _ = _lookup(handler, "Some Address")
    assert result is None


def test_blank_address_skips_network():
    result, seen = _lookup(lambda request: httpx.Response(200, json=[]), "   ")
    assert result is None
    assert seen == []


def test_requests_are_spaced():
    stamps = []

    async def _run():
        loop = asyncio.get_running_loop()

        def handler(request):
            stamps.append(loop.time())
            return httpx.Response(200, json=[])

        async with create_geocode_session(
            user_agent="georesolve-tests/1.0",
            timeout=5.0,
            max_connections=4,
            transport=httpx.MockTransport(handler),
        ) as session:
            client = NominatimClient(session, min_interval=0.05)
            await asyncio.gather(*(client.lookup(f"Place {i}") for i in range(3)))

    asyncio.run(_run())
    assert len(stamps) == 3
    gaps = [later - earlier for earlier, later in zip(stamps, stamps[1:])]
    assert all(gap >= 0.04 for gap in gaps)


def test_blank_user_agent_rejected():
    with pytest.raises(ValueError):
        build_headers("  ")
