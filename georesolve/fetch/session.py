"""Factories for httpx sessions used against geocoding providers."""
from __future__ import annotations

import contextlib
from typing import AsyncIterator, Optional

import httpx


def build_headers(user_agent: str) -> dict[str, str]:
    """Identification headers required by the provider's usage policy."""
    if not user_agent or not user_agent.strip():
        raise ValueError("A descriptive User-Agent is required for geocoding requests")
    return {"User-Agent": user_agent, "Accept": "application/json"}


@contextlib.asynccontextmanager
async def create_geocode_session(
    *,
    user_agent: str,
    timeout: float,
    max_connections: int,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield a configured `httpx.AsyncClient` for the duration of the context."""
    limits = httpx.Limits(max_connections=max_connections, max_keepalive_connections=max_connections)
    async with httpx.AsyncClient(
        headers=build_headers(user_agent),
        limits=limits,
        timeout=timeout,
        transport=transport,
        follow_redirects=True,
    ) as client:
        yield client
