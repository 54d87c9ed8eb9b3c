"""Tracing helpers for provider lookups and batch runs."""
from __future__ import annotations

import contextlib
import time
from typing import Iterator, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def _logger():
    return structlog.get_logger("georesolve.trace")


def set_context(*, batch_id: str, size: int) -> None:
    bind_contextvars(batch_id=batch_id)
    _logger().debug("trace_context", batch_id=batch_id, size=size)


def clear_context() -> None:
    clear_contextvars()


@contextlib.contextmanager
def span(*, name: str, query: Optional[str] = None) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        _logger().info("trace_span", span=name, query=query, elapsed_ms=elapsed_ms)


def log_lookup_result(*, query: str, status: Optional[int], found: bool, elapsed_ms: int) -> None:
    _logger().info(
        "lookup_result",
        query=query,
        status=status,
        found=found,
        elapsed_ms=elapsed_ms,
    )
