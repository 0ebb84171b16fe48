from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from prometheus_client import CollectorRegistry, Counter, Histogram

_REGISTRY = CollectorRegistry()
_COUNTERS: dict[tuple[str, tuple[str, ...]], Counter] = {}
_HISTS: dict[tuple[str, tuple[str, ...]], Histogram] = {}

# global switch: metrics can be turned off entirely (e.g. in unit tests)
_DISABLED = os.environ.get("METRICS_DISABLED", "0") == "1"


def reset_registry() -> None:
    """Reset the registry (tests)."""
    global _REGISTRY, _COUNTERS, _HISTS
    _REGISTRY = CollectorRegistry()
    _COUNTERS = {}
    _HISTS = {}


def _sanitize_name(name: str) -> str:
    """Prometheus naming: dots/dashes -> underscores."""
    return name.replace(".", "_").replace("-", "_")


def _key(name: str, labs: dict[str, str]) -> tuple[str, tuple[str, ...]]:
    return (name, tuple(sorted(labs)))


def _buckets_ms() -> tuple[float, ...]:
    env = os.environ.get("METRICS_BUCKETS_MS", "5,10,25,50,100,250,500,1000,2500")
    try:
        vals = [float(x.strip()) for x in env.split(",") if x.strip()]
    except ValueError:
        vals = [5, 10, 25, 50, 100, 250, 500, 1000, 2500]
    # prometheus expects seconds
    return tuple(v / 1000.0 for v in vals)


def _ensure_counter(name: str, labs: dict[str, str]) -> Any:
    k = _key(name, labs)
    if k not in _COUNTERS:
        try:
            _COUNTERS[k] = Counter(name, name, sorted(labs), registry=_REGISTRY)
        except ValueError:
            # same name already registered with other label names
            return None
    return _COUNTERS[k].labels(**labs) if labs else _COUNTERS[k]


def _ensure_hist(name: str, labs: dict[str, str]) -> Any:
    k = _key(name, labs)
    if k not in _HISTS:
        try:
            _HISTS[k] = Histogram(name, name, sorted(labs), buckets=_buckets_ms(), registry=_REGISTRY)
        except ValueError:
            return None
    return _HISTS[k].labels(**labs) if labs else _HISTS[k]


# -------------------- PUBLIC API --------------------


def inc(name: str, **labels: Any) -> None:
    """Counter +1"""
    if _DISABLED:
        return
    c = _ensure_counter(_sanitize_name(name), {k: str(v) for k, v in labels.items()})
    if c is not None:
        c.inc()


def observe(name: str, value_ms: float, labels: dict[str, Any] | None = None) -> None:
    """Observe a latency in milliseconds (stored as seconds)."""
    if _DISABLED:
        return
    h = _ensure_hist(_sanitize_name(name), {k: str(v) for k, v in (labels or {}).items()})
    if h is not None:
        h.observe(float(value_ms) / 1000.0)


@asynccontextmanager
async def atimer(name: str, **labels: Any) -> AsyncIterator[None]:
    """
    Async timer:
        async with atimer("command.latency.ms", command="balance"):
            await handler(message)
    """
    if _DISABLED:
        yield
        return
    t0 = time.perf_counter()
    try:
        yield
    finally:
        observe(name, (time.perf_counter() - t0) * 1000.0, labels)
