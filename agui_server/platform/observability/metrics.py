"""Prometheus metrics collection and HTTP middleware.

This module provides the HTTP request duration histogram plus agent run
metrics: run outcomes, run durations and emitted protocol events.
"""

import asyncio
from time import monotonic
from types import TracebackType
from typing import NamedTuple

import prometheus_client


class HTTPLabels(NamedTuple):
    method: str
    path: str
    http_status: str


class RunMetricsLabels(NamedTuple):
    agent: str


_NXX_LUT = ["1XX", "2XX", "3XX", "4XX", "5XX"]


def http_status_nxx(status: int) -> str:
    """A coarser 2XX, 4XX, 5XX"""
    return _NXX_LUT[status // 100 - 1]


BUCKETS = (
    # log spaced, 3 per decade, 1 sig-fig
    0.0002,  # 200 μs
    0.0005,
    0.001,  # 1 ms
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    float("inf"),
)

# Model runs are far slower than HTTP handlers
RUN_BUCKETS = (0.1, 0.25, 0.5, 1, 2.5, 5, 10, 20, 40, 80, 160, 320, float("inf"))


def get_path(routes, scope) -> str:
    """Extract the matched route path from a request scope.

    Args:
        routes: List of FastAPI/Starlette route objects
        scope: ASGI request scope dictionary

    Returns:
        The matched route path template, or "path-not-found" if no match
    """
    path = "path-not-found"
    for route in routes:
        _, matches = route.matches(scope)
        if len(matches) > 0:
            path = route.path
    return path


async def prometheus_middleware(request, call_next):
    """HTTP middleware that records request duration metrics.

    For streaming responses the duration covers the time until headers are
    sent, not the whole stream.
    """
    start_time = monotonic()
    response = await call_next(request)
    elapsed_sec = monotonic() - start_time
    path = get_path(request.app.routes, request.scope)

    labels = HTTPLabels(
        method=request.method,
        path=path,
        http_status=http_status_nxx(response.status_code),
    )
    http_histogram.labels(*labels).observe(elapsed_sec)

    return response


def setup_http_metrics(registry):
    """Create the HTTP request duration histogram."""
    return prometheus_client.Histogram(
        name="http_request_duration_seconds",
        documentation="Request duration (seconds)",
        labelnames=HTTPLabels._fields,
        registry=registry,
        buckets=BUCKETS,
    )


def setup_run_metrics(registry):
    """Create the agent run counters and histogram.

    Returns:
        Tuple of (runs counter, run duration histogram, events counter)
    """
    runs_total = prometheus_client.Counter(
        name="agent_runs_total",
        documentation="Agent runs by outcome",
        labelnames=(*RunMetricsLabels._fields, "outcome"),
        registry=registry,
    )
    run_duration = prometheus_client.Histogram(
        name="agent_run_duration_seconds",
        documentation="Agent run duration (seconds)",
        labelnames=RunMetricsLabels._fields,
        registry=registry,
        buckets=RUN_BUCKETS,
    )
    events_total = prometheus_client.Counter(
        name="agent_events_total",
        documentation="Protocol events dispatched to subscribers",
        labelnames=("type",),
        registry=registry,
    )
    return runs_total, run_duration, events_total


http_histogram = setup_http_metrics(registry=prometheus_client.REGISTRY)
runs_counter, run_histogram, events_counter = setup_run_metrics(registry=prometheus_client.REGISTRY)


def record_event(event_type: str) -> None:
    events_counter.labels(type=str(event_type)).inc()


class collect_run_metrics:
    """Async context manager timing one agent run and counting its outcome.

    The outcome is ``success`` when the block exits cleanly, ``cancelled``
    when the task is cancelled and ``error`` otherwise. Exceptions are never
    suppressed.

    Usage:
        ```
        async with collect_run_metrics(RunMetricsLabels(agent="assistant")):
            await agent.run(...)
        ```
    """

    def __init__(self, labels: RunMetricsLabels) -> None:
        self.labels = labels
        self._start = 0.0

    async def __aenter__(self) -> "collect_run_metrics":
        self._start = monotonic()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc_type is None:
            outcome = "success"
        elif issubclass(exc_type, asyncio.CancelledError):
            outcome = "cancelled"
        else:
            outcome = "error"
        run_histogram.labels(*self.labels).observe(monotonic() - self._start)
        runs_counter.labels(*self.labels, outcome).inc()
        return False


def metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output for the /metrics endpoint.

    Returns:
        Tuple of (metrics_body, content_type) for the HTTP response
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
