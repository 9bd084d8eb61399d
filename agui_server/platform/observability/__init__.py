"""Observability infrastructure module.

This module provides monitoring and error tracking:
- Structured logging with correlation IDs
- Prometheus metrics
- Bugsnag error reporting
"""

from agui_server.platform.observability.errors import initialize_bugsnag
from agui_server.platform.observability.logging import (
    configure_logging,
    correlation_id_ctx,
    get_logger,
)
from agui_server.platform.observability.metrics import (
    BUCKETS,
    RunMetricsLabels,
    collect_run_metrics,
    prometheus_middleware,
)

__all__ = [
    "BUCKETS",
    "RunMetricsLabels",
    "collect_run_metrics",
    "configure_logging",
    "correlation_id_ctx",
    "get_logger",
    "initialize_bugsnag",
    "prometheus_middleware",
]
