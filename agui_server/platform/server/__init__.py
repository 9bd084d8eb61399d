"""HTTP server infrastructure module.

This module provides the FastAPI application factory and HTTP-related utilities:
- Application factory
- Route handlers and SSE streaming of agent runs
- Health checks
"""

from agui_server.platform.server.app import create_app
from agui_server.platform.server.health import HealthCheck

__all__ = [
    "create_app",
    "HealthCheck",
]
