"""FastAPI application factory and server lifecycle.

This module creates the FastAPI application with its middleware, routes and
the startup/shutdown handling shared by all agents.
"""

import asyncio
import logging
import os
import signal
from contextlib import asynccontextmanager

from fastapi import FastAPI

from agui_server.agents import build_agent_registry
from agui_server.platform.observability import errors as bugsnag
from agui_server.platform.observability.logging import configure_logging
from agui_server.platform.observability.metrics import prometheus_middleware
from agui_server.platform.registry import AgentRegistry
from agui_server.platform.server.health import HealthCheck
from agui_server.platform.server.middlewares import CorrelationIdMiddleware
from agui_server.platform.server.routes import root as root_router
from agui_server.platform.settings import Settings

logger = logging.getLogger(__name__)

DRAIN_SECONDS = 20


def lifespan_closure(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Initialize the shared objects of the service: error reporting,
        logging and the agent registry.
        """
        if settings.bugsnag.release_stage in ["production", "development"]:
            signal_handler = SignalHandler(app)
            signal_handler.register_signal_handler()
        await bugsnag.initialize_bugsnag(
            settings.bugsnag.api_key,
            settings.bugsnag.release_stage,
        )

        configure_logging(settings.app_http.log_level, json_output=settings.json_logs)

        app.state.settings = settings
        if getattr(app.state, "agent_registry", None) is None:
            app.state.agent_registry = build_agent_registry(settings)
        logger.info(
            "Serving agents: %s", [identity.slug for identity in app.state.agent_registry.identities()]
        )

        HealthCheck.enable()
        yield
        HealthCheck.disable()

    return lifespan


def create_app(settings: Settings, registry: AgentRegistry | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings instance
        registry: Agents to serve; built from ``settings`` at startup when omitted

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(lifespan=lifespan_closure(settings))
    app.state.settings = settings
    app.state.agent_registry = registry
    app.add_middleware(CorrelationIdMiddleware)
    app.middleware("http")(prometheus_middleware)

    # Platform routes (health, info, metrics) and agent runs
    app.include_router(root_router)

    return app


class SignalHandler:
    def __init__(self, app: FastAPI):
        self.app = app

    async def handle_exit(self):
        """
        Fail health checks, then give load balancers time to stop routing
        traffic and in-flight runs time to finish before exiting.
        """
        HealthCheck.disable()
        for _ in range(DRAIN_SECONDS):
            logger.info("Shutting down...")
            await asyncio.sleep(1)

        os.kill(os.getpid(), signal.SIGUSR1)

    def signal_handler(self):
        asyncio.create_task(self.handle_exit())

    def register_signal_handler(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in [signal.SIGINT, signal.SIGTERM]:
            loop.add_signal_handler(sig, self.signal_handler)
