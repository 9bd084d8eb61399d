"""Integration test fixtures.

This module provides the FastAPI app wired with the real middleware and
routes, serving an assistant whose chat model is scripted.
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessageChunk

from agui_server.agents.assistant import AssistantAgentBuilder
from agui_server.platform.core.encoder import EventEncoder
from agui_server.platform.registry import AgentRegistry
from agui_server.platform.server.app import create_app
from agui_server.platform.server.health import HealthCheck
from agui_server.platform.settings import LitellmSettings, Settings


@pytest.fixture
def model_responses() -> list[list]:
    """Scripted model responses, one list of chunks per model call."""
    return [[AIMessageChunk(content="Hello "), AIMessageChunk(content="there")]]


@pytest.fixture
def assistant_builder(scripted_model, model_responses) -> AssistantAgentBuilder:
    return AssistantAgentBuilder(LitellmSettings(), model=scripted_model(*model_responses))


@pytest.fixture
def test_app(assistant_builder: AssistantAgentBuilder) -> FastAPI:
    """Create the app with an injected registry.

    No lifespan runs: the registry is injected so routes work without startup.
    """
    return create_app(Settings(), registry=AgentRegistry([assistant_builder]))


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    """Create a test client for the test app."""
    return TestClient(test_app)


@pytest.fixture
def client_with_health_enabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks enabled."""
    HealthCheck.enable()
    yield TestClient(test_app)
    HealthCheck.disable()


@pytest.fixture
def client_with_health_disabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks disabled."""
    HealthCheck.disable()
    yield TestClient(test_app)


@pytest.fixture
def decode_stream():
    """Decode an SSE response body into events."""
    encoder = EventEncoder()

    def decode(body: str):
        return [encoder.decode(frame) for frame in body.split("\n\n") if frame.strip()]

    return decode
