"""agui-server - Streams LangChain agent runs to clients as agent event protocol events."""

from .platform.server.app import create_app
from .platform.settings import Settings


def app():
    """Create the FastAPI application instance."""
    settings = Settings()
    return create_app(settings)
