from fastapi import Request

from agui_server.platform.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
