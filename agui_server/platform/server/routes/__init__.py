from fastapi import APIRouter

from agui_server.platform.server.routes.base import base_router
from agui_server.platform.server.routes.runs import runs_router

root = APIRouter()
root.include_router(base_router)
root.include_router(runs_router)
