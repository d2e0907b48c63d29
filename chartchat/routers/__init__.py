"""FastAPI routers for the chart chat service."""

from .chat import router as chat_router
from .client_logs import router as client_logs_router
from .embed import router as embed_router
from .metadata import router as metadata_router
from .system import router as system_router

__all__ = [
    "chat_router",
    "client_logs_router",
    "embed_router",
    "metadata_router",
    "system_router",
]
