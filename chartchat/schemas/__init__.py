"""Request and response models for the HTTP API."""

from .chat import ChartStatePayload, ChatRequest, ChatResponse  # noqa: F401
from .common import ErrorResponse, error_response  # noqa: F401
from .system import HealthResponse, SystemConfigResponse  # noqa: F401

__all__ = [
    "ChartStatePayload",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "error_response",
    "HealthResponse",
    "SystemConfigResponse",
]
