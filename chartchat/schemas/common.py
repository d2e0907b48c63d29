"""Error envelope shared by every JSON endpoint."""
from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


def error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    """Build the ``{error, details?}`` JSON body used for failed requests."""

    body: dict[str, Any] = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)
