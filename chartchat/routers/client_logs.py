"""Browser log forwarding; writes never fail the caller."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request, Response

from chartchat.core.logger import CLIENT_LOGGER_NAME

router = APIRouter(tags=["client-logs"])
CLIENT_LOGGER = logging.getLogger(CLIENT_LOGGER_NAME)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "log": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


async def _read_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {"message": body}


@router.post("/log-error", status_code=204)
async def log_error(request: Request) -> Response:
    body = await _read_body(request)
    try:
        CLIENT_LOGGER.error(
            "Client error: %s | source=%s line=%s stack=%s",
            body.get("message") or body.get("error"),
            body.get("source") or body.get("url"),
            body.get("lineno") or body.get("line"),
            body.get("stack"),
        )
    except Exception:  # noqa: BLE001 - logging must never fail the browser
        pass
    return Response(status_code=204)


@router.post("/log-console", status_code=204)
async def log_console(request: Request) -> Response:
    body = await _read_body(request)
    level = _LEVELS.get(str(body.get("level", "info")).lower(), logging.INFO)
    try:
        CLIENT_LOGGER.log(level, "Client console: %s", body.get("message") or body.get("args"))
    except Exception:  # noqa: BLE001 - logging must never fail the browser
        pass
    return Response(status_code=204)
