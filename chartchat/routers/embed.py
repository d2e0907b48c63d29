"""Embed token endpoint for the browser-side report."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from chartchat.core.logger import get_logger
from chartchat.dependencies import get_powerbi_client
from chartchat.errors import ChartChatError, ConfigurationError
from chartchat.powerbi.client import PowerBIClient
from chartchat.schemas.common import error_response

router = APIRouter(tags=["embed"])
LOGGER = get_logger(__name__)


@router.get("/getEmbedToken")
async def embed_token(
    reportId: Optional[str] = None,
    client: PowerBIClient = Depends(get_powerbi_client),
):
    """Access token and embed URL for ``reportId`` or the configured report."""
    try:
        info = await client.get_embed_info(reportId)
    except ConfigurationError as e:
        LOGGER.warning(f"Embed token request rejected: {str(e)}")
        return error_response(400, str(e))
    except ChartChatError as e:
        LOGGER.error(f"Error generating embed token: {str(e)} ({e.detail})")
        return error_response(500, "Failed to generate embed token", str(e))
    except KeyError as e:
        LOGGER.error(f"Report lookup returned no {e}")
        return error_response(500, "Failed to generate embed token", f"Report response missing {e}")
    return JSONResponse(info)
