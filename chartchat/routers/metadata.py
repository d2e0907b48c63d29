"""Dataset metadata endpoints backed by the schema cache."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from chartchat.core.logger import get_logger
from chartchat.dependencies import get_schema_provider
from chartchat.errors import ChartChatError
from chartchat.powerbi.schema import render_name_only, render_simplified
from chartchat.powerbi.schema_provider import SchemaProvider
from chartchat.schemas.common import error_response

router = APIRouter(tags=["metadata"])
LOGGER = get_logger(__name__)


@router.get("/getDatasetMetadata")
async def dataset_metadata(
    refresh: bool = False,
    provider: SchemaProvider = Depends(get_schema_provider),
):
    """Full schema snapshot; ``refresh=true`` bypasses the cache."""
    try:
        snapshot = await provider.get_schema(force_refresh=refresh)
    except ChartChatError as e:
        LOGGER.error(f"Error getting dataset metadata: {str(e)}")
        return error_response(500, "Failed to get dataset metadata", e.detail or str(e))
    return JSONResponse(snapshot.to_payload())


@router.get("/getSimplifiedMetadata", response_class=PlainTextResponse)
async def simplified_metadata(provider: SchemaProvider = Depends(get_schema_provider)):
    try:
        snapshot = await provider.get_schema()
    except ChartChatError as e:
        LOGGER.error(f"Error getting simplified metadata: {str(e)}")
        return error_response(500, "Failed to get simplified metadata", e.detail or str(e))
    return PlainTextResponse(render_simplified(snapshot))


@router.get("/getNameOnlySchema", response_class=PlainTextResponse)
async def name_only_schema(provider: SchemaProvider = Depends(get_schema_provider)):
    try:
        snapshot = await provider.get_schema()
    except ChartChatError as e:
        LOGGER.error(f"Error getting name-only schema: {str(e)}")
        return error_response(500, "Failed to get name-only schema", e.detail or str(e))
    return PlainTextResponse(render_name_only(snapshot))
