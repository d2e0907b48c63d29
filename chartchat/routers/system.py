"""Configuration, cache status and health endpoints."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from chartchat.assistant.config import llm_config
from chartchat.core.config import Settings
from chartchat.dependencies import get_app_settings, get_schema_provider
from chartchat.powerbi.schema_provider import SchemaProvider
from chartchat.schemas.system import HealthResponse, SystemConfigResponse

router = APIRouter(tags=["system"])


@router.get("/system/config", response_model=SystemConfigResponse, response_model_by_alias=True)
async def system_config(settings: Settings = Depends(get_app_settings)) -> SystemConfigResponse:
    """Workspace, dataset and report identifiers for the embed."""

    return SystemConfigResponse(
        workspace_id=settings.powerbi.group_id,
        dataset_id=settings.powerbi.dataset_id,
        report_id=settings.powerbi.report_id,
    )


@router.get("/system/cache")
async def cache_status(provider: SchemaProvider = Depends(get_schema_provider)) -> dict:
    return provider.cache_info()


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Health check endpoint"""

    return HealthResponse(
        status="healthy",
        service="chartchat",
        configuration={
            "powerbi": settings.powerbi.has_credentials and settings.powerbi.has_dataset,
            "llm": llm_config.azure_configured or llm_config.openai_configured,
        },
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
