"""Schemas for status and configuration endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SystemConfigResponse(BaseModel):
    """Identifiers the browser needs to embed the report."""

    model_config = ConfigDict(populate_by_name=True)

    workspace_id: str = Field(alias="workspaceId")
    dataset_id: str = Field(alias="datasetId")
    report_id: str = Field(alias="reportId")


class HealthResponse(BaseModel):
    status: str
    service: str
    configuration: dict[str, bool]
    timestamp: str
