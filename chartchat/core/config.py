"""Service configuration loaded from ``config/config.json`` and the environment."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
env_path = PROJECT_ROOT / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "config.json"
METADATA_CACHE_SECONDS = 5 * 60


@dataclass(slots=True)
class PowerBISettings:
    """Service principal and workspace identifiers used against Power BI."""

    tenant_id: str
    client_id: str
    client_secret: str
    authority_url: str
    scope_base: str
    group_id: str
    report_id: str
    dataset_id: str
    api_base: str = "https://api.powerbi.com/v1.0/myorg"

    @property
    def token_url(self) -> str:
        """Client-credentials token endpoint for the configured tenant."""

        authority = self.authority_url.rstrip("/") + "/"
        return f"{authority}{self.tenant_id}/oauth2/v2.0/token"

    @property
    def has_credentials(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)

    @property
    def has_dataset(self) -> bool:
        return bool(self.group_id and (self.dataset_id or self.report_id))


@dataclass(slots=True)
class CacheSettings:
    """Schema cache timing, in seconds."""

    schema_ttl: float = METADATA_CACHE_SECONDS
    schema_grace: float = METADATA_CACHE_SECONDS


@dataclass(slots=True)
class Settings:
    """Top-level application configuration container."""

    powerbi: PowerBISettings
    cache: CacheSettings
    log_level: str = "INFO"

    @classmethod
    def from_sources(
        cls,
        file_values: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """Merge JSON file values with environment fallbacks.

        A non-empty value in the JSON file wins; otherwise the environment
        variable is used, then the default.
        """

        file_values = file_values or {}
        env = os.environ if environ is None else environ

        def _get(key: str, env_key: str, default: str = "") -> str:
            value = file_values.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if value not in (None, "") and not isinstance(value, str):
                return str(value)
            return env.get(env_key, default)

        group_id = _get("powerBIGroupId", "POWERBI_GROUP_ID") or _get(
            "powerBIWorkspaceId", "POWERBI_WORKSPACE_ID"
        )
        powerbi = PowerBISettings(
            tenant_id=_get("tenantId", "TENANT_ID"),
            client_id=_get("clientId", "CLIENT_ID"),
            client_secret=_get("clientSecret", "CLIENT_SECRET"),
            authority_url=_get(
                "authorityUrl", "AUTHORITY_URL", "https://login.microsoftonline.com/"
            ),
            scope_base=_get(
                "scopeBase",
                "SCOPE_BASE",
                "https://analysis.windows.net/powerbi/api/.default",
            ),
            group_id=group_id,
            report_id=_get("powerBIReportId", "POWERBI_REPORT_ID"),
            dataset_id=_get("powerBIDatasetId", "POWERBI_DATASET_ID"),
        )
        cache = CacheSettings(
            schema_ttl=float(_get("schemaCacheSeconds", "SCHEMA_CACHE_SECONDS", str(METADATA_CACHE_SECONDS))),
            schema_grace=float(_get("schemaGraceSeconds", "SCHEMA_GRACE_SECONDS", str(METADATA_CACHE_SECONDS))),
        )
        return cls(
            powerbi=powerbi,
            cache=cache,
            log_level=_get("logLevel", "LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "Settings":
        """Load ``config.json`` when present and apply environment fallbacks."""

        config_path = Path(path or os.getenv("CHARTCHAT_CONFIG", DEFAULT_CONFIG_PATH))
        file_values: dict[str, Any] = {}
        if config_path.is_file():
            with config_path.open("r", encoding="utf-8") as handle:
                file_values = json.load(handle) or {}
        return cls.from_sources(file_values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_file()

    # Import locally to avoid circular dependencies during module import time.
    from .logger import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "powerbi": {
                "group_id": settings.powerbi.group_id,
                "report_id": settings.powerbi.report_id,
                "dataset_id": settings.powerbi.dataset_id,
                "has_credentials": settings.powerbi.has_credentials,
            },
            "cache": {
                "schema_ttl": settings.cache.schema_ttl,
                "schema_grace": settings.cache.schema_grace,
            },
        },
    )
    return settings
