"""
Power BI REST client
Service principal token acquisition, DAX metadata queries and embed tokens
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx

from chartchat.core.config import PowerBISettings
from chartchat.core.logger import get_logger
from chartchat.errors import ConfigurationError, UpstreamError

from .schema import SchemaSnapshot, normalize_metadata

logger = get_logger(__name__)

TABLES_QUERY = "EVALUATE INFO.VIEW.TABLES()"
COLUMNS_QUERY = "EVALUATE INFO.VIEW.COLUMNS()"
MEASURES_QUERY = "EVALUATE INFO.VIEW.MEASURES()"

# Refresh the AAD token this many seconds before it actually expires.
TOKEN_EXPIRY_MARGIN = 60


class PowerBIClient:
    """Thin async wrapper over the Power BI REST endpoints the service needs."""

    def __init__(
        self,
        settings: PowerBISettings,
        *,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock=time.monotonic,
    ):
        self.settings = settings
        self.timeout = timeout
        self.transport = transport
        self._clock = clock
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def get_access_token(self) -> str:
        """Return a cached client-credentials token, fetching a new one when due."""

        async with self._token_lock:
            if self._token and self._clock() < self._token_expires_at:
                return self._token

            if not self.settings.has_credentials:
                raise ConfigurationError(
                    "Power BI service principal is not configured. "
                    "Set TENANT_ID, CLIENT_ID and CLIENT_SECRET."
                )

            form = {
                "grant_type": "client_credentials",
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
                "scope": self.settings.scope_base,
            }
            try:
                async with self._client() as client:
                    response = await client.post(self.settings.token_url, data=form)
                    response.raise_for_status()
                    data = response.json()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Token request returned %s: %s", e.response.status_code, e.response.text
                )
                raise UpstreamError(
                    "Authentication failed", detail=e.response.text
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"Token request failed: {str(e)}")
                raise UpstreamError("Authentication failed", detail=str(e)) from e
            except ValueError as e:
                raise UpstreamError("Authentication failed", detail="Token response is not JSON") from e

            token = data.get("access_token")
            if not token:
                raise UpstreamError("Authentication failed", detail="No access_token in response")

            expires_in = float(data.get("expires_in", 3600))
            self._token = token
            self._token_expires_at = self._clock() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
            return token

    async def _headers(self) -> Dict[str, str]:
        token = await self.get_access_token()
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.settings.api_base}{path}"
        headers = await self._headers()
        logger.debug("%s %s", method, url)
        try:
            async with self._client() as client:
                response = await client.request(method, url, headers=headers, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            body = e.response.text
            request_id = e.response.headers.get("requestid")
            logger.error(
                "Power BI returned %s for %s (requestid=%s): %s",
                e.response.status_code,
                url,
                request_id,
                body,
            )
            raise UpstreamError(
                f"Power BI request failed with status {e.response.status_code}",
                detail=body,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Power BI request failed for {url}: {str(e)}")
            raise UpstreamError("Power BI request failed", detail=str(e)) from e
        except ValueError as e:
            logger.error(f"Power BI returned a non-JSON body for {url}: {str(e)}")
            raise UpstreamError("Power BI returned an invalid response", detail=str(e)) from e

    async def execute_dax(self, group_id: str, dataset_id: str, query: str) -> Dict[str, Any]:
        """Run a single DAX query and return its first result entry."""

        payload = {
            "queries": [{"query": query}],
            "serializerSettings": {"includeNulls": True},
        }
        data = await self._request(
            "POST",
            f"/groups/{group_id}/datasets/{dataset_id}/executeQueries",
            json=payload,
        )
        results = data.get("results") or [{}]
        return results[0]

    async def get_report(self, group_id: str, report_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/groups/{group_id}/reports/{report_id}")

    async def resolve_dataset_id(self) -> str:
        """Use the configured dataset id, or derive it from the configured report."""

        if self.settings.dataset_id:
            return self.settings.dataset_id
        if not self.settings.report_id:
            raise ConfigurationError("datasetId is required")
        report = await self.get_report(self.settings.group_id, self.settings.report_id)
        dataset_id = report.get("datasetId")
        if not dataset_id:
            raise UpstreamError("Could not determine dataset ID")
        return dataset_id

    async def fetch_schema(self) -> SchemaSnapshot:
        """Query tables, columns and measures and normalise them into a snapshot."""

        group_id = self.settings.group_id
        if not group_id:
            raise ConfigurationError("groupId is required")
        dataset_id = await self.resolve_dataset_id()

        # Sequential on purpose: the REST API throttles parallel executeQueries.
        tables = await self.execute_dax(group_id, dataset_id, TABLES_QUERY)
        columns = await self.execute_dax(group_id, dataset_id, COLUMNS_QUERY)
        measures = await self.execute_dax(group_id, dataset_id, MEASURES_QUERY)
        return normalize_metadata(tables, columns, measures)

    async def generate_embed_token(
        self,
        report_id: str,
        dataset_ids: List[str],
        workspace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "reports": [{"id": report_id, "allowEdit": True}],
            "datasets": [{"id": dataset_id} for dataset_id in dataset_ids],
        }
        if workspace_id:
            payload["targetWorkspaces"] = [{"id": workspace_id}]
        return await self._request("POST", "/GenerateToken", json=payload)

    async def get_embed_info(self, report_id: Optional[str] = None) -> Dict[str, Any]:
        """Return the access token, embed URLs and expiry for a report."""

        target_report_id = report_id or self.settings.report_id
        if not target_report_id:
            raise ConfigurationError("No report ID provided and no default configured")

        group_id = self.settings.group_id
        report = await self.get_report(group_id, target_report_id)
        embed_token = await self.generate_embed_token(
            target_report_id, [report["datasetId"]], group_id
        )
        return {
            "accessToken": embed_token.get("token"),
            "embedUrl": [
                {
                    "id": report.get("id"),
                    "name": report.get("name"),
                    "embedUrl": report.get("embedUrl"),
                }
            ],
            "expiry": embed_token.get("expiration"),
        }
