"""Structural types for the embedding SDK objects the mutation engine drives.

Any binding to the Power BI JavaScript SDK (a browser bridge, a Playwright
page, a recorded fake in tests) can be passed in as long as it exposes these
awaitable methods.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from chartchat.assistant.types import SUPPORTED_CHART_TYPES, parse_field_ref

MEASURE_SCHEMA = "http://powerbi.com/product/schema#measure"
COLUMN_SCHEMA = "http://powerbi.com/product/schema#column"

ROLE_VALUES = "Y"
ROLE_CATEGORY = "Category"
GROUPING_ROLES: tuple[str, ...] = ("Legend", "Series", "ColumnSeries")

# Starter visual created once the report structure has loaded.
DEFAULT_VISUAL_TYPE = "lineChart"
DEFAULT_VISUAL_LAYOUT: Dict[str, Any] = {
    "width": 1242,
    "height": 682,
    "x": 19,
    "y": 18,
    "displayState": {"mode": 0},
}


@runtime_checkable
class VisualHandle(Protocol):
    type: str
    title: Optional[str]

    async def getDataFields(self, role: str) -> List[Mapping[str, Any]]: ...

    async def addDataField(self, role: str, target: Mapping[str, Any]) -> Any: ...

    async def removeDataField(self, role: str, index: int) -> Any: ...

    async def changeType(self, new_type: str) -> Any: ...


class PageHandle(Protocol):
    isActive: bool
    displayName: Optional[str]

    async def getVisuals(self) -> Sequence[VisualHandle]: ...

    async def createVisual(self, visual_type: str, layout: Mapping[str, Any]) -> Any: ...


class ReportHandle(Protocol):
    async def getPages(self) -> Sequence[PageHandle]: ...


def is_supported_visual(visual: VisualHandle) -> bool:
    return getattr(visual, "type", None) in SUPPORTED_CHART_TYPES


def measure_target(reference: str) -> Dict[str, Optional[str]]:
    table, field = parse_field_ref(reference)
    return {"$schema": MEASURE_SCHEMA, "table": table, "measure": field}


def column_target(reference: str) -> Dict[str, Optional[str]]:
    table, field = parse_field_ref(reference)
    return {"$schema": COLUMN_SCHEMA, "table": table, "column": field}


def target_reference(target: Mapping[str, Any]) -> Optional[str]:
    """Turn a bound field descriptor back into ``Table.Field``."""

    name = target.get("measure") or target.get("column") or target.get("hierarchy")
    if not name:
        return None
    table = target.get("table")
    return f"{table}.{name}" if table else name
