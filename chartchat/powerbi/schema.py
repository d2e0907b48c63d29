"""Normalised dataset schema built from Power BI ``INFO.VIEW`` DAX results.

The snapshot keeps two projections of the same facts: tables with nested
columns, and flat ``measures``/``dimensions`` lists for prompt and UI lookups.
Both are produced by a single pass in :func:`normalize_metadata` so they cannot
drift apart. Snapshots are immutable; refreshing the cache builds a new one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional

from chartchat.assistant.types import parse_field_ref

TableType = Literal["fact", "dimension", "unknown"]
ColumnType = Literal["number", "currency", "date", "text", "geography", "measure"]

_NUMBER_TYPES = {"int64", "integer", "whole number", "double", "decimal", "number"}
_CURRENCY_TYPES = {"currency", "fixed decimal number", "fixeddecimal"}
_DATE_TYPES = {"datetime", "date", "time", "datetimezone"}
_GEOGRAPHY_CATEGORIES = {
    "address",
    "city",
    "continent",
    "country",
    "countryregion",
    "county",
    "latitude",
    "longitude",
    "place",
    "postalcode",
    "stateorprovince",
}


@dataclass(frozen=True)
class Column:
    name: str
    type: ColumnType
    description: str = ""
    data_type: str = ""

    @property
    def is_measure(self) -> bool:
        return self.type == "measure"


@dataclass(frozen=True)
class Table:
    name: str
    type: TableType
    columns: tuple[Column, ...] = ()
    description: str = ""

    def column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


@dataclass(frozen=True)
class FieldInfo:
    table: str
    name: str
    data_type: str
    description: str = ""

    @property
    def reference(self) -> str:
        return f"{self.table}.{self.name}"


@dataclass(frozen=True)
class SchemaSnapshot:
    dataset_name: str
    tables: tuple[Table, ...]
    measures: tuple[FieldInfo, ...]
    dimensions: tuple[FieldInfo, ...]
    last_updated: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def table(self, name: str) -> Optional[Table]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def resolve(self, reference: str) -> Optional[Column]:
        """Find the column behind ``Table.Column`` (or a unique bare name)."""

        table_name, column_name = parse_field_ref(reference)
        if table_name is not None:
            table = self.table(table_name)
            return table.column(column_name) if table else None

        matches = [
            column
            for table in self.tables
            for column in table.columns
            if column.name == column_name
        ]
        return matches[0] if len(matches) == 1 else None

    def has_field(self, reference: str) -> bool:
        return self.resolve(reference) is not None

    def field_references(self) -> list[str]:
        return [
            f"{table.name}.{column.name}"
            for table in self.tables
            for column in table.columns
        ]

    def to_payload(self) -> Dict[str, Any]:
        """Serialise with the camelCase keys the browser client expects."""

        def _field(info: FieldInfo) -> Dict[str, str]:
            return {
                "table": info.table,
                "name": info.name,
                "dataType": info.data_type,
                "description": info.description,
            }

        return {
            "dataset": {"name": self.dataset_name},
            "lastUpdated": self.last_updated,
            "tables": [
                {
                    "name": table.name,
                    "type": table.type,
                    "description": table.description,
                    "columns": [
                        {
                            "name": column.name,
                            "type": column.type,
                            "dataType": column.data_type,
                            "description": column.description,
                            **({"isMeasure": True} if column.is_measure else {}),
                        }
                        for column in table.columns
                    ],
                }
                for table in self.tables
            ],
            "measures": [_field(item) for item in self.measures],
            "dimensions": [_field(item) for item in self.dimensions],
        }


def semantic_column_type(data_type: Optional[str], data_category: Optional[str] = None) -> ColumnType:
    """Map a raw Power BI data type / data category to a semantic column type."""

    category = (data_category or "").replace(" ", "").lower()
    if category in _GEOGRAPHY_CATEGORIES:
        return "geography"

    lowered = (data_type or "").strip().lower()
    if lowered in _CURRENCY_TYPES:
        return "currency"
    if lowered in _NUMBER_TYPES:
        return "number"
    if lowered in _DATE_TYPES:
        return "date"
    return "text"


def _rows(result: Optional[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Extract the row list from an ``executeQueries`` result entry."""

    if not result:
        return []
    tables = result.get("tables") or []
    if not tables:
        return []
    return list(tables[0].get("rows") or [])


def _value(row: Mapping[str, Any], key: str) -> Any:
    # DAX results key columns as "[Name]"; some gateways strip the brackets.
    if f"[{key}]" in row:
        return row[f"[{key}]"]
    return row.get(key)


def _is_hidden(row: Mapping[str, Any], *keys: str) -> bool:
    return any(bool(_value(row, key)) for key in keys)


class _TableBuilder:
    def __init__(self, name: str, description: str, table_type: TableType) -> None:
        self.name = name
        self.description = description
        self.type: TableType = table_type
        self.columns: list[Column] = []
        self.has_dimensions = False

    def build(self) -> Table:
        table_type = self.type
        if table_type == "unknown" and self.columns:
            table_type = "dimension" if self.has_dimensions else "fact"
        return Table(
            name=self.name,
            type=table_type,
            columns=tuple(self.columns),
            description=self.description,
        )


def normalize_metadata(
    tables_result: Optional[Mapping[str, Any]],
    columns_result: Optional[Mapping[str, Any]],
    measures_result: Optional[Mapping[str, Any]],
    dataset_name: str = "Dynamic Dataset",
) -> SchemaSnapshot:
    """Combine the three ``INFO.VIEW`` result sets into one snapshot.

    Hidden and private tables, hidden columns and hidden measures are dropped.
    Measures whose home table is not listed get a synthetic fact table.
    """

    builders: Dict[str, _TableBuilder] = {}
    order: list[str] = []

    for row in _rows(tables_result):
        name = _value(row, "Name")
        if not name or _is_hidden(row, "IsHidden", "IsPrivate"):
            continue
        if name in builders:
            continue
        builders[name] = _TableBuilder(
            name=name,
            description=_value(row, "Description") or "",
            table_type="unknown",
        )
        order.append(name)

    dimensions: list[FieldInfo] = []
    for row in _rows(columns_result):
        table_name = _value(row, "Table")
        builder = builders.get(table_name)
        column_name = _value(row, "Name")
        if builder is None or not column_name or _is_hidden(row, "IsHidden"):
            continue
        raw_type = str(_value(row, "DataType") or "text").lower()
        description = _value(row, "Description") or f"{column_name} column from {table_name} table"
        column = Column(
            name=column_name,
            type=semantic_column_type(raw_type, _value(row, "DataCategory")),
            description=description,
            data_type=raw_type,
        )
        builder.columns.append(column)
        builder.has_dimensions = True
        dimensions.append(
            FieldInfo(
                table=table_name,
                name=column.name,
                data_type=raw_type,
                description=description,
            )
        )

    measures: list[FieldInfo] = []
    for row in _rows(measures_result):
        measure_name = _value(row, "Name")
        if not measure_name or _is_hidden(row, "IsHidden"):
            continue
        table_name = _value(row, "Table") or "Unknown"
        raw_type = str(_value(row, "DataType") or "number").lower()
        description = _value(row, "Description") or f"{measure_name} measure"

        builder = builders.get(table_name)
        if builder is None:
            builder = _TableBuilder(table_name, f"{table_name} measures", "fact")
            builders[table_name] = builder
            order.append(table_name)
        builder.columns.append(
            Column(
                name=measure_name,
                type="measure",
                description=description,
                data_type=raw_type,
            )
        )
        measures.append(
            FieldInfo(
                table=table_name,
                name=measure_name,
                data_type=raw_type,
                description=description,
            )
        )

    return SchemaSnapshot(
        dataset_name=dataset_name,
        tables=tuple(builders[name].build() for name in order),
        measures=tuple(measures),
        dimensions=tuple(dimensions),
    )


def render_name_only(schema: SchemaSnapshot) -> str:
    """One ``Table.Column [type]`` line per column, for LLM grounding."""

    return "\n".join(
        f"{table.name}.{column.name} [{column.type}]"
        for table in schema.tables
        for column in table.columns
    )


def render_simplified(schema: SchemaSnapshot) -> str:
    """Human-readable outline of tables, measures and dimensions."""

    lines = [
        f"Dataset: {schema.dataset_name}",
        f"Last Updated: {schema.last_updated}",
        "",
        "Tables:",
    ]
    for table in schema.tables:
        lines.append(f"- {table.name} ({table.type}):")
        for column in table.columns:
            lines.append(f"  - {column.name} ({column.type}): {column.description}")

    if schema.measures:
        lines.extend(["", "Measures:"])
        lines.extend(
            f"- {m.name} (table: {m.table}, type: {m.data_type}): {m.description}"
            for m in schema.measures
        )

    if schema.dimensions:
        lines.extend(["", "Dimensions:"])
        lines.extend(
            f"- {d.name} (table: {d.table}, type: {d.data_type}): {d.description}"
            for d in schema.dimensions
        )
    return "\n".join(lines) + "\n"


def snapshot_from_tables(
    tables: Iterable[Table], dataset_name: str = "Dataset"
) -> SchemaSnapshot:
    """Build a snapshot from already-typed tables, deriving the flat views."""

    tables = tuple(tables)
    measures = tuple(
        FieldInfo(table.name, column.name, column.data_type or "number", column.description)
        for table in tables
        for column in table.columns
        if column.is_measure
    )
    dimensions = tuple(
        FieldInfo(table.name, column.name, column.data_type or column.type, column.description)
        for table in tables
        for column in table.columns
        if not column.is_measure
    )
    return SchemaSnapshot(
        dataset_name=dataset_name,
        tables=tables,
        measures=measures,
        dimensions=dimensions,
    )
