"""Typed structures shared by the prompt, interpreter and mutation layers."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Deque, Iterable, Literal, Mapping, Optional

if TYPE_CHECKING:
    from chartchat.powerbi.schema import SchemaSnapshot

SUPPORTED_CHART_TYPES: tuple[str, ...] = (
    "columnChart",
    "clusteredColumnChart",
    "barChart",
    "lineChart",
    "areaChart",
    "pieChart",
    "donutChart",
    "stackedColumnChart",
)

HISTORY_WINDOW = 4


def parse_field_ref(reference: str) -> tuple[Optional[str], str]:
    """Split ``Table.Field`` into its parts; a bare ``Field`` has no table."""

    table, dot, field = reference.strip().partition(".")
    if not dot:
        return None, table
    return table or None, field


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class ChartAction:
    """Structured chart mutation returned by the model."""

    y_axis: str
    x_axis: str
    chart_type: str
    series: Optional[str] = None

    @property
    def is_supported_type(self) -> bool:
        return self.chart_type in SUPPORTED_CHART_TYPES

    def to_payload(self) -> dict[str, str]:
        payload = {
            "yAxis": self.y_axis,
            "xAxis": self.x_axis,
            "chartType": self.chart_type,
        }
        if self.series:
            payload["series"] = self.series
        return payload


@dataclass(frozen=True)
class ChartState:
    """Chart configuration the session believes the live visual has."""

    y_axis: Optional[str] = None
    x_axis: Optional[str] = None
    chart_type: Optional[str] = None
    series: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "ChartState":
        if not payload:
            return cls()
        return cls(
            y_axis=_optional_str(payload.get("yAxis")),
            x_axis=_optional_str(payload.get("xAxis")),
            chart_type=_optional_str(payload.get("chartType")),
            series=_optional_str(payload.get("series")),
        )

    def to_payload(self) -> dict[str, Optional[str]]:
        return {
            "yAxis": self.y_axis,
            "xAxis": self.x_axis,
            "chartType": self.chart_type,
            "series": self.series,
        }

    @property
    def is_empty(self) -> bool:
        return not any((self.y_axis, self.x_axis, self.chart_type, self.series))

    def merged(self, action: ChartAction) -> "ChartState":
        """Overwrite only the fields the action carries."""

        return replace(
            self,
            y_axis=action.y_axis or self.y_axis,
            x_axis=action.x_axis or self.x_axis,
            chart_type=action.chart_type or self.chart_type,
            series=action.series or self.series,
        )

    def unresolved_fields(self, schema: "SchemaSnapshot") -> list[str]:
        """Return the set field references that the schema does not contain."""

        return [
            reference
            for reference in (self.y_axis, self.x_axis, self.series)
            if reference and not schema.has_field(reference)
        ]


@dataclass(frozen=True)
class ChatTurn:
    role: Literal["user", "assistant"]
    content: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Optional["ChatTurn"]:
        role = payload.get("role")
        content = payload.get("content")
        if role not in ("user", "assistant") or not isinstance(content, str):
            return None
        return cls(role=role, content=content)

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ChatHistory:
    """Rolling window of the most recent chat turns; older turns are dropped."""

    def __init__(self, turns: Iterable[ChatTurn] = (), maxlen: int = HISTORY_WINDOW) -> None:
        self._turns: Deque[ChatTurn] = deque(turns, maxlen=maxlen)

    @classmethod
    def from_payload(
        cls, payload: Optional[Iterable[Mapping[str, Any]]], maxlen: int = HISTORY_WINDOW
    ) -> "ChatHistory":
        turns = []
        for item in payload or ():
            if isinstance(item, Mapping):
                turn = ChatTurn.from_payload(item)
                if turn is not None:
                    turns.append(turn)
        return cls(turns, maxlen=maxlen)

    def add(self, role: Literal["user", "assistant"], content: str) -> None:
        self._turns.append(ChatTurn(role=role, content=content))

    def turns(self) -> list[ChatTurn]:
        return list(self._turns)

    def to_payload(self) -> list[dict[str, str]]:
        return [turn.to_payload() for turn in self._turns]

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(self._turns)


__all__ = [
    "SUPPORTED_CHART_TYPES",
    "HISTORY_WINDOW",
    "ChartAction",
    "ChartState",
    "ChatHistory",
    "ChatTurn",
    "parse_field_ref",
]
