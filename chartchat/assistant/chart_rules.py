"""Axis-assignment rules per chart type.

Column-like charts put the dimension on the category (X) axis and the
measure on the value (Y) axis. Bar charts are horizontal, so the roles
swap. These rules feed the system prompt and let callers re-derive axes when
only the chart type changes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from .types import ChartAction, ChartState

Axis = Literal["x", "y"]


@dataclass(frozen=True)
class AxisRule:
    chart_type: str
    label: str
    x_axis: str
    y_axis: str
    note: str = ""

    @property
    def value_axis(self) -> Axis:
        return "x" if self.x_axis == "measure" else "y"


AXIS_RULES: dict[str, AxisRule] = {
    "columnChart": AxisRule("columnChart", "Column chart", "dimension", "measure"),
    "clusteredColumnChart": AxisRule(
        "clusteredColumnChart",
        "Clustered column chart",
        "dimension",
        "measure",
        "time dimension on xAxis, categorical grouping in series",
    ),
    "stackedColumnChart": AxisRule(
        "stackedColumnChart", "Stacked column chart", "dimension", "measure"
    ),
    "barChart": AxisRule(
        "barChart",
        "Bar chart",
        "measure",
        "dimension",
        "horizontal; axes are swapped compared to column charts",
    ),
    "lineChart": AxisRule(
        "lineChart", "Line chart", "dimension", "measure", "time dimension preferred on xAxis"
    ),
    "areaChart": AxisRule(
        "areaChart", "Area chart", "dimension", "measure", "time dimension preferred on xAxis"
    ),
    "pieChart": AxisRule(
        "pieChart", "Pie chart", "dimension", "measure", "xAxis = category slices, yAxis = values"
    ),
    "donutChart": AxisRule(
        "donutChart", "Donut chart", "dimension", "measure", "xAxis = category slices, yAxis = values"
    ),
}


def value_axis(chart_type: Optional[str]) -> Optional[Axis]:
    """Return which chartAction axis carries the measure, or None if unknown."""

    rule = AXIS_RULES.get(chart_type or "")
    return rule.value_axis if rule else None


def swaps_axis_roles(current_type: Optional[str], new_type: Optional[str]) -> bool:
    """True when moving between the two types moves the measure to the other axis."""

    current_axis = value_axis(current_type)
    new_axis = value_axis(new_type)
    if current_axis is None or new_axis is None:
        return False
    return current_axis != new_axis


def retarget(state: ChartState, new_type: str) -> ChartAction:
    """Re-derive the axes of ``state`` for a chart-type-only change.

    Raises:
        ValueError: when the state has no complete axis pair to carry over.
    """

    if not state.y_axis or not state.x_axis:
        raise ValueError("Current chart has no axis pair to retarget")

    if swaps_axis_roles(state.chart_type, new_type):
        y_axis, x_axis = state.x_axis, state.y_axis
    else:
        y_axis, x_axis = state.y_axis, state.x_axis
    return ChartAction(
        y_axis=y_axis,
        x_axis=x_axis,
        chart_type=new_type,
        series=state.series,
    )


def describe_rules() -> str:
    """Render the axis table used in the system prompt."""

    lines = []
    for rule in AXIS_RULES.values():
        line = f"- {rule.chart_type}: xAxis = {rule.x_axis}, yAxis = {rule.y_axis}"
        if rule.note:
            line += f" ({rule.note})"
        lines.append(line)
    return "\n".join(lines)
