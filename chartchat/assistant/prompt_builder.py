"""Prompt assembly for the chart assistant.

The system prompt grounds the model in the live dataset schema, states the
axis-assignment rules per chart type, carries the current chart and the
recent transcript, and pins the JSON reply contract the interpreter expects.
Assembly is deterministic and side-effect free.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from chartchat.powerbi.schema import SchemaSnapshot

from .chart_rules import describe_rules, retarget, swaps_axis_roles
from .types import SUPPORTED_CHART_TYPES, ChartState, ChatTurn


class PromptBuilder:
    """Construct the system prompt for a chat turn."""

    APP_HEADER = (
        "You are a specialized Power BI chart creation assistant."
        " Use ONLY the fields explicitly listed in the schema section."
        " Never invent or guess field names."
    )

    RESPONSIBILITIES = (
        "CORE RESPONSIBILITIES:\n"
        "1. Create and modify charts using available dataset fields.\n"
        "2. Answer questions about the dataset schema (tables, columns, data types)"
        " so users understand what is available. Never refuse these questions.\n"
        "3. If users ask about non-chart tasks (data modeling, report formatting or"
        " other Power BI features), politely decline and redirect them to chart creation.\n\n"
        "DATA UNDERSTANDING:\n"
        "- Measures: numeric values that can be aggregated (value axis), e.g. TotalSales, Revenue.\n"
        "- Dimensions: categorical or time-based fields used for grouping (category axis),"
        " e.g. Month, District, Category."
    )

    CHART_SELECTION = (
        "CHART TYPE SELECTION:\n"
        "1. If the user names a chart type (\"bar chart\", \"pie chart\"), use it.\n"
        "2. Otherwise choose from the data:\n"
        "   - time dimension + categorical dimension (\"sales by month by district\")"
        " = clusteredColumnChart with time on xAxis and the category in series\n"
        "   - single time dimension (\"sales by month\") = lineChart\n"
        "   - single categorical dimension (\"sales by district\") = columnChart\n"
        "3. Default fallback: columnChart when no time dimension is present.\n"
        f"Valid chart types: {', '.join(SUPPORTED_CHART_TYPES)}"
    )

    AXIS_HEADER = (
        "AXIS ASSIGNMENT RULES (FOLLOW EXACTLY):\n"
        "After deciding on the chart type, apply the axis assignment for that type."
        " Whenever the chart type changes, re-evaluate the axis roles instead of"
        " copying the previous axes verbatim."
    )

    BAR_RULE = (
        "CRITICAL BAR CHART RULE: bar charts are horizontal. When the chart type is"
        " barChart, dimensions go on yAxis and measures go on xAxis, the opposite"
        " of column charts."
    )

    FIELD_NAMING = (
        "FIELD NAMING REQUIREMENTS:\n"
        "- ALWAYS use the full Table.FieldName format (e.g. \"Sales.TotalSales\", \"Time.Month\").\n"
        "- NEVER use short field names without the table prefix, even if the chat"
        " history or the examples show shorter names.\n"
        "- Only use fields exactly as shown in the schema (case sensitive).\n"
        "- If the user uses a synonym (\"sales\" for \"TotalSales\"), map it to the"
        " closest valid field and mention the mapping in chatResponse.\n"
        "- If the user references a term that is not in the schema, ask them to"
        " restate it using available field names and suggest the closest matches."
    )

    CLARIFICATION = (
        "CLARIFICATION POLICY:\n"
        "- If a measure is requested without a dimension (e.g. \"show me sales\"),"
        " ask which dimension to group by. Do NOT guess a dimension.\n"
        "- If no current chart exists and the user asks for a partial change"
        " (\"make it a pie chart\"), ask them to create a chart first.\n"
        "- When the request is ambiguous, omit chartAction and ask a clarifying question."
    )

    SCHEMA_UNAVAILABLE = (
        "Schema temporarily unavailable. Do not name any fields. If the user asks"
        " for a chart or about the schema, explain that there was an issue"
        " retrieving the dataset metadata and suggest they try again shortly."
    )

    def __init__(self, history_limit: int = 4):
        self.history_limit = history_limit

    def build_prompt(
        self,
        schema: Optional[SchemaSnapshot],
        current_chart: Optional[ChartState],
        history: Optional[Iterable[ChatTurn]],
    ) -> str:
        """Build the system prompt for one chat turn."""

        sections = [
            self.APP_HEADER,
            self.RESPONSIBILITIES,
            self._schema_section(schema),
            self.CHART_SELECTION,
            f"{self.AXIS_HEADER}\n{describe_rules()}\n\n{self.BAR_RULE}",
            self.FIELD_NAMING,
            self.CLARIFICATION,
            self._response_contract(),
        ]

        if current_chart is not None and not current_chart.is_empty:
            chart, stale = self._checked_chart(schema, current_chart)
            sections.append(self._current_chart_section(chart, stale))

        turns = list(history or [])[-self.history_limit:] if self.history_limit else []
        if turns:
            sections.append(self._history_section(turns))

        sections.append("Always respond with ONLY valid JSON and no extra commentary.")
        return "\n\n".join(sections)

    def _schema_section(self, schema: Optional[SchemaSnapshot]) -> str:
        if schema is None:
            return f"SCHEMA (table.column [type]):\n{self.SCHEMA_UNAVAILABLE}"

        lines = [
            f"{table.name}.{column.name} [{column.type}]"
            for table in schema.tables
            for column in table.columns
        ]
        if not lines:
            lines = ["(the dataset exposes no visible fields)"]
        return "SCHEMA (table.column [type]):\n" + "\n".join(lines)

    def _response_contract(self) -> str:
        return (
            "RESPONSE FORMAT:\n"
            "Respond with a single JSON object:\n"
            "- \"chatResponse\" (always present): text shown to the user.\n"
            "- \"chartAction\" (only when the request is unambiguous and every field"
            " is in the schema): {\"yAxis\": \"Table.Field\", \"xAxis\": \"Table.Field\","
            " \"chartType\": \"<chart type>\", \"series\": \"Table.Field\"}.\n"
            "  Always include yAxis, xAxis and chartType, including for partial updates."
            " Include series only for clusteredColumnChart (the grouping dimension).\n\n"
            "Examples:\n"
            '- "show me sales" -> {"chatResponse": "Which field should I group sales by,'
            ' for example month or district?"}\n'
            '- "sales by district" -> {"chatResponse": "I\'ll create a column chart showing'
            ' sales by district!", "chartAction": {"yAxis": "Sales.TotalSales",'
            ' "xAxis": "District.District", "chartType": "columnChart"}}\n'
            '- "sales by month" -> {"chatResponse": "I\'ll create a line chart showing sales'
            ' by month!", "chartAction": {"yAxis": "Sales.TotalSales", "xAxis": "Time.Month",'
            ' "chartType": "lineChart"}}\n'
            '- "bar chart of sales by district" -> {"chatResponse": "I\'ll create a bar chart'
            ' showing sales by district!", "chartAction": {"yAxis": "District.District",'
            ' "xAxis": "Sales.TotalSales", "chartType": "barChart"}}\n'
            '- "sales by month by district" -> {"chatResponse": "I\'ll create a clustered column'
            ' chart showing sales by month grouped by district!", "chartAction": {"yAxis":'
            ' "Sales.TotalSales", "xAxis": "Time.Month", "series": "District.District",'
            ' "chartType": "clusteredColumnChart"}}\n'
            '- "what fields can I use?" -> {"chatResponse": "## Available Fields\\n..."}'
        )

    @staticmethod
    def _checked_chart(
        schema: Optional[SchemaSnapshot], chart: ChartState
    ) -> tuple[ChartState, bool]:
        """Blank out chart fields the schema no longer contains."""

        if schema is None:
            return chart, False
        missing = set(chart.unresolved_fields(schema))
        if not missing:
            return chart, False
        return (
            replace(
                chart,
                y_axis=None if chart.y_axis in missing else chart.y_axis,
                x_axis=None if chart.x_axis in missing else chart.x_axis,
                series=None if chart.series in missing else chart.series,
            ),
            True,
        )

    def _current_chart_section(self, chart: ChartState, stale: bool = False) -> str:
        lines = [
            "CURRENT CHART CONTEXT:",
            "The user currently has a chart with:",
            f"- Y-axis: {chart.y_axis or 'none'}",
            f"- X-axis: {chart.x_axis or 'none'}",
            f"- Chart Type: {chart.chart_type or 'unknown'}",
        ]
        if chart.series:
            lines.append(f"- Series: {chart.series}")
        if stale:
            lines.append(
                "- Some fields of this chart are no longer in the dataset (shown as none);"
                " do not reuse them, pick replacements from the SCHEMA list."
            )

        lines.extend(
            [
                "",
                "Partial update requests (\"change it to...\", \"show units instead\") refer"
                " to this chart. Reuse every axis the user does not mention.",
                "When the chart type changes:",
                "1. First determine the new chart type.",
                "2. Re-derive the axis roles with the AXIS ASSIGNMENT RULES; do not copy"
                " the axes verbatim when the new type swaps roles (e.g. column -> bar).",
                "3. Include yAxis, xAxis and chartType in chartAction.",
            ]
        )

        if chart.y_axis and chart.x_axis and chart.chart_type:
            preserved = [t for t in SUPPORTED_CHART_TYPES if not swaps_axis_roles(chart.chart_type, t)]
            swapped = [t for t in SUPPORTED_CHART_TYPES if swaps_axis_roles(chart.chart_type, t)]
            if swapped:
                example = retarget(chart, swapped[0])
                lines.append(
                    f"- Changing to {', '.join(swapped)} swaps the axes:"
                    f" yAxis=\"{example.y_axis}\", xAxis=\"{example.x_axis}\"."
                )
            if preserved:
                lines.append(
                    f"- Changing to {', '.join(preserved)} keeps the axes:"
                    f" yAxis=\"{chart.y_axis}\", xAxis=\"{chart.x_axis}\"."
                )
        return "\n".join(lines)

    def _history_section(self, turns: list[ChatTurn]) -> str:
        transcript = "\n".join(
            f"{'User' if turn.role == 'user' else 'Assistant'}: {turn.content}"
            for turn in turns
        )
        return (
            "CONVERSATION HISTORY FOR CONTEXT:\n"
            f"The recent conversation (up to the last {self.history_limit} messages, oldest first)"
            " follows. Use it to resolve references like \"it\", \"that chart\" or"
            " \"the previous one\". Only look as far back as needed.\n\n"
            "CLARIFICATION FOLLOW-UP HANDLING:\n"
            "If your most recent message asked a clarifying question and the current user"
            " message answers it (even briefly, like \"District\" or \"yes\"), combine the"
            " original request with that answer and complete the full action. Do not treat"
            " the short reply as a standalone request.\n"
            "- You asked \"Which field should I use for grouping?\" and the user says"
            " \"month\" -> combine with the original measure request.\n"
            "- You asked \"Which chart type would you prefer?\" and the user says"
            " \"bar chart\" -> apply that chart type to the previous request.\n\n"
            f"{transcript}\n\n"
            "Current user message follows below this context section."
        )
