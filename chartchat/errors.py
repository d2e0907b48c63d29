"""Exception taxonomy for the chart chat pipeline."""
from __future__ import annotations

from typing import Optional


class ChartChatError(Exception):
    """Base class for errors raised inside the chart chat core."""

    user_message = "Sorry, something went wrong while handling your request."

    def __init__(self, message: str = "", *, detail: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        self.detail = detail


class ConfigurationError(ChartChatError):
    """Required settings (API keys, workspace ids) are missing."""

    user_message = "The service is not configured."


class SchemaUnavailable(ChartChatError):
    """Dataset metadata could not be retrieved from Power BI."""

    user_message = "The dataset schema is temporarily unavailable."


class UpstreamError(ChartChatError):
    """An LLM or Power BI network call failed."""

    user_message = "The AI service is unavailable right now. Please try again."


class MalformedModelOutput(ChartChatError):
    """Model text is not JSON or lacks the ``chatResponse`` key."""


class MutationError(ChartChatError):
    """Base class for failures while changing the live visual."""


class NoActivePage(MutationError):
    user_message = "Error: Could not find an active page to update the chart."


class NoChartVisualFound(MutationError):
    user_message = "Error: Could not find a chart visual to update."


class FieldBindingFailure(MutationError):
    """A Y or X axis field could not be bound; earlier bindings stay applied."""

    def __init__(self, role: str, field: str, message: str = "") -> None:
        super().__init__(message or f"Could not add {field} to the {role} data role")
        self.role = role
        self.field = field


class SeriesBindingFailure(MutationError):
    """No grouping role accepted the series field. Never surfaced to the user."""


class ReportNotReady(ChartChatError):
    user_message = "The report is still loading. Please wait a moment."


class TurnInProgress(ChartChatError):
    user_message = "Please wait for the current request to finish."
