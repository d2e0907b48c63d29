"""Schemas for the chat endpoint."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chartchat.assistant.types import ChartState, ChatHistory, ChatTurn


class ChartStatePayload(BaseModel):
    """Chart configuration as the browser reports it."""

    model_config = ConfigDict(populate_by_name=True)

    y_axis: str | None = Field(default=None, alias="yAxis")
    x_axis: str | None = Field(default=None, alias="xAxis")
    chart_type: str | None = Field(default=None, alias="chartType")
    series: str | None = None

    def to_state(self) -> ChartState:
        return ChartState.from_payload(self.model_dump(by_alias=True))


class ChatRequest(BaseModel):
    """Body of ``POST /chat``.

    History entries are kept loose; turns without a valid role or string
    content are dropped instead of failing the request.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    current_chart: ChartStatePayload | None = Field(default=None, alias="currentChart")
    chat_history: list[Any] = Field(default_factory=list, alias="chatHistory")

    def chart_state(self) -> ChartState | None:
        if self.current_chart is None:
            return None
        state = self.current_chart.to_state()
        return None if state.is_empty else state

    def turns(self) -> list[ChatTurn]:
        history = ChatHistory.from_payload(self.chat_history, maxlen=max(len(self.chat_history), 1))
        return history.turns()


class ChatResponse(BaseModel):
    """Raw model text; the browser parses the chart action out of it."""

    response: str
    usage: dict[str, Any] | None = None
