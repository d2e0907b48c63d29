"""
Client-side chat turn driver
Connects the chat reply to the live report: interpret, mutate, remember
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol

from chartchat.core.logger import get_logger
from chartchat.errors import ChartChatError, ReportNotReady, TurnInProgress
from chartchat.powerbi.mutation import ChartMutationEngine, MutationResult
from chartchat.powerbi.session import SessionState
from chartchat.powerbi.visuals import ReportHandle

from .interpreter import Interpretation, interpret
from .types import ChartState, ChatTurn

logger = get_logger(__name__)

CONNECTION_ERROR_MESSAGE = "Sorry, I couldn't connect to the AI service. Please try again."


class ChatBackend(Protocol):
    async def chat(
        self,
        message: str,
        current_chart: Optional[ChartState],
        history: Optional[list[ChatTurn]],
    ) -> Any:
        ...


@dataclass
class TurnOutcome:
    """What the chat panel shows after a turn."""

    chat_text: str
    interpretation: Optional[Interpretation] = None
    mutation: Optional[MutationResult] = None

    @property
    def chart_updated(self) -> bool:
        return self.mutation is not None and self.mutation.ok


class ChartConversation:
    """One chat panel bound to one embedded report."""

    def __init__(
        self,
        session: SessionState,
        backend: ChatBackend,
        report: ReportHandle,
        engine: Optional[ChartMutationEngine] = None,
        on_message: Optional[Callable[[str, str], Awaitable[None] | None]] = None,
    ):
        self.session = session
        self.backend = backend
        self.report = report
        self.engine = engine or ChartMutationEngine()
        self._on_message = on_message
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def _emit(self, role: str, text: str) -> None:
        if self._on_message is None:
            return
        result = self._on_message(role, text)
        if result is not None:
            await result

    async def send(self, message: str) -> TurnOutcome:
        """
        Run one full turn for ``message``

        Raises:
            TurnInProgress: a previous turn has not finished yet
            ReportNotReady: the report has not finished loading and rendering
        """
        if self._busy:
            raise TurnInProgress()
        if not self.session.report.ready:
            raise ReportNotReady()

        message = (message or "").strip()
        if not message:
            raise ValueError("Message is required")

        self._busy = True
        try:
            return await self._run_turn(message)
        finally:
            self._busy = False

    async def _run_turn(self, message: str) -> TurnOutcome:
        history = self.session.history.turns()
        current_chart = None if self.session.chart.is_empty else self.session.chart
        await self._emit("user", message)

        try:
            reply = await self.backend.chat(message, current_chart, history)
        except ChartChatError as exc:
            logger.error(f"Chat request failed: {str(exc)}")
            await self._emit("assistant", CONNECTION_ERROR_MESSAGE)
            return TurnOutcome(chat_text=CONNECTION_ERROR_MESSAGE)
        except Exception as exc:
            logger.exception(f"Chat request crashed: {str(exc)}")
            await self._emit("assistant", CONNECTION_ERROR_MESSAGE)
            return TurnOutcome(chat_text=CONNECTION_ERROR_MESSAGE)

        raw_text = getattr(reply, "response", reply)
        interpretation = interpret(raw_text)
        outcome = TurnOutcome(chat_text=interpretation.chat_text, interpretation=interpretation)
        await self._emit("assistant", interpretation.chat_text)

        action = interpretation.chart_action
        if action is not None:
            result = await self.engine.apply_chart_action(self.report, action, self.session.chart)
            outcome.mutation = result
            if result.ok:
                self.session.chart = result.state
            else:
                await self._emit("assistant", result.message)

        # History holds what the user saw, not the raw JSON.
        self.session.history.add("user", message)
        self.session.history.add("assistant", interpretation.chat_text)
        return outcome
