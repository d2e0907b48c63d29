"""
Chat turn orchestration on the server side
Schema lookup, prompt assembly and the model call for one user message
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional

from chartchat.core.logger import get_logger, log_context, timeit
from chartchat.errors import SchemaUnavailable
from chartchat.powerbi.schema import SchemaSnapshot
from chartchat.powerbi.schema_provider import SchemaProvider

from .config import chatbot_config
from .llm_providers import LLMProvider, LLMProviderFactory
from .prompt_builder import PromptBuilder
from .types import ChartState, ChatTurn

logger = get_logger(__name__)

SLOW_COMPLETION_SECONDS = 20.0


@dataclass
class ChatReply:
    """Raw model text plus the bookkeeping the HTTP layer returns."""

    response: str
    usage: Dict[str, Any] = field(default_factory=dict)
    duration_ms: int = 0
    schema_available: bool = True


class ChatService:
    """Runs one chat turn: schema, prompt, model call."""

    def __init__(
        self,
        schema_provider: SchemaProvider,
        provider: Optional[LLMProvider] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        history_limit: Optional[int] = None,
        provider_factory: Optional[Callable[[], LLMProvider]] = None,
    ):
        self.schema_provider = schema_provider
        self._provider = provider
        self._provider_factory = provider_factory or LLMProviderFactory.from_config
        self.history_limit = history_limit or chatbot_config.max_conversation_history
        self.prompt_builder = prompt_builder or PromptBuilder(history_limit=self.history_limit)

    @property
    def provider(self) -> LLMProvider:
        """The model provider, resolved on first use."""
        if self._provider is None:
            self._provider = self._provider_factory()
        return self._provider

    async def _load_schema(self) -> Optional[SchemaSnapshot]:
        try:
            return await self.schema_provider.get_schema()
        except SchemaUnavailable as exc:
            logger.warning(f"Continuing without schema: {str(exc)}")
            return None

    async def chat(
        self,
        message: str,
        current_chart: Optional[ChartState] = None,
        history: Optional[Iterable[ChatTurn]] = None,
    ) -> ChatReply:
        """
        Process a user message and return the raw model reply

        Args:
            message: The user's chat message
            current_chart: Chart configuration the client currently shows
            history: Recent turns, oldest first; only the last few are used

        Raises:
            UpstreamError: the model call failed
            ConfigurationError: the model provider is not configured
        """
        provider = self.provider
        turns = list(history or [])[-self.history_limit:]

        with log_context.scoped(turn_id=uuid.uuid4().hex[:8]):
            logger.info(
                "Chat turn: %d chars, %d history turns, chart=%s",
                len(message),
                len(turns),
                current_chart.to_payload() if current_chart else None,
            )
            schema = await self._load_schema()
            system_prompt = self.prompt_builder.build_prompt(schema, current_chart, turns)

            with timeit("LLM completion", logger=logger, warn_after=SLOW_COMPLETION_SECONDS) as timer:
                response = await provider.complete(system_prompt, message)

            logger.debug("Model reply: %s", response)
            return ChatReply(
                response=response,
                usage=dict(provider.last_usage),
                duration_ms=timer.elapsed_ms,
                schema_available=schema is not None,
            )
