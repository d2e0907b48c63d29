"""Report load state machine and the per-session state bundle.

The embedding SDK reports ``loaded`` once the report structure is available
and ``rendered`` after first paint. Chat input stays disabled until both have
been seen. Transitions are a pure function of ``(state, signal)``; the
:class:`ReportSession` wrapper adds listeners and the one-shot starter visual.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, List, Literal, Optional

from chartchat.assistant.types import ChartState, ChatHistory
from chartchat.core.logger import get_logger

logger = get_logger(__name__)

Signal = Literal["loaded", "rendered", "reset"]


class ReportPhase(str, Enum):
    NOT_LOADED = "NotLoaded"
    STRUCTURALLY_LOADED = "StructurallyLoaded"
    READY = "Ready"


@dataclass(frozen=True)
class ReportLoadState:
    structural_load_complete: bool = False
    first_paint_complete: bool = False

    @property
    def ready(self) -> bool:
        return self.structural_load_complete and self.first_paint_complete

    @property
    def phase(self) -> ReportPhase:
        if self.ready:
            return ReportPhase.READY
        if self.structural_load_complete:
            return ReportPhase.STRUCTURALLY_LOADED
        return ReportPhase.NOT_LOADED


@dataclass(frozen=True)
class ChatInputState:
    enabled: bool
    disable_reason: Optional[str] = None


def transition(state: ReportLoadState, signal: Signal) -> ReportLoadState:
    """Apply one SDK signal. Flags only ever go from False to True until reset."""

    if signal == "loaded":
        return replace(state, structural_load_complete=True)
    if signal == "rendered":
        return replace(state, first_paint_complete=True)
    if signal == "reset":
        return ReportLoadState()
    raise ValueError(f"Unknown report signal: {signal}")


def chat_input_state(state: ReportLoadState) -> ChatInputState:
    if state.ready:
        return ChatInputState(enabled=True)
    if state.structural_load_complete:
        return ChatInputState(enabled=False, disable_reason="Report rendering...")
    return ChatInputState(enabled=False, disable_reason="Report loading...")


StateListener = Callable[[ReportLoadState, ChatInputState], None]
StarterVisualFactory = Callable[[], Awaitable[object]]


class ReportSession:
    """Tracks report readiness for one embed and notifies listeners on change."""

    def __init__(self, create_starter_visual: Optional[StarterVisualFactory] = None):
        self.state = ReportLoadState()
        self._create_starter_visual = create_starter_visual
        self._starter_visual_created = False
        self._listeners: List[StateListener] = []

    @property
    def ready(self) -> bool:
        return self.state.ready

    @property
    def phase(self) -> ReportPhase:
        return self.state.phase

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        input_state = chat_input_state(self.state)
        for listener in list(self._listeners):
            try:
                listener(self.state, input_state)
            except Exception:  # noqa: BLE001 - one bad listener must not block the rest
                logger.exception("Report state listener failed")

    async def handle(self, signal: Signal) -> ReportLoadState:
        """Feed an SDK signal into the state machine."""

        previous = self.state
        self.state = transition(previous, signal)
        if signal == "reset":
            self._starter_visual_created = False

        if self.state != previous:
            logger.info("Report state %s -> %s", previous.phase.value, self.state.phase.value)
            self._notify()

        if signal == "loaded":
            await self._ensure_starter_visual()
        return self.state

    async def _ensure_starter_visual(self) -> None:
        if self._starter_visual_created:
            logger.debug("Starter visual already created, skipping")
            return
        if self._create_starter_visual is None:
            return

        # Latch before awaiting so a repeated signal cannot start a second creation.
        self._starter_visual_created = True
        try:
            await self._create_starter_visual()
        except Exception:
            self._starter_visual_created = False
            logger.exception("Error creating default visual on report load")
            return
        logger.info("Default visual created on report load")


@dataclass
class SessionState:
    """Everything one browser session owns: chart, chat window and report state."""

    chart: ChartState = field(default_factory=ChartState)
    history: ChatHistory = field(default_factory=ChatHistory)
    report: ReportSession = field(default_factory=ReportSession)

    async def reembed(self) -> None:
        """Reset for a fresh embed; the new report starts with a new starter visual."""

        self.chart = ChartState()
        await self.report.handle("reset")
