"""
Chart Mutation Engine
Applies a chart action to the live report visual through the embedding SDK
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from chartchat.assistant.types import ChartAction, ChartState
from chartchat.core.logger import get_logger, log_context, timeit
from chartchat.errors import (
    FieldBindingFailure,
    MutationError,
    NoActivePage,
    NoChartVisualFound,
    SeriesBindingFailure,
)

from .visuals import (
    DEFAULT_VISUAL_LAYOUT,
    DEFAULT_VISUAL_TYPE,
    GROUPING_ROLES,
    ROLE_CATEGORY,
    ROLE_VALUES,
    PageHandle,
    ReportHandle,
    VisualHandle,
    column_target,
    is_supported_visual,
    measure_target,
    target_reference,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class RoleAttempt:
    """Outcome of one SDK call against a single data role."""

    role: str
    ok: bool
    error: Optional[str] = None


@dataclass
class MutationResult:
    """What happened when a chart action was applied."""

    action: ChartAction
    state: ChartState
    error: Optional[MutationError] = None
    series_role: Optional[str] = None
    series_error: Optional[SeriesBindingFailure] = None
    attempts: List[RoleAttempt] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def series_dropped(self) -> bool:
        return self.series_error is not None

    @property
    def message(self) -> Optional[str]:
        """Chat-visible error text, or None on success."""

        if self.error is None:
            return None
        if isinstance(self.error, (NoActivePage, NoChartVisualFound)):
            return self.error.user_message
        if isinstance(self.error, FieldBindingFailure):
            return (
                f"Error updating chart: {self.error}. "
                "The chart may be partially updated; please try again or rephrase the request."
            )
        return f"Error updating chart: {self.error}"


async def _first_active_page(report: ReportHandle) -> PageHandle:
    pages = await report.getPages()
    if not pages:
        raise NoActivePage()
    for page in pages:
        if getattr(page, "isActive", False):
            return page
    return pages[0]


class ChartMutationEngine:
    """Drive a single chart visual: clear bindings, change type, rebind fields."""

    def __init__(self, grouping_roles: Sequence[str] = GROUPING_ROLES):
        self.grouping_roles = tuple(grouping_roles)

    async def find_chart_visual(self, report: ReportHandle) -> VisualHandle:
        """Return the first supported chart visual on the active page.

        Raises:
            NoActivePage: the report has no pages.
            NoChartVisualFound: no visual on the page has a supported chart type.
        """
        page = await _first_active_page(report)
        visuals = await page.getVisuals()
        logger.debug("Found %d visuals on page %s", len(visuals), getattr(page, "displayName", None))

        for visual in visuals:
            if is_supported_visual(visual):
                return visual

        logger.info(
            "No suitable chart visual found - available types: %s",
            ", ".join(str(getattr(v, "type", "?")) for v in visuals),
        )
        raise NoChartVisualFound()

    async def clear_role(self, visual: VisualHandle, role: str) -> RoleAttempt:
        """Remove every field bound to ``role``, last index first."""

        try:
            fields = await visual.getDataFields(role)
            for index in range(len(fields or []) - 1, -1, -1):
                await visual.removeDataField(role, index)
        except Exception as exc:  # noqa: BLE001 - SDK rejects unknown roles
            return RoleAttempt(role=role, ok=False, error=str(exc))
        return RoleAttempt(role=role, ok=True)

    async def clear_fields(self, visual: VisualHandle) -> List[RoleAttempt]:
        """Clear value, category and the first grouping role the visual has."""

        attempts = [
            await self.clear_role(visual, ROLE_VALUES),
            await self.clear_role(visual, ROLE_CATEGORY),
        ]
        for role in self.grouping_roles:
            attempt = await self.clear_role(visual, role)
            attempts.append(attempt)
            if attempt.ok:
                break

        for attempt in attempts:
            if not attempt.ok:
                logger.debug("Could not clear %s fields (may not exist): %s", attempt.role, attempt.error)
        return attempts

    async def bind_series(self, visual: VisualHandle, reference: str) -> List[RoleAttempt]:
        """Try each grouping role in order until one accepts the series field."""

        target = column_target(reference)
        attempts: List[RoleAttempt] = []
        for role in self.grouping_roles:
            try:
                await visual.addDataField(role, target)
            except Exception as exc:  # noqa: BLE001 - fall through to the next role
                logger.debug("Failed to add %s to %s data role: %s", reference, role, exc)
                attempts.append(RoleAttempt(role=role, ok=False, error=str(exc)))
                continue
            attempts.append(RoleAttempt(role=role, ok=True))
            logger.info("%s added to %s data role", reference, role)
            return attempts

        logger.warning("Failed to add series field %s to any data role", reference)
        return attempts

    async def _bind(self, visual: VisualHandle, role: str, reference: str, target: dict) -> None:
        try:
            await visual.addDataField(role, target)
        except Exception as exc:
            raise FieldBindingFailure(role, reference, f"Could not add {reference} to {role}: {exc}") from exc
        logger.info("%s added to %s data role", reference, role)

    async def apply_chart_action(
        self,
        report: ReportHandle,
        action: ChartAction,
        state: Optional[ChartState] = None,
    ) -> MutationResult:
        """Apply ``action`` to the first chart visual of the active page.

        Y/X binding failures abort the action without rolling back earlier
        bindings. A series that no grouping role accepts is dropped silently.
        """
        state = state or ChartState()
        result = MutationResult(action=action, state=state)

        with log_context.scoped(chart_type=action.chart_type):
            try:
                with timeit("Chart update", logger=logger, unit="fields") as timer:
                    visual = await self.find_chart_visual(report)
                    result.attempts.extend(await self.clear_fields(visual))

                    current_type = getattr(visual, "type", None)
                    if action.chart_type and action.chart_type != current_type:
                        logger.info("Changing chart type from %s to %s", current_type, action.chart_type)
                        await visual.changeType(action.chart_type)

                    await self._bind(visual, ROLE_VALUES, action.y_axis, measure_target(action.y_axis))
                    timer.add()
                    await self._bind(visual, ROLE_CATEGORY, action.x_axis, column_target(action.x_axis))
                    timer.add()

                    if action.series:
                        series_attempts = await self.bind_series(visual, action.series)
                        result.attempts.extend(series_attempts)
                        if series_attempts and series_attempts[-1].ok:
                            result.series_role = series_attempts[-1].role
                            timer.add()
                        else:
                            result.series_error = SeriesBindingFailure(
                                f"No grouping role accepted {action.series}"
                            )
            except MutationError as exc:
                logger.error(f"Chart update failed: {str(exc)}")
                result.error = exc
                return result
            except Exception as exc:
                logger.error(f"Chart update failed: {str(exc)}")
                result.error = MutationError(str(exc))
                return result

        applied = action
        if result.series_dropped:
            applied = ChartAction(action.y_axis, action.x_axis, action.chart_type)
        result.state = state.merged(applied)
        logger.info("Chart updated: %s", result.state.to_payload())
        return result

    async def read_chart_state(self, report: ReportHandle) -> ChartState:
        """Rebuild the chart state from the bindings of the live visual."""

        visual = await self.find_chart_visual(report)

        async def _first(role: str) -> Optional[str]:
            try:
                fields = await visual.getDataFields(role)
            except Exception:  # noqa: BLE001 - role absent on this visual type
                return None
            return target_reference(fields[0]) if fields else None

        series = None
        for role in self.grouping_roles:
            series = await _first(role)
            if series:
                break

        return ChartState(
            y_axis=await _first(ROLE_VALUES),
            x_axis=await _first(ROLE_CATEGORY),
            chart_type=getattr(visual, "type", None),
            series=series,
        )


async def create_default_visual(report: ReportHandle) -> Any:
    """Create the starter line chart on the active page."""

    page = await _first_active_page(report)
    logger.info("Creating default %s visual", DEFAULT_VISUAL_TYPE)
    return await page.createVisual(DEFAULT_VISUAL_TYPE, dict(DEFAULT_VISUAL_LAYOUT))
