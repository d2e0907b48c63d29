"""
Chart Action Interpreter
Turns raw model text into a chat reply plus an optional chart action
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from chartchat.errors import MalformedModelOutput

from .types import ChartAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlainText:
    """A reply with no chart change: prose, clarifying question or fallback text."""

    chat_text: str

    @property
    def chart_action(self) -> None:
        return None


@dataclass(frozen=True)
class ActionableChart:
    """A reply carrying a structurally complete chart action."""

    chat_text: str
    action: ChartAction

    @property
    def chart_action(self) -> ChartAction:
        return self.action


Interpretation = Union[PlainText, ActionableChart]


def _extract_first_json_object(text: str) -> Optional[str]:
    """Extract the first balanced JSON object from the text."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    return None


def _parse_json_response(content: Optional[str]) -> Dict[str, Any]:
    """
    Parse model output as a JSON object, tolerating common formatting quirks.

    Code fences like ```json blocks are trimmed and, when prose slips in
    around the payload, the first balanced object is tried as well.

    Raises:
        MalformedModelOutput: no candidate decodes to a JSON object.
    """
    if not content or not content.strip():
        raise MalformedModelOutput("Empty model response")

    candidates: List[str] = []
    stripped = content.strip()
    candidates.append(stripped)
    fenced_match = re.search(r"```(?:json)?\s*(.*?)```", stripped, re.DOTALL | re.IGNORECASE)
    if fenced_match:
        candidates.append(fenced_match.group(1).strip())

    extracted_object = _extract_first_json_object(stripped)
    if extracted_object:
        candidates.append(extracted_object)

    for candidate in candidates:
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise MalformedModelOutput("Model response is not a JSON object")


def _parse_chart_action(payload: Any) -> Optional[ChartAction]:
    if not isinstance(payload, dict):
        return None

    y_axis = payload.get("yAxis")
    x_axis = payload.get("xAxis")
    chart_type = payload.get("chartType")
    if not all(isinstance(value, str) and value.strip() for value in (y_axis, x_axis, chart_type)):
        return None

    series = payload.get("series")
    if not isinstance(series, str) or not series.strip():
        series = None

    return ChartAction(
        y_axis=y_axis.strip(),
        x_axis=x_axis.strip(),
        chart_type=chart_type.strip(),
        series=series.strip() if series else None,
    )


def interpret(raw_text: Optional[str]) -> Interpretation:
    """Parse a model reply. Never raises: anything unusable degrades to plain text."""

    raw_text = raw_text or ""
    try:
        payload = _parse_json_response(raw_text)
        chat_text = payload.get("chatResponse")
        if not isinstance(chat_text, str):
            raise MalformedModelOutput("Model response has no chatResponse string")
    except MalformedModelOutput as exc:
        logger.debug("Treating model reply as plain text: %s", exc)
        return PlainText(raw_text)

    if "chartAction" not in payload or payload["chartAction"] is None:
        return PlainText(chat_text)

    action = _parse_chart_action(payload["chartAction"])
    if action is None:
        logger.warning("Dropping incomplete chartAction: %s", payload["chartAction"])
        return PlainText(chat_text)

    if not action.is_supported_type:
        logger.info("Model requested unsupported chart type %s", action.chart_type)
    return ActionableChart(chat_text, action)


def serialize(action: Optional[ChartAction], chat_text: str) -> str:
    """Render a reply in the same JSON contract the model is asked to produce."""

    payload: Dict[str, Any] = {"chatResponse": chat_text}
    if action is not None:
        payload["chartAction"] = action.to_payload()
    return json.dumps(payload)


__all__ = [
    "ActionableChart",
    "Interpretation",
    "PlainText",
    "interpret",
    "serialize",
]
