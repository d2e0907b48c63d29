"""Chat endpoint: one user message in, raw model text out."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from chartchat.assistant.chat_service import ChatService
from chartchat.core.logger import get_logger
from chartchat.dependencies import get_chat_service
from chartchat.errors import ChartChatError, ConfigurationError
from chartchat.schemas.chat import ChatRequest, ChatResponse
from chartchat.schemas.common import error_response

router = APIRouter(tags=["chat"])
LOGGER = get_logger(__name__)

GENERIC_FAILURE_DETAILS = "The AI service could not complete the request. Please try again."


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    payload: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatResponse | JSONResponse:
    """
    Process a chat message

    Request body:
    - message: The user's message
    - currentChart: Optional chart the browser currently shows
    - chatHistory: Optional recent turns, oldest first

    Returns:
    - response: Raw model text (JSON with chatResponse and optional chartAction)
    - usage: Token usage reported by the provider
    """
    message = (payload.message or "").strip()
    if not message:
        return error_response(400, "Message is required")

    try:
        reply = await chat_service.chat(message, payload.chart_state(), payload.turns())
    except ConfigurationError as e:
        LOGGER.error(f"Chat service not configured: {str(e)}")
        return error_response(500, str(e))
    except ChartChatError as e:
        LOGGER.error(f"Chat request failed: {str(e)} ({e.detail})")
        return error_response(500, "Failed to process chat message", GENERIC_FAILURE_DETAILS)
    except Exception as e:
        LOGGER.exception(f"Unexpected chat failure: {str(e)}")
        return error_response(500, "Failed to process chat message", GENERIC_FAILURE_DETAILS)

    return ChatResponse(response=reply.response, usage=reply.usage or None)
