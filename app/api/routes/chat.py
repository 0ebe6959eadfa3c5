"""
Chat API endpoints
"""

from fastapi import APIRouter, HTTPException, Request, Query
from fastapi.responses import StreamingResponse
from typing import Dict, Any, Optional
import logging
import uuid as uuid_lib
from sqlalchemy.exc import SQLAlchemyError

from app.schemas.chat import ChatRequest, ApiError, SessionSummary
from app.core.config import settings
from app.deps.exceptions import MissingAPIKeyError, InvalidAPIKeyError
from app.services.prompts import CHAT_SYSTEM_PROMPT
from app.services.response_parser import parse_assistant_response
from app.services.session_store import session_store
from app.services.stream_relay import stream_relay, prime_stream, to_provider_messages
from app.services.video_suggestions import suggestion_key, video_suggestion_resolver

router = APIRouter()
logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "x-vercel-ai-ui-message-stream": "v1",
}


def _request_id(request: Request) -> str:
    return request.headers.get("X-Correlation-ID", str(uuid_lib.uuid4()))


def _missing_session_error(request_id: str) -> HTTPException:
    error_response = ApiError.create(
        code="VALIDATION_ERROR",
        message="sessionId is required",
        details={"field": "sessionId"},
        request_id=request_id
    )
    return HTTPException(status_code=400, detail=error_response.model_dump())


def provider_http_error(e: Exception, request_id: str) -> HTTPException:
    """Map failures raised before streaming started onto the error envelope"""
    if isinstance(e, MissingAPIKeyError):
        logger.error(f"OpenRouter API key missing: {str(e)}")
        error_response = ApiError.create(
            code="AUTH_ERROR",
            message=e.message,
            details={"error_type": "missing_api_key"},
            request_id=request_id
        )
        return HTTPException(status_code=500, detail=error_response.model_dump())
    if isinstance(e, InvalidAPIKeyError):
        logger.error(f"OpenRouter API key invalid: {str(e)}")
        error_response = ApiError.create(
            code="INVALID_API_KEY",
            message=e.message,
            details={"error_type": "invalid_api_key"},
            request_id=request_id
        )
        return HTTPException(status_code=502, detail=error_response.model_dump())
    if isinstance(e, SQLAlchemyError):
        logger.error(f"Database error: {str(e)}")
        error_response = ApiError.create(
            code="DATABASE_ERROR",
            message="Failed to save chat message",
            details={"error": str(e) if settings.debug else "A database error occurred"},
            request_id=request_id
        )
        return HTTPException(status_code=500, detail=error_response.model_dump())
    if isinstance(e, RuntimeError):
        logger.error(f"Provider error: {str(e)}")
        error_response = ApiError.create(
            code="PROVIDER_ERROR",
            message="Failed to get a response from the language model",
            details={"error": str(e)},
            request_id=request_id
        )
        return HTTPException(status_code=502, detail=error_response.model_dump())

    logger.error(f"Unexpected error in chat endpoint: {str(e)}", exc_info=True)
    error_response = ApiError.create(
        code="INTERNAL_ERROR",
        message="Failed to process chat message",
        details={"message": str(e) if settings.debug else "An unexpected error occurred"},
        request_id=request_id
    )
    return HTTPException(status_code=500, detail=error_response.model_dump())


@router.post("/chat")
async def chat_endpoint(request: Request, chat_request: ChatRequest):
    """
    Stream the coach's reply to the latest user message

    The user turn is saved before the provider is called; the assistant
    reply is saved once the stream completes.

    Returns:
        text/event-stream of UI message stream frames
    """
    request_id = _request_id(request)
    session_id = chat_request.session_id
    if not session_id:
        raise _missing_session_error(request_id)

    logger.info(f"Chat request received: session_id={session_id}, messages={len(chat_request.messages)}")

    try:
        session_store.get_or_create(session_id)
        if chat_request.category:
            session_store.update_category(session_id, chat_request.category)

        last_message = chat_request.messages[-1] if chat_request.messages else None
        if last_message is not None and last_message.role == "user":
            session_store.append(session_id, "user", last_message.text("\n"))

        def save_reply(text: str) -> None:
            session_store.append(session_id, "assistant", text)

        frames = stream_relay.stream(
            to_provider_messages(chat_request.messages),
            CHAT_SYSTEM_PROMPT,
            on_finish=save_reply,
        )
        body = await prime_stream(frames)
    except Exception as e:
        raise provider_http_error(e, request_id)

    return StreamingResponse(body, media_type="text/event-stream", headers=SSE_HEADERS)


def _history_message(session_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
    message_id = f"msg-{row['id']}"
    message = {
        "id": message_id,
        "role": row["role"],
        "parts": [{"type": "text", "text": row["content"]}],
        "createdAt": row["created_at"].isoformat() if row["created_at"] else None,
    }
    if row["role"] == "assistant":
        parsed = parse_assistant_response(row["content"]).model_dump()
        parsed["videos"] = (
            video_suggestion_resolver.resolve(suggestion_key(session_id, message_id), parsed["video_search_terms"])
            if parsed["video_search_terms"] else []
        )
        message["parsed"] = parsed
    return message


@router.get("/chat")
async def chat_history(
    request: Request,
    session_id: Optional[str] = Query(None, alias="sessionId"),
    get_all: bool = Query(False, alias="getAll"),
):
    """
    Chat history for one session, or session summaries when getAll=true
    """
    request_id = _request_id(request)

    if get_all:
        sessions = session_store.list_sessions()
        return {"sessions": [SessionSummary(**s).model_dump(mode="json") for s in sessions]}

    if not session_id:
        raise _missing_session_error(request_id)

    history = session_store.history(session_id)
    logger.info(f"Loaded {len(history)} messages for session {session_id}")
    return {"messages": [_history_message(session_id, row) for row in history]}


@router.delete("/chat")
async def delete_chat(request: Request, session_id: Optional[str] = Query(None, alias="sessionId")):
    """Delete a session and all of its messages"""
    request_id = _request_id(request)
    if not session_id:
        raise _missing_session_error(request_id)

    session_store.delete(session_id)
    video_suggestion_resolver.evict(suggestion_key(session_id, ""))
    return {"success": True}
