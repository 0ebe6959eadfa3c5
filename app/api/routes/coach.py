"""
Coaching form API endpoint
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
import logging

from app.api.routes.chat import SSE_HEADERS, provider_http_error, _request_id
from app.schemas.chat import ApiError
from app.schemas.coach import CoachRequest
from app.services.prompts import LEAD_MAGNET_SYSTEM_PROMPT, SEARCH_VIDEO_TOOL, create_system_prompt
from app.services.stream_relay import stream_relay, prime_stream, to_provider_messages

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/coach")
async def coach_endpoint(request: Request, coach_request: CoachRequest):
    """
    Stream a one-shot coaching plan with video library search available

    Nothing is persisted; the form flow is stateless.
    """
    request_id = _request_id(request)
    messages = to_provider_messages(coach_request.messages)
    if not messages:
        error_response = ApiError.create(
            code="VALIDATION_ERROR",
            message="Messages are required",
            details={"field": "messages"},
            request_id=request_id
        )
        raise HTTPException(status_code=400, detail=error_response.model_dump())

    system_prompt = (
        LEAD_MAGNET_SYSTEM_PROMPT if coach_request.is_lead_magnet
        else create_system_prompt(coach_request.context)
    )
    category = coach_request.context.category if coach_request.context else None
    logger.info(f"Coach request received: lead_magnet={coach_request.is_lead_magnet}, category={category}")

    try:
        frames = stream_relay.stream(messages, system_prompt, tools=[SEARCH_VIDEO_TOOL])
        body = await prime_stream(frames)
    except Exception as e:
        raise provider_http_error(e, request_id)

    return StreamingResponse(body, media_type="text/event-stream", headers=SSE_HEADERS)
