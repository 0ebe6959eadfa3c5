"""
Voice coaching API endpoints
"""

from fastapi import APIRouter, HTTPException, Request
from pathlib import Path
import logging
import uuid as uuid_lib

from app.core.config import settings
from app.deps.exceptions import MissingAPIKeyError, VoiceTokenError
from app.deps.gemini_client import issue_voice_token
from app.schemas.chat import ApiError
from app.schemas.voice import VoiceTokenResponse, FaqResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/voice/connect", response_model=VoiceTokenResponse)
async def voice_connect(request: Request):
    """
    Issue a single-use ephemeral token for a live voice session
    """
    request_id = request.headers.get("X-Correlation-ID", str(uuid_lib.uuid4()))
    try:
        return VoiceTokenResponse(**(await issue_voice_token()))
    except MissingAPIKeyError as e:
        logger.error(f"Google API key missing: {str(e)}")
        error_response = ApiError.create(
            code="AUTH_ERROR",
            message="Google API key is not configured",
            details={"error_type": "missing_api_key"},
            request_id=request_id
        )
        raise HTTPException(status_code=500, detail=error_response.model_dump())
    except VoiceTokenError as e:
        error_response = ApiError.create(
            code="VOICE_ERROR",
            message="Failed to generate access token",
            details={"error": str(e)},
            request_id=request_id
        )
        raise HTTPException(status_code=500, detail=error_response.model_dump())


@router.get("/voice/faq", response_model=FaqResponse)
async def voice_faq(request: Request):
    """
    Coach FAQ used as background for the voice persona, truncated to faq_max_chars
    """
    try:
        content = Path(settings.faq_path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to load FAQ from {settings.faq_path}: {str(e)}")
        error_response = ApiError.create(
            code="FAQ_ERROR",
            message="Failed to load FAQ",
            details={},
            request_id=request.headers.get("X-Correlation-ID", str(uuid_lib.uuid4()))
        )
        raise HTTPException(status_code=500, detail=error_response.model_dump())

    return FaqResponse(content=content[:settings.faq_max_chars])
