"""
Gemini Live token issuance

The browser (or VoiceCoachSession) connects to Gemini Live directly with a
one-use ephemeral token so the real API key never leaves the server.
"""

import os
import logging
import datetime
from typing import Any, Dict, Optional
from google import genai

from app.core.config import settings
from app.deps.exceptions import MissingAPIKeyError, VoiceTokenError
from app.deps.utils import sanitize_api_key

logger = logging.getLogger(__name__)

_client: Optional[genai.Client] = None


def get_gemini_client() -> genai.Client:
    """
    Return the shared Gemini client (v1alpha is required for ephemeral tokens)

    Raises:
        MissingAPIKeyError: If GOOGLE_API_KEY is not configured
    """
    global _client
    if _client is None:
        api_key = settings.google_api_key or os.getenv("GOOGLE_API_KEY")
        if not api_key or not api_key.strip():
            raise MissingAPIKeyError(
                "Google API key is required. Please configure the GOOGLE_API_KEY environment variable"
            )
        _client = genai.Client(
            api_key=api_key.strip(),
            http_options={"api_version": "v1alpha"},
        )
    return _client


async def issue_voice_token(client: Optional[genai.Client] = None) -> Dict[str, Any]:
    """
    Create a single-use ephemeral token for a live voice session

    Returns:
        Dict with the token name and the live model to connect to

    Raises:
        MissingAPIKeyError: If no key is configured
        VoiceTokenError: If the provider refuses to issue a token
    """
    client = client or get_gemini_client()
    expire_time = datetime.datetime.now(tz=datetime.timezone.utc) + datetime.timedelta(
        minutes=settings.voice_token_ttl_minutes
    )
    try:
        token = await client.aio.auth_tokens.create(
            config={
                "uses": 1,
                "expire_time": expire_time,
            }
        )
    except Exception as e:
        message = sanitize_api_key(str(e))
        logger.error(f"Voice token generation failed: {message}")
        raise VoiceTokenError(f"Failed to generate access token: {message}") from e

    logger.info("Ephemeral voice token generated")
    return {"token": token.name, "model": settings.voice_model}
