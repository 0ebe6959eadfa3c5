"""
OpenRouter client using the OpenAI-compatible interface
"""

import os
import logging
from typing import Optional
from openai import AsyncOpenAI
from openai import AuthenticationError as OpenAIAuthenticationError
from openai import APIError as OpenAIAPIError

from app.core.config import settings
from app.deps.exceptions import MissingAPIKeyError, InvalidAPIKeyError
from app.deps.utils import sanitize_api_key

logger = logging.getLogger(__name__)

_client: Optional[AsyncOpenAI] = None


def _get_api_key(api_key: Optional[str] = None) -> str:
    """
    Get API key from parameter, Settings, or environment variable (in that order).

    Raises:
        MissingAPIKeyError: If no API key is found
    """
    resolved_key = api_key or settings.openrouter_api_key or os.getenv("OPENROUTER_API_KEY")

    # Treat empty string as missing
    if not resolved_key or resolved_key.strip() == "":
        raise MissingAPIKeyError()

    return resolved_key.strip()


def get_openrouter_client(api_key: Optional[str] = None) -> AsyncOpenAI:
    """
    Return the shared async client, creating it on first use.

    Raises:
        MissingAPIKeyError: If no API key is configured
    """
    global _client
    if _client is not None and api_key is None:
        return _client

    client = AsyncOpenAI(
        api_key=_get_api_key(api_key),
        base_url=settings.openrouter_base_url,
        default_headers={
            "HTTP-Referer": settings.app_url,
            "X-Title": settings.app_title,
        },
    )
    if api_key is None:
        _client = client
    return client


def translate_provider_error(error: Exception) -> Exception:
    """
    Map an OpenAI SDK error onto the application's exception types with keys masked
    """
    if isinstance(error, (MissingAPIKeyError, InvalidAPIKeyError)):
        return error
    if isinstance(error, OpenAIAuthenticationError):
        logger.error(f"OpenRouter authentication failed: {sanitize_api_key(str(error))}")
        return InvalidAPIKeyError()
    if isinstance(error, OpenAIAPIError):
        message = sanitize_api_key(str(error))
        logger.error(f"OpenRouter API error: {message}")
        return RuntimeError(f"OpenRouter API error: {message}")
    message = sanitize_api_key(str(error))
    logger.error(f"OpenRouter request failed: {message}")
    return RuntimeError(f"OpenRouter request failed: {message}")
