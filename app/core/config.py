"""
Application configuration
"""

import os
from typing import List, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./boxing_locker.db"  # Will be overridden by env var

    # OpenRouter (OpenAI-compatible chat completions)
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    chat_model: str = "google/gemini-2.5-flash"
    chat_temperature: float = 0.7
    chat_max_tokens: int = 2000
    max_tool_steps: int = 2  # Provider round trips allowed when tools are called
    app_url: str = "http://localhost:3000"  # Sent as HTTP-Referer to OpenRouter
    app_title: str = "The Boxing Locker - AI Coach"

    # Voice (Gemini Live)
    google_api_key: Optional[str] = None
    voice_model: str = "models/gemini-2.5-flash-native-audio-preview-12-2025"
    voice_token_ttl_minutes: int = 10
    faq_path: str = "./MATT_GODDARD_FAQ.md"
    faq_max_chars: int = 8000
    plan_output_dir: str = "./plans"

    # Chat history
    history_limit: int = 50
    sessions_limit: int = 50

    # Logging Configuration
    log_level: str = "INFO"
    debug: bool = False

    # CORS
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()

# Resolve relative paths once so background tasks don't depend on the working directory
if not os.path.isabs(settings.faq_path):
    settings.faq_path = os.path.abspath(settings.faq_path)
if not os.path.isabs(settings.plan_output_dir):
    settings.plan_output_dir = os.path.abspath(settings.plan_output_dir)
