"""
Custom exceptions for provider authentication and catalog lookups
"""


class ProviderAuthError(Exception):
    """Base exception for LLM/voice provider authentication errors"""
    pass


class MissingAPIKeyError(ProviderAuthError):
    """Raised when a provider API key is missing or empty"""

    def __init__(self, message: str = "OpenRouter API key is required. Please configure the OPENROUTER_API_KEY environment variable"):
        self.message = message
        super().__init__(self.message)


class InvalidAPIKeyError(ProviderAuthError):
    """Raised when a provider rejects the configured API key"""

    def __init__(self, message: str = "OpenRouter API key is invalid or authentication failed. Please verify your API key configuration"):
        self.message = message
        super().__init__(self.message)


class VoiceTokenError(Exception):
    """Raised when an ephemeral voice session token cannot be issued"""
    pass


class InvalidVideoIdError(ValueError):
    """Raised when a video id is not an 11-character YouTube identifier"""

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(f"Invalid video id: {video_id!r}")
