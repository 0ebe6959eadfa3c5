"""
Voice coaching API schemas
"""

from pydantic import BaseModel


class VoiceTokenResponse(BaseModel):
    token: str
    model: str


class FaqResponse(BaseModel):
    content: str
