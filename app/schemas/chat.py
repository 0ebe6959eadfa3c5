"""
Chat API schemas
"""

from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field, validator

ActionKind = Literal["explore_topic", "watch_video", "take_quiz", "ask_question"]
ACTION_KINDS = ("explore_topic", "watch_video", "take_quiz", "ask_question")


class MessagePart(BaseModel):
    """One part of a UI message; only text parts carry conversation content"""
    type: str
    text: Optional[str] = None

    class Config:
        extra = "allow"


class UIMessage(BaseModel):
    """Message in the browser's UI format (parts) or the plain format (content)"""
    id: Optional[str] = None
    role: Literal["user", "assistant", "system", "tool"]
    parts: Optional[List[MessagePart]] = None
    content: Optional[str] = None

    class Config:
        extra = "allow"

    def text(self, separator: str = "\n") -> str:
        """Text of the message, joining text parts when present"""
        if self.parts:
            return separator.join(p.text or "" for p in self.parts if p.type == "text")
        return self.content or ""


class ChatRequest(BaseModel):
    """Chat request schema"""
    messages: List[UIMessage] = Field(default_factory=list, description="Conversation so far, newest last")
    session_id: Optional[str] = Field(None, alias="sessionId", description="Browser-generated session id")
    category: Optional[str] = Field(None, description="Optional topic the session was opened from")

    class Config:
        populate_by_name = True

    @validator('session_id')
    def validate_session_id(cls, v):
        """Blank ids count as missing"""
        if v is None or not v.strip():
            return None
        return v.strip()


class SuggestedAction(BaseModel):
    """Follow-up button parsed from an assistant reply"""
    label: str
    action: ActionKind = "explore_topic"
    value: str
    video_id: Optional[str] = None


class QuizOption(BaseModel):
    id: str = "A"
    text: str = ""
    is_correct: bool = False


class Quiz(BaseModel):
    question: str
    options: List[QuizOption] = Field(default_factory=list)
    explanation: str = ""


class ParsedResponse(BaseModel):
    """Display state reconciled from one assistant turn"""
    text: str = Field(..., description="Reply with the fenced JSON block removed")
    actions: List[SuggestedAction] = Field(default_factory=list)
    video_search_terms: List[str] = Field(default_factory=list)
    quiz: Optional[Quiz] = None


class SessionSummary(BaseModel):
    session_id: str
    category: Optional[str] = None
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None
    first_message: Optional[str] = None
    message_count: int = 0


class ApiError(BaseModel):
    """Error response schema - follows standardized error model"""
    error: Dict[str, Any] = Field(..., description="Error object with code, message, details, requestId")

    @classmethod
    def create(cls, code: str, message: str, details: Optional[Dict[str, Any]] = None, request_id: str = "unknown"):
        """Helper method to create standardized error response"""
        return cls(error={
            "code": code,
            "message": message,
            "details": details or {},
            "requestId": request_id
        })
