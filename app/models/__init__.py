# Database models
from app.core.database import Base
from .chat_history import ChatSession, ChatMessage
from .video import VideoRecord

__all__ = ["Base", "ChatSession", "ChatMessage", "VideoRecord"]
