"""
Chat session store: append-only message log keyed by session id
"""

from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import logging
import re
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from app.core.config import settings
from app.core.database import get_db
from app.models.chat_history import ChatSession, ChatMessage

logger = logging.getLogger(__name__)

# Postgres text columns reject NUL; other C0 controls except \t \n \r are noise
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")


def sanitize_content(content: Optional[str]) -> str:
    """
    Strip null bytes and control characters, keeping newlines, tabs and carriage returns
    """
    if not content:
        return ""
    return _CONTROL_CHARS_RE.sub("", content)


class ChatSessionStore:
    """
    Durable conversation history backed by the chat_sessions / chat_messages tables
    """

    def _session_summary(self, db, session: ChatSession) -> Dict[str, Any]:
        message_count = db.query(func.count(ChatMessage.id)).filter(
            ChatMessage.session_id == session.session_id
        ).scalar()
        return {
            "session_id": session.session_id,
            "category": session.category,
            "created_at": session.created_at,
            "updated_at": session.updated_at,
            "message_count": message_count or 0,
        }

    def get_or_create(self, session_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Get existing session or create it

        Concurrent creators race on the unique session_id; the loser rolls back
        and reads the winner's row.

        Args:
            session_id: Browser-generated session id
            user_id: Optional owner

        Returns:
            Session summary dict including message_count
        """
        db = next(get_db())
        try:
            session = db.query(ChatSession).filter(ChatSession.session_id == session_id).first()
            if session:
                return self._session_summary(db, session)

            session = ChatSession(session_id=session_id, user_id=user_id)
            db.add(session)
            try:
                db.commit()
                logger.info(f"Created new chat session: {session_id}")
            except IntegrityError:
                db.rollback()
                logger.info(f"Chat session {session_id} created concurrently, reusing it")
                session = db.query(ChatSession).filter(ChatSession.session_id == session_id).one()
            else:
                db.refresh(session)

            return self._session_summary(db, session)
        finally:
            db.close()

    def append(
        self,
        session_id: str,
        role: str,
        content: str,
        tool_calls: Optional[Any] = None,
        tool_results: Optional[Any] = None,
        video_recommendations: Optional[List[str]] = None,
    ) -> Optional[int]:
        """
        Append one message to a session

        Database errors propagate to the caller; there is no retry.

        Returns:
            The new message id, or None when an empty user turn was skipped
        """
        sanitized = sanitize_content(content)
        if role == "user" and not sanitized.strip():
            logger.debug(f"Skipping empty user message for session {session_id}")
            return None

        db = next(get_db())
        try:
            message = ChatMessage(
                session_id=session_id,
                role=role,
                content=sanitized,
                tool_calls=tool_calls,
                tool_results=tool_results,
                video_recommendations=video_recommendations,
            )
            db.add(message)

            session = db.query(ChatSession).filter(ChatSession.session_id == session_id).first()
            if session is None:
                raise ValueError(f"Session {session_id} not found")
            session.updated_at = datetime.now(timezone.utc)

            db.commit()
            db.refresh(message)
            logger.info(f"Saved {role} message for session {session_id}")
            return message.id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def history(self, session_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Load conversation history, oldest first

        Args:
            session_id: Session id
            limit: Maximum number of messages (default settings.history_limit)

        Returns:
            List of message dicts; empty for unknown sessions
        """
        limit = limit or settings.history_limit
        db = next(get_db())
        try:
            messages = db.query(ChatMessage).filter(
                ChatMessage.session_id == session_id
            ).order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc()).limit(limit).all()

            return [
                {
                    "id": msg.id,
                    "role": msg.role,
                    "content": msg.content,
                    "tool_calls": msg.tool_calls,
                    "tool_results": msg.tool_results,
                    "video_recommendations": msg.video_recommendations,
                    "created_at": msg.created_at,
                }
                for msg in messages
            ]
        finally:
            db.close()

    def list_sessions(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Session summaries for the sidebar, most recently updated first
        """
        limit = limit or settings.sessions_limit
        db = next(get_db())
        try:
            first_message = (
                db.query(ChatMessage.content)
                .filter(ChatMessage.session_id == ChatSession.session_id, ChatMessage.role == "user")
                .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
                .limit(1)
                .correlate(ChatSession)
                .scalar_subquery()
            )
            message_count = (
                db.query(func.count(ChatMessage.id))
                .filter(ChatMessage.session_id == ChatSession.session_id)
                .correlate(ChatSession)
                .scalar_subquery()
            )
            rows = (
                db.query(ChatSession, first_message.label("first_message"), message_count.label("message_count"))
                .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
                .limit(limit)
                .all()
            )
            return [
                {
                    "session_id": session.session_id,
                    "category": session.category,
                    "created_at": session.created_at,
                    "updated_at": session.updated_at,
                    "first_message": first,
                    "message_count": count or 0,
                }
                for session, first, count in rows
            ]
        finally:
            db.close()

    def update_category(self, session_id: str, category: Optional[str]) -> None:
        """Set the session's category and bump updated_at"""
        db = next(get_db())
        try:
            session = db.query(ChatSession).filter(ChatSession.session_id == session_id).first()
            if session is None:
                raise ValueError(f"Session {session_id} not found")
            session.category = category
            session.updated_at = datetime.now(timezone.utc)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, session_id: str) -> bool:
        """
        Remove a session and its messages; unknown ids are a no-op

        Returns:
            True if a session row was deleted
        """
        db = next(get_db())
        try:
            db.query(ChatMessage).filter(ChatMessage.session_id == session_id).delete(synchronize_session=False)
            deleted = db.query(ChatSession).filter(ChatSession.session_id == session_id).delete(synchronize_session=False)
            db.commit()
            logger.info(f"Deleted chat session {session_id}" if deleted else f"No chat session {session_id} to delete")
            return bool(deleted)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


session_store = ChatSessionStore()
