"""
Video catalog search over the video_mapping table
"""

from typing import List, Dict, Any, Optional, Sequence
import logging
from sqlalchemy import func, or_
from app.core.database import get_db
from app.models.video import VideoRecord

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
MIN_TOKEN_LENGTH = 3
MAX_TOKENS = 3

# Filter combinations tried in order; a tier applies only when all its filters were supplied
CASCADE_TIERS = (
    ("category", "subtopic", "tags"),
    ("category", "subtopic"),
    ("category", "tags"),
    ("subtopic", "tags"),
    ("category",),
    ("subtopic",),
    ("tags",),
    (),
)


def tokenize_query(query: str) -> List[str]:
    """Lowercase whitespace tokens of at least three characters, first three only"""
    words = [w for w in query.lower().split() if len(w) >= MIN_TOKEN_LENGTH]
    return words[:MAX_TOKENS]


def video_to_dict(video: VideoRecord) -> Dict[str, Any]:
    return {
        "video_id": video.video_id,
        "video_title": video.video_title,
        "topic": video.topic,
        "subtopic": video.subtopic,
        "tags": video.tags,
        "thumbnail": video.thumbnail,
        "url": video.url,
        "view_count": video.view_count or 0,
    }


def _has_tag_overlap(video_tags: Optional[Sequence[str]], wanted: set) -> bool:
    if not video_tags:
        return False
    return any(isinstance(t, str) and t.lower() in wanted for t in video_tags)


class VideoSearchService:
    """
    Free-text and structured search over the video catalog
    """

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        subtopic: Optional[str] = None,
        tags: Optional[List[str]] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict[str, Any]]:
        """
        Search the catalog

        A free-text query takes precedence over the structured filters.

        Args:
            query: Free text matched against titles and subtopics
            category: Exact topic (Technique, Tactics, Training, Mindset)
            subtopic: Case-insensitive substring of the subtopic
            tags: Any overlap with the video's tags
            limit: Maximum number of results

        Returns:
            List of video dicts ordered by popularity
        """
        limit = limit or DEFAULT_LIMIT
        db = next(get_db())
        try:
            if query:
                return self._text_search(db, query, limit)
            return self._cascade_search(db, category, subtopic, tags, limit)
        except Exception as e:
            logger.error(f"Video search failed: {str(e)}")
            raise RuntimeError(f"Video search failed: {str(e)}")
        finally:
            db.close()

    def _text_search(self, db, query: str, limit: int) -> List[Dict[str, Any]]:
        words = tokenize_query(query)
        q = db.query(VideoRecord)
        if words:
            conditions = []
            for word in words:
                pattern = f"%{word}%"
                conditions.append(func.lower(VideoRecord.video_title).like(pattern))
                conditions.append(func.lower(func.coalesce(VideoRecord.subtopic, "")).like(pattern))
            q = q.filter(or_(*conditions))
        else:
            logger.debug(f"No usable search terms in '{query}', returning most viewed")

        videos = q.order_by(VideoRecord.view_count.desc(), VideoRecord.id.asc()).limit(limit).all()
        logger.info(f"Text search for '{query}' returned {len(videos)} videos")
        return [video_to_dict(v) for v in videos]

    def _cascade_search(
        self,
        db,
        category: Optional[str],
        subtopic: Optional[str],
        tags: Optional[List[str]],
        limit: int,
    ) -> List[Dict[str, Any]]:
        supplied = {
            "category": bool(category),
            "subtopic": bool(subtopic),
            "tags": bool(tags),
        }
        wanted_tags = {t.lower() for t in tags or [] if isinstance(t, str)}

        for tier in CASCADE_TIERS:
            if not all(supplied[name] for name in tier):
                continue

            q = db.query(VideoRecord)
            if "category" in tier:
                q = q.filter(VideoRecord.topic == category)
            if "subtopic" in tier:
                q = q.filter(func.lower(VideoRecord.subtopic).like(f"%{subtopic.lower()}%"))
            q = q.order_by(
                VideoRecord.view_count.desc(),
                VideoRecord.created_at.desc(),
                VideoRecord.id.desc(),
            )

            if "tags" in tier:
                # Tags live in a JSON column, so overlap is checked after the query
                videos = [v for v in q.all() if _has_tag_overlap(v.tags, wanted_tags)][:limit]
            else:
                videos = q.limit(limit).all()

            if videos:
                logger.info(f"Video search matched tier {'+'.join(tier) or 'all'} with {len(videos)} videos")
                return [video_to_dict(v) for v in videos]

        return []

    def get_by_id(self, video_id: str) -> Optional[Dict[str, Any]]:
        """Look up one video; None when it is not in the catalog"""
        db = next(get_db())
        try:
            video = db.query(VideoRecord).filter(VideoRecord.video_id == video_id).first()
            return video_to_dict(video) if video else None
        finally:
            db.close()


video_search_service = VideoSearchService()
