"""
Resolves video search hints from assistant replies into catalog videos
"""

from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple
import logging

from app.services.video_search import VideoSearchService, video_search_service

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 3
MAX_CACHED_MESSAGES = 512


class VideoSuggestionResolver:
    """
    Memoised free-text lookup keyed by message

    A message's suggestions are looked up once; later renders of the same
    message reuse the stored result. Entries are keyed by the message key and
    the joined query, so a reused message id with different hints is looked up
    again. The least recently used entries are dropped past ``max_entries``.
    """

    def __init__(self, search_service: Optional[VideoSearchService] = None, max_entries: int = MAX_CACHED_MESSAGES):
        self.search_service = search_service or video_search_service
        self.max_entries = max_entries
        self._resolved: "OrderedDict[Tuple[str, str], List[Dict[str, Any]]]" = OrderedDict()

    def resolve(self, key: str, terms: List[str]) -> List[Dict[str, Any]]:
        query = " ".join(t for t in terms if t).strip()
        if not query:
            return []

        cache_key = (key, query)
        if cache_key in self._resolved:
            self._resolved.move_to_end(cache_key)
            return self._resolved[cache_key]

        try:
            videos = self.search_service.search(query=query, limit=SUGGESTION_LIMIT)
        except RuntimeError as e:
            logger.warning(f"Video suggestion lookup failed for {key}: {str(e)}")
            return []

        self._resolved[cache_key] = videos
        while len(self._resolved) > self.max_entries:
            self._resolved.popitem(last=False)
        return videos

    def evict(self, key_prefix: str) -> int:
        """
        Forget every entry whose message key starts with key_prefix

        Returns:
            Number of entries removed
        """
        stale = [k for k in self._resolved if k[0].startswith(key_prefix)]
        for cache_key in stale:
            del self._resolved[cache_key]
        if stale:
            logger.debug(f"Evicted {len(stale)} cached video suggestions for {key_prefix}")
        return len(stale)

    def clear(self) -> None:
        self._resolved.clear()

    def __len__(self) -> int:
        return len(self._resolved)


def suggestion_key(session_id: str, message_id: str) -> str:
    """Cache key for one stored message, grouped under its session"""
    return f"{session_id}/{message_id}"


video_suggestion_resolver = VideoSuggestionResolver()
