"""
YouTube embed and thumbnail helpers for catalog videos
"""

import re
from typing import Any, Dict, List

from app.deps.exceptions import InvalidVideoIdError

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

EMBED_BASE_URL = "https://www.youtube.com/embed"
THUMBNAIL_BASE_URL = "https://img.youtube.com/vi"

# watch?v=ID, youtu.be/ID, /embed/ID with an optional t= / start= offset in seconds
_REFERENCE_RE = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)"
    r"(?P<video_id>[A-Za-z0-9_-]{11})"
    r"(?:[?&](?:t|start)=(?P<start>\d+)s?)?"
)


def is_valid_video_id(video_id: Any) -> bool:
    return isinstance(video_id, str) and bool(VIDEO_ID_RE.match(video_id))


def build_embed_url(video_id: str, start_time: int = 0) -> str:
    """
    Autoplaying embed URL, starting at start_time seconds when positive

    Raises:
        InvalidVideoIdError: If video_id is not an 11-character YouTube id
    """
    if not is_valid_video_id(video_id):
        raise InvalidVideoIdError(video_id)
    if start_time and start_time > 0:
        return f"{EMBED_BASE_URL}/{video_id}?start={int(start_time)}&autoplay=1"
    return f"{EMBED_BASE_URL}/{video_id}?autoplay=1"


def thumbnail_candidates(video: Dict[str, Any]) -> List[str]:
    """
    Thumbnail URLs in fallback order: stored thumbnail, maxres, hq
    """
    candidates = []
    if video.get("thumbnail"):
        candidates.append(video["thumbnail"])
    video_id = video.get("video_id")
    if is_valid_video_id(video_id):
        for name in ("maxresdefault", "hqdefault"):
            url = f"{THUMBNAIL_BASE_URL}/{video_id}/{name}.jpg"
            if url not in candidates:
                candidates.append(url)
    return candidates


def extract_video_references(text: str) -> List[Dict[str, Any]]:
    """
    Find YouTube links in free text

    Returns:
        List of {"video_id", "start_time"} in order of appearance, deduplicated by id
    """
    references = []
    seen = set()
    for match in _REFERENCE_RE.finditer(text or ""):
        video_id = match.group("video_id")
        if video_id in seen:
            continue
        seen.add(video_id)
        start = match.group("start")
        references.append({"video_id": video_id, "start_time": int(start) if start else 0})
    return references
