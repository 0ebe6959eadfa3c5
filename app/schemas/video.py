"""
Video catalog API schemas
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class VideoSummary(BaseModel):
    """Compact search hit returned to the chat UI"""
    video_id: str
    title: str
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    url: Optional[str] = None


class VideoDetail(BaseModel):
    video_id: str
    video_title: str
    topic: str
    subtopic: Optional[str] = None
    tags: Optional[List[str]] = None
    thumbnail: Optional[str] = None
    url: Optional[str] = None
    view_count: int = 0
    embed_url: Optional[str] = None
    thumbnails: List[str] = Field(default_factory=list)


class VideoSearchResponse(BaseModel):
    videos: List[VideoSummary] = Field(default_factory=list)


class VideoResponse(BaseModel):
    video: VideoDetail
