"""
Video catalog model

Rows are written by the offline ingestion scripts; the API only reads them.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index
from sqlalchemy.sql import func
from app.core.database import Base

VIDEO_TOPICS = ("Technique", "Tactics", "Training", "Mindset")


class VideoRecord(Base):
    __tablename__ = "video_mapping"

    id = Column(Integer, primary_key=True, index=True)
    video_id = Column(String(11), unique=True, nullable=False, index=True)
    video_title = Column(String(500), nullable=False)
    topic = Column(String(20), nullable=False)  # One of VIDEO_TOPICS
    subtopic = Column(String(255), nullable=True)
    tags = Column(JSON, nullable=True)  # List of lowercase tag strings
    url = Column(Text, nullable=True)
    thumbnail = Column(Text, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    published_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_video_mapping_topic', 'topic'),
        Index('idx_video_mapping_view_count', 'view_count'),
    )
