"""
Video catalog API endpoints
"""

from fastapi import APIRouter, HTTPException, Request, Query
import logging
import uuid as uuid_lib

from app.schemas.chat import ApiError
from app.schemas.video import VideoSearchResponse, VideoSummary, VideoResponse, VideoDetail
from app.services.video_embed import is_valid_video_id, build_embed_url, thumbnail_candidates
from app.services.video_search import video_search_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/videos/search", response_model=VideoSearchResponse)
async def search_videos(
    q: str = Query("", description="Free-text query"),
    limit: int = Query(3, ge=1, le=50),
):
    """
    Free-text video search used for inline suggestions
    """
    if not q.strip():
        return VideoSearchResponse(videos=[])

    videos = video_search_service.search(query=q, limit=limit)
    return VideoSearchResponse(videos=[
        VideoSummary(
            video_id=v["video_id"],
            title=v["video_title"],
            topic=v["topic"],
            subtopic=v["subtopic"],
            url=v["url"],
        )
        for v in videos
    ])


@router.get("/videos/{video_id}", response_model=VideoResponse)
async def get_video(request: Request, video_id: str):
    """
    Look up one catalog video with its embed URL and thumbnail fallbacks
    """
    request_id = request.headers.get("X-Correlation-ID", str(uuid_lib.uuid4()))

    if not is_valid_video_id(video_id):
        error_response = ApiError.create(
            code="VIDEO_ERROR",
            message="Invalid video id",
            details={"video_id": video_id},
            request_id=request_id
        )
        raise HTTPException(status_code=400, detail=error_response.model_dump())

    video = video_search_service.get_by_id(video_id)
    if video is None:
        error_response = ApiError.create(
            code="NOT_FOUND",
            message="Video not found",
            details={"video_id": video_id},
            request_id=request_id
        )
        raise HTTPException(status_code=404, detail=error_response.model_dump())

    return VideoResponse(video=VideoDetail(
        **video,
        embed_url=build_embed_url(video_id),
        thumbnails=thumbnail_candidates(video),
    ))
