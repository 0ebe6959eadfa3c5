"""
Coaching form API schemas
"""

from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field

from app.schemas.chat import UIMessage

Category = Literal["Technique", "Tactics", "Training", "Mindset"]


class UserProfile(BaseModel):
    stance: Optional[str] = None
    experience: Optional[str] = None
    name: Optional[str] = None


class CoachingContext(BaseModel):
    """Form answers sent alongside the coaching prompt"""
    category: Optional[Category] = None
    form_data: Dict[str, Any] = Field(default_factory=dict, alias="formData")
    user_profile: Optional[UserProfile] = Field(None, alias="userProfile")

    class Config:
        populate_by_name = True


class CoachRequest(BaseModel):
    messages: List[UIMessage] = Field(default_factory=list)
    context: Optional[CoachingContext] = None
    is_lead_magnet: bool = Field(False, alias="isLeadMagnet")

    class Config:
        populate_by_name = True


class VideoSelection(BaseModel):
    """Video surfaced by the search_video_library tool"""
    video_id: str
    title: str
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    reason: Optional[str] = None


class VideoRecommendation(BaseModel):
    video_id: str
    title: str = ""
    reason: Optional[str] = None


class CoachingResult(BaseModel):
    """Reconciled lead-magnet coaching output"""
    text: str
    response: Optional[str] = None
    video_recommendations: List[VideoRecommendation] = Field(default_factory=list)
