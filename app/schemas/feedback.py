"""
Pydantic schemas for interview feedback and rollups.
"""

from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, Field
from app.models.feedback import Recommendation


class FeedbackCreateRequest(BaseModel):
    """
    Schema for submitting feedback. Rating range is enforced by the
    aggregator so library callers get the same InvalidRating error.
    """
    rating: Optional[int] = Field(None, description="1 (poor) to 5 (excellent)")
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    notes: Optional[str] = None
    recommendation: Recommendation
    is_visible_to_candidate: bool = False


class FeedbackUpdateRequest(BaseModel):
    rating: Optional[int] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    notes: Optional[str] = None
    recommendation: Optional[Recommendation] = None
    is_visible_to_candidate: Optional[bool] = None


class FeedbackResponse(BaseModel):
    id: str
    interview_id: str
    evaluator_id: str
    rating: Optional[int] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    notes: Optional[str] = None
    recommendation: Recommendation
    is_visible_to_candidate: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeedbackRollup(BaseModel):
    """
    Aggregate view over the latest feedback of each evaluator.

    - average_rating: mean of the ratings given (None when nobody rated)
    - recommendation_counts: count per recommendation, all five keys present
    - consensus: most common recommendation (None without feedback)
    """
    average_rating: Optional[float] = None
    recommendation_counts: Dict[Recommendation, int]
    consensus: Optional[Recommendation] = None
    feedback_count: int = 0
