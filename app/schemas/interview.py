"""
Pydantic schemas for Interview API requests/responses.
"""

import enum
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from app.models.interview import InterviewStatus, InterviewType, ParticipantRole, ParticipantStatus
from app.schemas.feedback import FeedbackResponse


class InterviewViewerRole(str, enum.Enum):
    """Whose interviews to list: a participant role, or every interview on the employer's jobs."""
    CANDIDATE = ParticipantRole.CANDIDATE.value
    INTERVIEWER = ParticipantRole.INTERVIEWER.value
    OBSERVER = ParticipantRole.OBSERVER.value
    EMPLOYER = "employer"


class InterviewScheduleRequest(BaseModel):
    """Schema for scheduling a new interview"""
    application_id: str
    interview_type: InterviewType
    scheduled_at: datetime
    duration_minutes: int = Field(..., description="Length of the interview; must be positive")
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    interviewer_ids: List[str] = Field(default_factory=list)
    observer_ids: List[str] = Field(default_factory=list)


class InterviewRescheduleRequest(BaseModel):
    scheduled_at: datetime
    duration_minutes: Optional[int] = None
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None


class InterviewCancelRequest(BaseModel):
    reason: Optional[str] = None


class InterviewCompleteRequest(BaseModel):
    notes: Optional[str] = None


class InterviewRespondRequest(BaseModel):
    """RSVP from a participant."""
    accept: bool


class ParticipantResponse(BaseModel):
    user_id: str
    role: ParticipantRole
    status: ParticipantStatus

    class Config:
        from_attributes = True


class InterviewResponse(BaseModel):
    id: str
    application_id: str
    interview_type: InterviewType
    status: InterviewStatus
    scheduled_at: datetime
    duration_minutes: int
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    created_by: str
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    participants: List[ParticipantResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class InterviewStatusEventResponse(BaseModel):
    id: int
    interview_id: str
    from_status: Optional[InterviewStatus] = None
    to_status: InterviewStatus
    notes: Optional[str] = None
    actor_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InterviewDetailsResponse(InterviewResponse):
    """Interview with everything the details view shows."""
    feedback: List[FeedbackResponse] = Field(default_factory=list)
    history: List[InterviewStatusEventResponse] = Field(default_factory=list)


class InterviewTypeInfo(BaseModel):
    """Catalogue entry describing an interview type."""
    id: InterviewType
    name: str
    description: str
    requires: Optional[str] = Field(None, description="Field that must be set for this type")


class InterviewStatistics(BaseModel):
    total: int
    upcoming: int
    completed: int
    cancelled: int
    today: int
