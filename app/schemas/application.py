"""
Pydantic schemas for Application API requests/responses.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr
from app.models.application import ApplicationStatus, NoteType


class ApplicationProfile(BaseModel):
    """Profile snapshot captured at submission. Never modified afterwards."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    resume_url: Optional[str] = Field(None, description="Reference to the stored résumé file")
    cover_letter: Optional[str] = None
    skills: Optional[List[str]] = None
    expected_salary: Optional[str] = None


class ApplicationCreateRequest(ApplicationProfile):
    """Schema for submitting an application. The candidate is the authenticated actor."""
    job_id: str = Field(..., min_length=1)


class ApplicationTransitionRequest(BaseModel):
    """Schema for requesting an application status change."""
    target_status: ApplicationStatus
    notes: Optional[str] = None
    expected_status: Optional[ApplicationStatus] = Field(
        None,
        description="Status the caller last saw; the change is refused if it has moved on"
    )


class ApplicationWithdrawRequest(BaseModel):
    reason: Optional[str] = None


class ApplicationResponse(ApplicationProfile):
    id: str
    job_id: str
    candidate_id: str
    status: ApplicationStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApplicationStatusEventResponse(BaseModel):
    id: int
    application_id: str
    from_status: Optional[ApplicationStatus] = None
    to_status: ApplicationStatus
    notes: Optional[str] = None
    actor_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ApplicationNoteCreateRequest(BaseModel):
    note: str = Field(..., min_length=1)
    note_type: NoteType = NoteType.GENERAL
    is_visible_to_candidate: bool = False


class ApplicationNoteResponse(BaseModel):
    id: str
    application_id: str
    note: str
    note_type: NoteType
    is_visible_to_candidate: bool
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class JobApplicationStats(BaseModel):
    """Per-status application counts for one job."""
    job_id: str
    total: int
    by_status: Dict[ApplicationStatus, int]


class CandidateAnalytics(BaseModel):
    """A candidate's own application funnel."""
    candidate_id: str
    total_applications: int
    applications_this_month: int
    response_rate: int = Field(..., description="Percent of applications that moved past submitted")
    interview_rate: int = Field(..., description="Percent of applications that reached an interview")
    status_breakdown: Dict[ApplicationStatus, int]


class ApplicationWithdrawResponse(BaseModel):
    """Withdrawn application plus the interviews cancelled along with it."""
    application: ApplicationResponse
    cancelled_interview_ids: List[str] = Field(default_factory=list)
