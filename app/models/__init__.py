"""
Database models package.
"""

from app.models.job import Job
from app.models.application import (
    Application,
    ApplicationNote,
    ApplicationStatus,
    ApplicationStatusEvent,
    NoteType,
)
from app.models.interview import (
    Interview,
    InterviewParticipant,
    InterviewStatus,
    InterviewStatusEvent,
    InterviewType,
    ParticipantRole,
    ParticipantStatus,
)
from app.models.feedback import InterviewFeedback, Recommendation

__all__ = [
    "Job",
    "Application",
    "ApplicationStatus",
    "ApplicationStatusEvent",
    "ApplicationNote",
    "NoteType",
    "Interview",
    "InterviewParticipant",
    "InterviewStatus",
    "InterviewStatusEvent",
    "InterviewType",
    "ParticipantRole",
    "ParticipantStatus",
    "InterviewFeedback",
    "Recommendation",
]
