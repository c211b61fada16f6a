"""
Application database models.

An Application is one candidate's submission against one job. Its status is
owned by the lifecycle manager (app/services/lifecycle.py); every change is
recorded in the application_status_events ledger.
"""

import enum
import uuid
from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, Enum, DateTime, JSON, UniqueConstraint, Boolean
)
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.timeutils import utcnow


class ApplicationStatus(str, enum.Enum):
    """
    Application lifecycle:

    SUBMITTED -> UNDER_REVIEW -> INTERVIEW_SCHEDULED -> INTERVIEW_COMPLETED
        -> OFFER_MADE -> ACCEPTED

    REJECTED and WITHDRAWN are reachable from every open state and are
    terminal. ACCEPTED may still move to WITHDRAWN.
    """
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    OFFER_MADE = "offer_made"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class NoteType(str, enum.Enum):
    GENERAL = "general"
    INTERVIEW = "interview"
    SCREENING = "screening"
    FEEDBACK = "feedback"
    INTERNAL = "internal"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Shared column type so the PostgreSQL enum is declared once
application_status_type = Enum(ApplicationStatus, name="application_status", values_callable=_enum_values)


class Application(Base):
    """
    A candidate's application to a job posting.

    The profile snapshot columns are written once at submission and never
    touched by the pipeline.
    """
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("job_id", "candidate_id", name="uq_applications_job_candidate"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    candidate_id = Column(String(36), nullable=False, index=True)

    # Submitted profile snapshot (write-once)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    resume_url = Column(String, nullable=True)
    cover_letter = Column(Text, nullable=True)
    skills = Column(JSON, nullable=True)
    expected_salary = Column(String, nullable=True)

    status = Column(
        application_status_type,
        default=ApplicationStatus.SUBMITTED,
        nullable=False,
        index=True
    )

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    job = relationship("Job", back_populates="applications")
    interviews = relationship(
        "Interview",
        back_populates="application",
        order_by="Interview.scheduled_at"
    )
    status_events = relationship(
        "ApplicationStatusEvent",
        back_populates="application",
        order_by="ApplicationStatusEvent.id"
    )
    application_notes = relationship(
        "ApplicationNote",
        back_populates="application",
        order_by="ApplicationNote.created_at"
    )

    def __repr__(self):
        return f"<Application(id={self.id}, job_id={self.job_id}, status={self.status.value})>"


class ApplicationStatusEvent(Base):
    """
    Ledger entry for one application status change. Rows are never updated.

    ``from_status`` is NULL only for the initial submission event.
    """
    __tablename__ = "application_status_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=False, index=True)
    from_status = Column(application_status_type, nullable=True)
    to_status = Column(application_status_type, nullable=False)
    notes = Column(Text, nullable=True)
    actor_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    application = relationship("Application", back_populates="status_events")

    def __repr__(self):
        from_value = self.from_status.value if self.from_status else None
        return f"<ApplicationStatusEvent(application_id={self.application_id}, {from_value} -> {self.to_status.value})>"


class ApplicationNote(Base):
    """
    Free-text note an employer attaches to an application.

    Kept apart from the status ledger: notes never change the status and can
    be shared with the candidate.
    """
    __tablename__ = "application_notes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=False, index=True)
    note = Column(Text, nullable=False)
    note_type = Column(
        Enum(NoteType, name="application_note_type", values_callable=_enum_values),
        default=NoteType.GENERAL,
        nullable=False
    )
    is_visible_to_candidate = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    application = relationship("Application", back_populates="application_notes")

    def __repr__(self):
        return f"<ApplicationNote(application_id={self.application_id}, type={self.note_type.value})>"
