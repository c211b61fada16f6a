"""
Interview database models.

Interviews are scheduled against an application and move through their own
status machine (app/services/scheduler.py). Participants and status events
hang off the interview; nothing here is ever hard-deleted.
"""

import enum
import uuid
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.timeutils import utcnow


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class InterviewType(str, enum.Enum):
    PHONE = "phone"
    VIDEO = "video"
    TECHNICAL = "technical"
    PANEL = "panel"
    IN_PERSON = "in_person"
    FINAL = "final"


class InterviewStatus(str, enum.Enum):
    """
    Interview lifecycle:

    SCHEDULED -> CONFIRMED -> IN_PROGRESS -> COMPLETED
        |            |
        +-> RESCHEDULED (behaves like SCHEDULED with a new time)
        +-> CANCELLED / NO_SHOW (terminal)
    """
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    NO_SHOW = "no_show"


class ParticipantRole(str, enum.Enum):
    CANDIDATE = "candidate"
    INTERVIEWER = "interviewer"
    OBSERVER = "observer"


class ParticipantStatus(str, enum.Enum):
    INVITED = "invited"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    ATTENDED = "attended"
    NO_SHOW = "no_show"


interview_status_type = Enum(InterviewStatus, name="interview_status", values_callable=_enum_values)


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=False, index=True)

    interview_type = Column(
        Enum(InterviewType, name="interview_type", values_callable=_enum_values),
        nullable=False
    )
    status = Column(interview_status_type, default=InterviewStatus.SCHEDULED, nullable=False, index=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    location = Column(String, nullable=True)
    meeting_link = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(String(36), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    application = relationship("Application", back_populates="interviews")
    participants = relationship(
        "InterviewParticipant",
        back_populates="interview",
        order_by="InterviewParticipant.id",
        cascade="all, delete-orphan"
    )
    feedback = relationship(
        "InterviewFeedback",
        back_populates="interview",
        order_by="InterviewFeedback.id"
    )
    status_events = relationship(
        "InterviewStatusEvent",
        back_populates="interview",
        order_by="InterviewStatusEvent.id"
    )

    @property
    def candidate_participant(self):
        for participant in self.participants:
            if participant.role == ParticipantRole.CANDIDATE:
                return participant
        return None

    def __repr__(self):
        return f"<Interview(id={self.id}, application_id={self.application_id}, status={self.status.value})>"


class InterviewParticipant(Base):
    """A user attached to an interview in a given role."""
    __tablename__ = "interview_participants"
    __table_args__ = (
        UniqueConstraint("interview_id", "user_id", name="uq_interview_participants_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    interview_id = Column(String(36), ForeignKey("interviews.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(
        Enum(ParticipantRole, name="participant_role", values_callable=_enum_values),
        nullable=False
    )
    status = Column(
        Enum(ParticipantStatus, name="participant_status", values_callable=_enum_values),
        default=ParticipantStatus.INVITED,
        nullable=False
    )

    interview = relationship("Interview", back_populates="participants")

    def __repr__(self):
        return f"<InterviewParticipant(interview_id={self.interview_id}, user_id={self.user_id}, role={self.role.value})>"


class InterviewStatusEvent(Base):
    """Ledger entry for one interview status change. Same shape as the application ledger."""
    __tablename__ = "interview_status_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    interview_id = Column(String(36), ForeignKey("interviews.id"), nullable=False, index=True)
    from_status = Column(interview_status_type, nullable=True)
    to_status = Column(interview_status_type, nullable=False)
    notes = Column(Text, nullable=True)
    actor_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    interview = relationship("Interview", back_populates="status_events")
