"""
History Ledger: append-only status events for applications and interviews.

Every status change in the pipeline writes exactly one row here. Rows are
never updated or deleted. Functions add to the session but do not commit;
the service that owns the unit of work commits the ledger row together with
the status change it describes.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from app.models.application import ApplicationStatus, ApplicationStatusEvent
from app.models.interview import InterviewStatus, InterviewStatusEvent


def record_application_event(
    db: Session,
    application_id: str,
    from_status: Optional[ApplicationStatus],
    to_status: ApplicationStatus,
    actor_id: Optional[str],
    created_at: datetime,
    notes: Optional[str] = None
) -> ApplicationStatusEvent:
    """
    Append an application status event.

    Args:
        db: Database session
        application_id: Application the event belongs to
        from_status: Previous status (None for the submission event)
        to_status: New status
        actor_id: User who performed the change
        created_at: Event time (UTC)
        notes: Optional free-text note

    Returns:
        The pending ApplicationStatusEvent
    """
    event = ApplicationStatusEvent(
        application_id=application_id,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
        notes=notes,
        created_at=created_at
    )
    db.add(event)
    return event


def record_interview_event(
    db: Session,
    interview_id: str,
    from_status: Optional[InterviewStatus],
    to_status: InterviewStatus,
    actor_id: Optional[str],
    created_at: datetime,
    notes: Optional[str] = None
) -> InterviewStatusEvent:
    """Append an interview status event. Mirrors record_application_event."""
    event = InterviewStatusEvent(
        interview_id=interview_id,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
        notes=notes,
        created_at=created_at
    )
    db.add(event)
    return event


def get_application_events(
    db: Session,
    application_id: str,
    ascending: bool = False
) -> List[ApplicationStatusEvent]:
    """
    Application ledger, newest first for display or oldest first for replay.

    Insertion id breaks ties between events sharing a timestamp.
    """
    query = db.query(ApplicationStatusEvent).filter(
        ApplicationStatusEvent.application_id == application_id
    )
    if ascending:
        query = query.order_by(ApplicationStatusEvent.created_at.asc(), ApplicationStatusEvent.id.asc())
    else:
        query = query.order_by(ApplicationStatusEvent.created_at.desc(), ApplicationStatusEvent.id.desc())
    return query.all()


def get_interview_events(
    db: Session,
    interview_id: str,
    ascending: bool = False
) -> List[InterviewStatusEvent]:
    query = db.query(InterviewStatusEvent).filter(
        InterviewStatusEvent.interview_id == interview_id
    )
    if ascending:
        query = query.order_by(InterviewStatusEvent.created_at.asc(), InterviewStatusEvent.id.asc())
    else:
        query = query.order_by(InterviewStatusEvent.created_at.desc(), InterviewStatusEvent.id.desc())
    return query.all()
