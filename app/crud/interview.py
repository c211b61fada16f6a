"""
CRUD operations for Interview and InterviewParticipant models.

Like the application repository, status writes are compare-and-swap and
nothing here commits.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session
from app.models.application import Application
from app.models.interview import (
    Interview,
    InterviewParticipant,
    InterviewStatus,
    InterviewType,
    ParticipantRole,
    ParticipantStatus,
)
from app.models.job import Job

# Interviews that still occupy a slot on someone's calendar
ACTIVE_STATUSES = (
    InterviewStatus.SCHEDULED,
    InterviewStatus.CONFIRMED,
    InterviewStatus.RESCHEDULED,
    InterviewStatus.IN_PROGRESS,
)


def create(
    db: Session,
    application_id: str,
    interview_type: InterviewType,
    scheduled_at: datetime,
    duration_minutes: int,
    created_by: str,
    created_at: datetime,
    location: Optional[str] = None,
    meeting_link: Optional[str] = None,
    notes: Optional[str] = None
) -> Interview:
    """
    Add a new interview in SCHEDULED status.

    Returns:
        Pending Interview instance (flushed, so it has an id)
    """
    interview = Interview(
        application_id=application_id,
        interview_type=interview_type,
        status=InterviewStatus.SCHEDULED,
        scheduled_at=scheduled_at,
        duration_minutes=duration_minutes,
        location=location,
        meeting_link=meeting_link,
        notes=notes,
        created_by=created_by,
        created_at=created_at,
        updated_at=created_at
    )
    db.add(interview)
    db.flush()
    return interview


def add_participants(
    db: Session,
    interview: Interview,
    participants: Iterable[Tuple[str, ParticipantRole]]
) -> List[InterviewParticipant]:
    """
    Insert all participants of an interview in one flush.

    Args:
        participants: (user_id, role) pairs, already de-duplicated
    """
    rows = [
        InterviewParticipant(
            interview_id=interview.id,
            user_id=user_id,
            role=role,
            status=ParticipantStatus.INVITED
        )
        for user_id, role in participants
    ]
    db.add_all(rows)
    db.flush()
    return rows


def get_by_id(db: Session, interview_id: str) -> Optional[Interview]:
    return db.query(Interview).filter(Interview.id == interview_id).first()


def get_participant(db: Session, interview_id: str, user_id: str) -> Optional[InterviewParticipant]:
    return db.query(InterviewParticipant).filter(
        InterviewParticipant.interview_id == interview_id,
        InterviewParticipant.user_id == user_id
    ).first()


def compare_and_set_status(
    db: Session,
    interview_id: str,
    expected: InterviewStatus,
    new_status: InterviewStatus,
    updated_at: datetime,
    **values
) -> bool:
    """
    Atomically move an interview from `expected` to `new_status`.

    Extra column values (scheduled_at, notes, completed_at, ...) are written
    in the same UPDATE statement.

    Returns:
        True if the row was updated, False if the stored status changed
    """
    changes = {Interview.status: new_status, Interview.updated_at: updated_at}
    for column_name, value in values.items():
        changes[getattr(Interview, column_name)] = value

    updated = db.query(Interview).filter(
        Interview.id == interview_id,
        Interview.status == expected
    ).update(changes, synchronize_session=False)
    return updated == 1


def set_participant_status(
    db: Session,
    interview_id: str,
    status: ParticipantStatus,
    only_from: Optional[Iterable[ParticipantStatus]] = None,
    role: Optional[ParticipantRole] = None
) -> int:
    """
    Bulk-update participant statuses for one interview.

    Args:
        only_from: restrict to participants currently in one of these statuses
        role: restrict to participants with this role

    Returns:
        Number of participant rows updated
    """
    query = db.query(InterviewParticipant).filter(InterviewParticipant.interview_id == interview_id)
    if only_from is not None:
        query = query.filter(InterviewParticipant.status.in_(list(only_from)))
    if role is not None:
        query = query.filter(InterviewParticipant.role == role)
    return query.update({InterviewParticipant.status: status}, synchronize_session=False)


def list_for_application(db: Session, application_id: str) -> List[Interview]:
    return db.query(Interview).filter(
        Interview.application_id == application_id
    ).order_by(Interview.scheduled_at.asc()).all()


def list_active_for_application(db: Session, application_id: str) -> List[Interview]:
    return db.query(Interview).filter(
        Interview.application_id == application_id,
        Interview.status.in_(ACTIVE_STATUSES)
    ).order_by(Interview.scheduled_at.asc()).all()


def list_for_user(
    db: Session,
    user_id: str,
    role: Optional[ParticipantRole] = None,
    status: Optional[InterviewStatus] = None
) -> List[Interview]:
    """Interviews where the user is a participant, optionally in a given role."""
    query = db.query(Interview).join(
        InterviewParticipant, InterviewParticipant.interview_id == Interview.id
    ).filter(InterviewParticipant.user_id == user_id)
    if role:
        query = query.filter(InterviewParticipant.role == role)
    if status:
        query = query.filter(Interview.status == status)
    return query.order_by(Interview.scheduled_at.asc()).all()


def list_for_employer(
    db: Session,
    employer_id: str,
    status: Optional[InterviewStatus] = None
) -> List[Interview]:
    """Interviews scheduled against applications to jobs the employer owns."""
    query = db.query(Interview).join(
        Application, Application.id == Interview.application_id
    ).join(
        Job, Job.id == Application.job_id
    ).filter(Job.employer_id == employer_id)
    if status:
        query = query.filter(Interview.status == status)
    return query.order_by(Interview.scheduled_at.asc()).all()


def list_active_for_users(
    db: Session,
    user_ids: Iterable[str],
    window_end: datetime,
    exclude_interview_id: Optional[str] = None
) -> List[Interview]:
    """
    Active interviews of any of the given participants starting before
    `window_end`. Callers check the end-of-interview overlap themselves,
    since interval arithmetic is not portable across databases.
    """
    user_ids = list(user_ids)
    if not user_ids:
        return []
    query = db.query(Interview).join(
        InterviewParticipant, InterviewParticipant.interview_id == Interview.id
    ).filter(
        InterviewParticipant.user_id.in_(user_ids),
        Interview.status.in_(ACTIVE_STATUSES),
        Interview.scheduled_at < window_end
    )
    if exclude_interview_id:
        query = query.filter(Interview.id != exclude_interview_id)
    return query.distinct().all()
