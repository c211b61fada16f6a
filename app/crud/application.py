"""
CRUD operations for Application model.

Status changes go through compare_and_set_status so that two writers racing
on the same application cannot both succeed. Nothing here commits.
"""

from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.application import Application, ApplicationNote, ApplicationStatus, NoteType
from app.models.job import Job


def create(
    db: Session,
    job_id: str,
    candidate_id: str,
    created_at: datetime,
    profile: Optional[dict] = None
) -> Application:
    """
    Add a new application in SUBMITTED status.

    Args:
        db: Database session
        job_id: Job being applied to
        candidate_id: Applying user
        created_at: Submission time (UTC)
        profile: Write-once profile snapshot fields

    Returns:
        Pending Application instance (flushed, so it has an id)
    """
    application = Application(
        job_id=job_id,
        candidate_id=candidate_id,
        status=ApplicationStatus.SUBMITTED,
        created_at=created_at,
        updated_at=created_at,
        **(profile or {})
    )
    db.add(application)
    db.flush()
    return application


def get_by_id(db: Session, application_id: str) -> Optional[Application]:
    return db.query(Application).filter(Application.id == application_id).first()


def get_for_candidate_and_job(db: Session, candidate_id: str, job_id: str) -> Optional[Application]:
    return db.query(Application).filter(
        Application.candidate_id == candidate_id,
        Application.job_id == job_id
    ).first()


def get_job(db: Session, job_id: str) -> Optional[Job]:
    return db.query(Job).filter(Job.id == job_id).first()


def list_for_candidate(db: Session, candidate_id: str) -> List[Application]:
    return db.query(Application).filter(
        Application.candidate_id == candidate_id
    ).order_by(Application.created_at.desc()).all()


def list_for_job(
    db: Session,
    job_id: str,
    status: Optional[ApplicationStatus] = None
) -> List[Application]:
    query = db.query(Application).filter(Application.job_id == job_id)
    if status:
        query = query.filter(Application.status == status)
    return query.order_by(Application.created_at.desc()).all()


def compare_and_set_status(
    db: Session,
    application_id: str,
    expected: ApplicationStatus,
    new_status: ApplicationStatus,
    updated_at: datetime
) -> bool:
    """
    Atomically move an application from `expected` to `new_status`.

    Issues a single UPDATE ... WHERE id = :id AND status = :expected.

    Returns:
        True if the row was updated, False if the stored status no longer
        matched `expected` (someone else got there first)
    """
    updated = db.query(Application).filter(
        Application.id == application_id,
        Application.status == expected
    ).update(
        {Application.status: new_status, Application.updated_at: updated_at},
        synchronize_session=False
    )
    return updated == 1


def count_by_status(db: Session, job_id: Optional[str] = None, candidate_id: Optional[str] = None) -> Dict[ApplicationStatus, int]:
    """
    Count applications per status, optionally scoped to a job or a candidate.

    Returns:
        Dict with every ApplicationStatus as key (zero when absent)
    """
    query = db.query(Application.status, func.count(Application.id))
    if job_id:
        query = query.filter(Application.job_id == job_id)
    if candidate_id:
        query = query.filter(Application.candidate_id == candidate_id)

    counts = {status: 0 for status in ApplicationStatus}
    for status, count in query.group_by(Application.status).all():
        counts[status] = count
    return counts


def add_note(
    db: Session,
    application_id: str,
    created_by: str,
    note: str,
    note_type: NoteType,
    is_visible_to_candidate: bool,
    created_at: datetime
) -> ApplicationNote:
    entry = ApplicationNote(
        application_id=application_id,
        created_by=created_by,
        note=note,
        note_type=note_type,
        is_visible_to_candidate=is_visible_to_candidate,
        created_at=created_at
    )
    db.add(entry)
    db.flush()
    return entry


def list_notes(db: Session, application_id: str, visible_only: bool = False) -> List[ApplicationNote]:
    """Notes on an application, oldest first. `visible_only` keeps those shared with the candidate."""
    query = db.query(ApplicationNote).filter(ApplicationNote.application_id == application_id)
    if visible_only:
        query = query.filter(ApplicationNote.is_visible_to_candidate.is_(True))
    return query.order_by(ApplicationNote.created_at, ApplicationNote.id).all()
