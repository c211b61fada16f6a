"""
Application endpoints: submission, status transitions, withdrawal, history
and the per-job / per-candidate dashboards.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import (
    ensure_application_party,
    ensure_employer,
    get_current_actor_id,
    get_feedback_aggregator,
    get_lifecycle,
    get_scheduler,
    is_employer,
)
from app.core.exceptions import ConcurrentModification, NotFound, Unauthorized
from app.crud import application as application_crud
from app.models.application import ApplicationStatus
from app.schemas.application import (
    ApplicationCreateRequest,
    ApplicationNoteCreateRequest,
    ApplicationNoteResponse,
    ApplicationProfile,
    ApplicationResponse,
    ApplicationStatusEventResponse,
    ApplicationTransitionRequest,
    ApplicationWithdrawRequest,
    ApplicationWithdrawResponse,
    CandidateAnalytics,
    JobApplicationStats,
)
from app.schemas.feedback import FeedbackRollup
from app.schemas.interview import InterviewResponse
from app.services import queries
from app.services.feedback import FeedbackAggregator
from app.services.lifecycle import ApplicationLifecycleManager
from app.services.scheduler import InterviewScheduler

router = APIRouter(tags=["Applications"])
logger = logging.getLogger(__name__)


@router.post("/applications", status_code=201, response_model=ApplicationResponse)
def submit_application(
    request: ApplicationCreateRequest,
    actor_id: str = Depends(get_current_actor_id),
    lifecycle: ApplicationLifecycleManager = Depends(get_lifecycle)
):
    """
    Apply to a job as the authenticated candidate.

    The profile fields are a snapshot taken now; later profile edits do not
    change the application.
    """
    profile = ApplicationProfile(**request.model_dump(exclude={"job_id"}))
    return lifecycle.submit(request.job_id, actor_id, profile=profile)


@router.get("/applications", response_model=List[ApplicationResponse])
def list_my_applications(
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db)
):
    """Applications submitted by the authenticated candidate, newest first."""
    return application_crud.list_for_candidate(db, actor_id)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: str,
    actor_id: str = Depends(get_current_actor_id),
    lifecycle: ApplicationLifecycleManager = Depends(get_lifecycle)
):
    application = lifecycle.get(application_id)
    ensure_application_party(application, actor_id)
    return application


@router.post("/applications/{application_id}/transition", response_model=ApplicationResponse)
def transition_application(
    application_id: str,
    request: ApplicationTransitionRequest,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """
    Move an application to a new status.

    Send `expected_status` to have the change refused (409) if someone else
    moved the application since you last looked at it. A candidate moving
    their own application to `withdrawn` gets the same treatment as
    POST /withdraw, pending interviews included.
    """
    lifecycle = scheduler.lifecycle
    application = lifecycle.get(application_id)
    if (
        request.target_status == ApplicationStatus.WITHDRAWN
        and actor_id == application.candidate_id
        and not is_employer(application, actor_id)
    ):
        if request.expected_status is not None and application.status != request.expected_status:
            raise ConcurrentModification(
                f"Application {application_id} is {application.status.value}, expected {request.expected_status.value}"
            )
        application, _ = scheduler.withdraw_application(application_id, actor_id, reason=request.notes)
        return lifecycle.reload(application.id)

    application = lifecycle.transition(
        application_id,
        request.target_status,
        actor_id,
        notes=request.notes,
        expected_status=request.expected_status
    )
    return lifecycle.reload(application.id)


@router.post("/applications/{application_id}/withdraw", response_model=ApplicationWithdrawResponse)
def withdraw_application(
    application_id: str,
    request: Optional[ApplicationWithdrawRequest] = None,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """
    Withdraw your own application. Pending interviews are cancelled in the
    same operation.
    """
    reason = request.reason if request else None
    application, cancelled = scheduler.withdraw_application(application_id, actor_id, reason=reason)
    return ApplicationWithdrawResponse(
        application=ApplicationResponse.model_validate(scheduler.lifecycle.reload(application.id)),
        cancelled_interview_ids=[interview.id for interview in cancelled]
    )


@router.get("/applications/{application_id}/history", response_model=List[ApplicationStatusEventResponse])
def get_application_history(
    application_id: str,
    ascending: bool = Query(False, description="Oldest first instead of newest first"),
    actor_id: str = Depends(get_current_actor_id),
    lifecycle: ApplicationLifecycleManager = Depends(get_lifecycle)
):
    ensure_application_party(lifecycle.get(application_id), actor_id)
    return queries.get_application_history(lifecycle.db, application_id, ascending=ascending)


@router.post("/applications/{application_id}/notes", status_code=201, response_model=ApplicationNoteResponse)
def add_application_note(
    application_id: str,
    request: ApplicationNoteCreateRequest,
    actor_id: str = Depends(get_current_actor_id),
    lifecycle: ApplicationLifecycleManager = Depends(get_lifecycle)
):
    """Add an employer note. Set `is_visible_to_candidate` to share it with the applicant."""
    ensure_employer(lifecycle.get(application_id), actor_id)
    return lifecycle.add_note(
        application_id,
        actor_id,
        request.note,
        note_type=request.note_type,
        visible_to_candidate=request.is_visible_to_candidate
    )


@router.get("/applications/{application_id}/notes", response_model=List[ApplicationNoteResponse])
def list_application_notes(
    application_id: str,
    actor_id: str = Depends(get_current_actor_id),
    lifecycle: ApplicationLifecycleManager = Depends(get_lifecycle)
):
    """Notes on the application, oldest first. Candidates only see shared notes."""
    application = lifecycle.get(application_id)
    ensure_application_party(application, actor_id)
    candidate_view = not is_employer(application, actor_id)
    return lifecycle.list_notes(application_id, candidate_view=candidate_view)


@router.get("/applications/{application_id}/interviews", response_model=List[InterviewResponse])
def get_application_interviews(
    application_id: str,
    actor_id: str = Depends(get_current_actor_id),
    lifecycle: ApplicationLifecycleManager = Depends(get_lifecycle)
):
    ensure_application_party(lifecycle.get(application_id), actor_id)
    return queries.get_interviews_for_application(lifecycle.db, application_id)


@router.get("/applications/{application_id}/feedback/rollup", response_model=FeedbackRollup)
def get_application_feedback_rollup(
    application_id: str,
    actor_id: str = Depends(get_current_actor_id),
    aggregator: FeedbackAggregator = Depends(get_feedback_aggregator)
):
    """Feedback rollup across every completed interview of the application (employer only)."""
    application = application_crud.get_by_id(aggregator.db, application_id)
    if not application:
        raise NotFound(f"Application {application_id} not found")
    ensure_employer(application, actor_id)
    return aggregator.application_rollup(application_id)


@router.post("/applications/{application_id}/reconcile", response_model=ApplicationResponse)
def reconcile_application(
    application_id: str,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """
    Bring the application status in line with its interviews after a
    partially failed schedule/complete (HTTP 207).
    """
    ensure_employer(scheduler.lifecycle.get(application_id), actor_id)
    return scheduler.reconcile(application_id, actor_id)


@router.get("/jobs/{job_id}/applications", response_model=List[ApplicationResponse])
def list_job_applications(
    job_id: str,
    status: Optional[ApplicationStatus] = None,
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db)
):
    _ensure_job_owner(db, job_id, actor_id)
    return application_crud.list_for_job(db, job_id, status=status)


@router.get("/jobs/{job_id}/application-stats", response_model=JobApplicationStats)
def get_job_application_stats(
    job_id: str,
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db)
):
    _ensure_job_owner(db, job_id, actor_id)
    return queries.get_job_application_stats(db, job_id)


@router.get("/candidates/{candidate_id}/analytics", response_model=CandidateAnalytics)
def get_candidate_analytics(
    candidate_id: str,
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db)
):
    """A candidate's own application funnel. Candidates can only see their own."""
    if candidate_id != actor_id:
        raise Unauthorized(f"User {actor_id} cannot view analytics of {candidate_id}")
    return queries.get_candidate_analytics(db, candidate_id)


def _ensure_job_owner(db: Session, job_id: str, actor_id: str) -> None:
    job = application_crud.get_job(db, job_id)
    if not job:
        raise NotFound(f"Job {job_id} not found")
    if job.employer_id != actor_id:
        raise Unauthorized(f"User {actor_id} does not own job {job_id}")
