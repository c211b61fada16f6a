"""
Interview endpoints: scheduling, the interview status machine, RSVPs and
the interview dashboards.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import (
    ensure_employer,
    ensure_interview_party,
    get_current_actor_id,
    get_scheduler,
)
from app.models.interview import InterviewStatus
from app.schemas.interview import (
    InterviewCancelRequest,
    InterviewCompleteRequest,
    InterviewDetailsResponse,
    InterviewRescheduleRequest,
    InterviewRespondRequest,
    InterviewResponse,
    InterviewScheduleRequest,
    InterviewStatistics,
    InterviewStatusEventResponse,
    InterviewTypeInfo,
    InterviewViewerRole,
    ParticipantResponse,
)
from app.services import queries
from app.services.scheduler import InterviewScheduler

router = APIRouter(prefix="/interviews", tags=["Interviews"])
logger = logging.getLogger(__name__)


def _employer_interview(scheduler: InterviewScheduler, interview_id: str, actor_id: str):
    interview = scheduler.get(interview_id)
    ensure_employer(interview.application, actor_id)
    return interview


@router.post("", status_code=201, response_model=InterviewResponse)
def schedule_interview(
    request: InterviewScheduleRequest,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """
    Schedule an interview for an application you own.

    The candidate is added as a participant automatically. The application
    moves to interview_scheduled if it is not there yet.

    Responses:
        201: scheduled (and application advanced)
        207: interview saved but the application could not be advanced;
             call POST /applications/{id}/reconcile
        409 / 422: see the `error` code in the body
    """
    ensure_employer(scheduler.lifecycle.get(request.application_id), actor_id)
    interview = scheduler.schedule(
        request.application_id,
        request.interview_type,
        request.scheduled_at,
        request.duration_minutes,
        actor_id,
        location=request.location,
        meeting_link=request.meeting_link,
        notes=request.notes,
        interviewer_ids=request.interviewer_ids,
        observer_ids=request.observer_ids
    )
    return scheduler.get(interview.id)


@router.get("/types", response_model=List[InterviewTypeInfo])
def list_interview_types():
    """Interview types and the field each one requires."""
    return queries.list_interview_types()


@router.get("/mine", response_model=List[InterviewResponse])
def list_my_interviews(
    role: Optional[InterviewViewerRole] = Query(
        None,
        description="candidate, interviewer, observer, or employer for every interview on your jobs"
    ),
    status: Optional[InterviewStatus] = None,
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db)
):
    return queries.get_interviews_for_user(db, actor_id, role=role.value if role else None, status=status)


@router.get("/upcoming", response_model=List[InterviewResponse])
def list_upcoming_interviews(
    role: Optional[InterviewViewerRole] = None,
    limit: int = Query(5, ge=1, le=50),
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db)
):
    return queries.get_upcoming_interviews(db, actor_id, role=role.value if role else None, limit=limit)


@router.get("/statistics", response_model=InterviewStatistics)
def get_interview_statistics(
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db)
):
    """Dashboard counters over every interview on the employer's jobs."""
    return queries.get_interview_statistics(db, actor_id)


@router.get("/{interview_id}", response_model=InterviewDetailsResponse)
def get_interview(
    interview_id: str,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """Interview with participants, feedback and status history."""
    interview = scheduler.get(interview_id)
    ensure_interview_party(interview, actor_id)
    return queries.get_interview_details(
        scheduler.db, interview_id, candidate_view=actor_id == interview.application.candidate_id
    )


@router.get("/{interview_id}/history", response_model=List[InterviewStatusEventResponse])
def get_interview_history(
    interview_id: str,
    ascending: bool = False,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    ensure_interview_party(scheduler.get(interview_id), actor_id)
    return queries.get_interview_history(scheduler.db, interview_id, ascending=ascending)


@router.post("/{interview_id}/reschedule", response_model=InterviewResponse)
def reschedule_interview(
    interview_id: str,
    request: InterviewRescheduleRequest,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    _employer_interview(scheduler, interview_id, actor_id)
    scheduler.reschedule(
        interview_id,
        request.scheduled_at,
        actor_id,
        duration_minutes=request.duration_minutes,
        location=request.location,
        meeting_link=request.meeting_link,
        notes=request.notes
    )
    return scheduler.get(interview_id)


@router.post("/{interview_id}/confirm", response_model=InterviewResponse)
def confirm_interview(
    interview_id: str,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    _employer_interview(scheduler, interview_id, actor_id)
    return scheduler.confirm(interview_id, actor_id)


@router.post("/{interview_id}/start", response_model=InterviewResponse)
def start_interview(
    interview_id: str,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    _employer_interview(scheduler, interview_id, actor_id)
    return scheduler.start(interview_id, actor_id)


@router.post("/{interview_id}/cancel", response_model=InterviewResponse)
def cancel_interview(
    interview_id: str,
    request: Optional[InterviewCancelRequest] = None,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """Cancel an interview. The application status is left as it is."""
    _employer_interview(scheduler, interview_id, actor_id)
    return scheduler.cancel(interview_id, actor_id, reason=request.reason if request else None)


@router.post("/{interview_id}/complete", response_model=InterviewResponse)
def complete_interview(
    interview_id: str,
    request: Optional[InterviewCompleteRequest] = None,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """
    Mark an interview completed; opens it for feedback. Returns 207 if the
    application could not be moved to interview_completed.
    """
    _employer_interview(scheduler, interview_id, actor_id)
    scheduler.complete(interview_id, actor_id, notes=request.notes if request else None)
    return scheduler.get(interview_id)


@router.post("/{interview_id}/no-show", response_model=InterviewResponse)
def mark_interview_no_show(
    interview_id: str,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    _employer_interview(scheduler, interview_id, actor_id)
    return scheduler.mark_no_show(interview_id, actor_id)


@router.post("/{interview_id}/respond", response_model=ParticipantResponse)
def respond_to_interview(
    interview_id: str,
    request: InterviewRespondRequest,
    actor_id: str = Depends(get_current_actor_id),
    scheduler: InterviewScheduler = Depends(get_scheduler)
):
    """Accept or decline an interview invitation."""
    return scheduler.respond(interview_id, actor_id, request.accept)
