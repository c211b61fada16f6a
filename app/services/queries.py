"""
Read-only query surface for dashboards and detail views.

Plain functions over a session; nothing here writes. Reads are not
synchronized with writers, so a dashboard may see a status one step behind.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound
from app.core.timeutils import as_utc, utcnow
from app.crud import application as application_crud
from app.crud import feedback as feedback_crud
from app.crud import history as history_crud
from app.crud import interview as interview_crud
from app.models.application import ApplicationStatus, ApplicationStatusEvent
from app.models.interview import Interview, InterviewStatus, InterviewStatusEvent, InterviewType, ParticipantRole
from app.schemas.application import CandidateAnalytics, JobApplicationStats
from app.schemas.feedback import FeedbackResponse, FeedbackRollup
from app.schemas.interview import (
    InterviewDetailsResponse,
    InterviewStatistics,
    InterviewStatusEventResponse,
    InterviewTypeInfo,
    InterviewViewerRole,
)
from app.services.feedback import candidate_visible_feedback, compute_rollup, latest_per_evaluator
from app.services.pipeline_config import LOCATION_REQUIREMENTS

EMPLOYER_ROLE = InterviewViewerRole.EMPLOYER.value

# Not started yet and still going ahead
PENDING_STATUSES = (InterviewStatus.SCHEDULED, InterviewStatus.CONFIRMED, InterviewStatus.RESCHEDULED)

RESPONDED_STATUSES = frozenset(status for status in ApplicationStatus if status != ApplicationStatus.SUBMITTED)
INTERVIEWED_STATUSES = frozenset({
    ApplicationStatus.INTERVIEW_SCHEDULED,
    ApplicationStatus.INTERVIEW_COMPLETED,
    ApplicationStatus.OFFER_MADE,
    ApplicationStatus.ACCEPTED,
})

INTERVIEW_TYPE_CATALOGUE = [
    (InterviewType.PHONE, "Phone Interview", "Initial screening call"),
    (InterviewType.VIDEO, "Video Interview", "Remote video interview"),
    (InterviewType.TECHNICAL, "Technical Interview", "Technical assessment"),
    (InterviewType.PANEL, "Panel Interview", "Interview with multiple team members"),
    (InterviewType.IN_PERSON, "In-Person Interview", "On-site interview"),
    (InterviewType.FINAL, "Final Interview", "Final decision round"),
]


def _percent(part: int, whole: int) -> int:
    # Half-up, so 50% of 3 reads as 67 rather than banker's 66
    return int(part * 100 / whole + 0.5) if whole else 0


def _get_interview(db: Session, interview_id: str) -> Interview:
    interview = interview_crud.get_by_id(db, interview_id)
    if not interview:
        raise NotFound(f"Interview {interview_id} not found")
    return interview


def get_application_history(db: Session, application_id: str, ascending: bool = False) -> List[ApplicationStatusEvent]:
    """Ledger entries of an application, newest first unless `ascending`."""
    if not application_crud.get_by_id(db, application_id):
        raise NotFound(f"Application {application_id} not found")
    return history_crud.get_application_events(db, application_id, ascending=ascending)


def get_interview_history(db: Session, interview_id: str, ascending: bool = False) -> List[InterviewStatusEvent]:
    _get_interview(db, interview_id)
    return history_crud.get_interview_events(db, interview_id, ascending=ascending)


def get_interviews_for_application(db: Session, application_id: str) -> List[Interview]:
    if not application_crud.get_by_id(db, application_id):
        raise NotFound(f"Application {application_id} not found")
    return interview_crud.list_for_application(db, application_id)


def get_interviews_for_user(
    db: Session,
    user_id: str,
    role: Optional[str] = None,
    status: Optional[InterviewStatus] = None
) -> List[Interview]:
    """
    Interviews a user takes part in, oldest first.

    Args:
        role: a ParticipantRole value to restrict to, or "employer" for every
            interview against the employer's jobs
    """
    if role == EMPLOYER_ROLE:
        return interview_crud.list_for_employer(db, user_id, status=status)
    return interview_crud.list_for_user(
        db, user_id, role=ParticipantRole(role) if role else None, status=status
    )


def get_interview_details(db: Session, interview_id: str, candidate_view: bool = False) -> InterviewDetailsResponse:
    """
    Interview with its participants, feedback and status history.

    With `candidate_view` the feedback is what the candidate may read (the
    same filter as the feedback list); otherwise every entry is included.
    """
    interview = _get_interview(db, interview_id)
    details = InterviewDetailsResponse.model_validate(interview)
    entries = feedback_crud.list_for_interview(db, interview_id)
    if candidate_view:
        entries = candidate_visible_feedback(entries)
    details.feedback = [FeedbackResponse.model_validate(entry) for entry in entries]
    details.history = [
        InterviewStatusEventResponse.model_validate(event)
        for event in history_crud.get_interview_events(db, interview_id, ascending=True)
    ]
    return details


def get_feedback_rollup(db: Session, interview_id: str) -> FeedbackRollup:
    _get_interview(db, interview_id)
    return compute_rollup(latest_per_evaluator(feedback_crud.list_for_interview(db, interview_id)))


def get_upcoming_interviews(
    db: Session,
    user_id: str,
    role: Optional[str] = None,
    limit: int = 5,
    now: Optional[datetime] = None
) -> List[Interview]:
    """Next pending interviews of a user (or an employer), soonest first."""
    now = now or utcnow()
    interviews = get_interviews_for_user(db, user_id, role=role)
    upcoming = [
        interview for interview in interviews
        if interview.status in PENDING_STATUSES and as_utc(interview.scheduled_at) > now
    ]
    return upcoming[:limit]


def get_interview_statistics(db: Session, employer_id: str, now: Optional[datetime] = None) -> InterviewStatistics:
    """
    Dashboard counters for an employer. `today` is the UTC calendar day of
    `now`, whatever the interview status.
    """
    now = now or utcnow()
    interviews = interview_crud.list_for_employer(db, employer_id)
    return InterviewStatistics(
        total=len(interviews),
        upcoming=sum(
            1 for i in interviews
            if i.status in PENDING_STATUSES and as_utc(i.scheduled_at) > now
        ),
        completed=sum(1 for i in interviews if i.status == InterviewStatus.COMPLETED),
        cancelled=sum(1 for i in interviews if i.status == InterviewStatus.CANCELLED),
        today=sum(1 for i in interviews if as_utc(i.scheduled_at).date() == now.date())
    )


def get_job_application_stats(db: Session, job_id: str) -> JobApplicationStats:
    if not application_crud.get_job(db, job_id):
        raise NotFound(f"Job {job_id} not found")
    by_status = application_crud.count_by_status(db, job_id=job_id)
    return JobApplicationStats(job_id=job_id, total=sum(by_status.values()), by_status=by_status)


def get_candidate_analytics(db: Session, candidate_id: str, now: Optional[datetime] = None) -> CandidateAnalytics:
    """
    A candidate's funnel: how many applications got any response and how
    many reached an interview, as whole percentages.
    """
    now = now or utcnow()
    applications = application_crud.list_for_candidate(db, candidate_id)
    breakdown = {status: 0 for status in ApplicationStatus}
    this_month = 0
    for application in applications:
        breakdown[application.status] += 1
        created = as_utc(application.created_at)
        if created.year == now.year and created.month == now.month:
            this_month += 1

    total = len(applications)
    responded = sum(count for status, count in breakdown.items() if status in RESPONDED_STATUSES)
    interviewed = sum(count for status, count in breakdown.items() if status in INTERVIEWED_STATUSES)

    return CandidateAnalytics(
        candidate_id=candidate_id,
        total_applications=total,
        applications_this_month=this_month,
        response_rate=_percent(responded, total),
        interview_rate=_percent(interviewed, total),
        status_breakdown=breakdown
    )


def list_interview_types() -> List[InterviewTypeInfo]:
    return [
        InterviewTypeInfo(
            id=interview_type,
            name=name,
            description=description,
            requires=LOCATION_REQUIREMENTS.get(interview_type)
        )
        for interview_type, name, description in INTERVIEW_TYPE_CATALOGUE
    ]
