"""
FastAPI dependencies: the acting user and the pipeline services.

Each request gets services bound to its own database session; the
PipelineConfig and the dispatcher are process-wide.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import Unauthorized
from app.core.security import decode_token
from app.models.application import Application
from app.models.interview import Interview, ParticipantRole
from app.services.feedback import FeedbackAggregator
from app.services.lifecycle import ApplicationLifecycleManager
from app.services.notifications import CeleryNotificationDispatcher, NotificationDispatcher, NullDispatcher
from app.services.pipeline_config import PipelineConfig, build_pipeline_config
from app.services.scheduler import InterviewScheduler

# HTTP Bearer token scheme (Authorization: Bearer <token>)
security = HTTPBearer()


async def get_current_actor_id(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """
    Id of the user making the request, from the token's `sub` claim.

    Raises:
        HTTPException 401: token missing, invalid, expired or without subject
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise credentials_exception

    actor_id = payload.get("sub")
    if not actor_id:
        raise credentials_exception
    return str(actor_id)


@lru_cache()
def get_pipeline_config() -> PipelineConfig:
    return build_pipeline_config(settings)


@lru_cache()
def get_dispatcher() -> NotificationDispatcher:
    if not settings.NOTIFICATIONS_ENABLED:
        return NullDispatcher()
    return CeleryNotificationDispatcher()


def get_lifecycle(
    db: Session = Depends(get_db),
    config: PipelineConfig = Depends(get_pipeline_config),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> ApplicationLifecycleManager:
    return ApplicationLifecycleManager(db, config=config, dispatcher=dispatcher)


def get_scheduler(
    db: Session = Depends(get_db),
    config: PipelineConfig = Depends(get_pipeline_config),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> InterviewScheduler:
    return InterviewScheduler(db, config=config, dispatcher=dispatcher)


def get_feedback_aggregator(
    db: Session = Depends(get_db),
    config: PipelineConfig = Depends(get_pipeline_config),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> FeedbackAggregator:
    return FeedbackAggregator(db, config=config, dispatcher=dispatcher)


# ----------------------------------------------------------------------
# Ownership checks. The engine trusts its callers, so the API makes sure
# the actor is a party to what they touch.
# ----------------------------------------------------------------------

def is_employer(application: Application, actor_id: str) -> bool:
    return application.job is not None and application.job.employer_id == actor_id


def ensure_employer(application: Application, actor_id: str) -> None:
    """Raises Unauthorized unless the actor owns the application's job."""
    if not is_employer(application, actor_id):
        raise Unauthorized(f"User {actor_id} does not own the job for application {application.id}")


def ensure_application_party(application: Application, actor_id: str) -> None:
    """The applying candidate or the job's employer."""
    if actor_id != application.candidate_id and not is_employer(application, actor_id):
        raise Unauthorized(f"User {actor_id} cannot view application {application.id}")


def participant_role(interview: Interview, actor_id: str) -> Optional[ParticipantRole]:
    for participant in interview.participants:
        if participant.user_id == actor_id:
            return participant.role
    return None


def ensure_interview_party(interview: Interview, actor_id: str) -> None:
    """A participant of the interview or the job's employer."""
    if participant_role(interview, actor_id) is None and not is_employer(interview.application, actor_id):
        raise Unauthorized(f"User {actor_id} cannot view interview {interview.id}")


def ensure_evaluator(interview: Interview, actor_id: str) -> None:
    """Interviewers, observers and the employer may evaluate; the candidate may not."""
    role = participant_role(interview, actor_id)
    if role in (ParticipantRole.INTERVIEWER, ParticipantRole.OBSERVER):
        return
    if role is None and is_employer(interview.application, actor_id):
        return
    raise Unauthorized(f"User {actor_id} cannot evaluate interview {interview.id}")
