"""
Optional, pluggable pipeline policies.

None of these are active by default. build_pipeline_config installs them
when the matching PIPELINE_* setting is switched on, or callers can add
them to a PipelineConfig themselves.
"""

import logging
from datetime import timedelta
from typing import List

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidSchedule, InvalidTransition
from app.core.timeutils import as_utc
from app.crud import feedback as feedback_crud
from app.crud import interview as interview_crud
from app.models.application import Application, ApplicationStatus
from app.models.feedback import Recommendation
from app.services.pipeline_config import ProposedSlot

logger = logging.getLogger(__name__)

UNFAVOURABLE = (Recommendation.NO, Recommendation.STRONG_NO)


def prevent_double_booking(db: Session, slot: ProposedSlot, participant_ids: List[str]) -> None:
    """
    Reject a slot that overlaps another active interview of any participant.

    Raises:
        InvalidSchedule: naming the first clashing interview
    """
    candidates = interview_crud.list_active_for_users(
        db,
        participant_ids,
        window_end=slot.ends_at,
        exclude_interview_id=slot.interview_id
    )
    for other in candidates:
        other_start = as_utc(other.scheduled_at)
        other_end = other_start + timedelta(minutes=other.duration_minutes)
        if other_start < slot.ends_at and slot.starts_at < other_end:
            logger.warning(f"Slot {slot.starts_at.isoformat()} clashes with interview {other.id}")
            raise InvalidSchedule(
                f"Time slot overlaps interview {other.id} at {other_start.isoformat()}"
            )


def require_favourable_feedback(db: Session, application: Application, target: ApplicationStatus) -> None:
    """
    Block an offer when the interview feedback consensus is negative.

    Only OFFER_MADE is gated; every other transition passes through.
    """
    if target != ApplicationStatus.OFFER_MADE:
        return

    from app.services.feedback import compute_rollup, latest_per_evaluator

    entries = latest_per_evaluator(feedback_crud.list_for_application(db, application.id))
    rollup = compute_rollup(entries)
    if rollup.consensus in UNFAVOURABLE:
        raise InvalidTransition(
            f"Feedback consensus for application {application.id} is {rollup.consensus.value}; offer blocked"
        )
