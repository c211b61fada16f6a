"""
Interview feedback endpoints.
"""

import logging
from typing import List
from fastapi import APIRouter, Depends

from app.core.deps import (
    ensure_evaluator,
    ensure_interview_party,
    get_current_actor_id,
    get_feedback_aggregator,
)
from app.core.exceptions import NotFound
from app.crud import feedback as feedback_crud
from app.crud import interview as interview_crud
from app.schemas.feedback import FeedbackCreateRequest, FeedbackResponse, FeedbackRollup, FeedbackUpdateRequest
from app.services.feedback import FeedbackAggregator

router = APIRouter(tags=["Feedback"])
logger = logging.getLogger(__name__)


def _interview(aggregator: FeedbackAggregator, interview_id: str):
    interview = interview_crud.get_by_id(aggregator.db, interview_id)
    if not interview:
        raise NotFound(f"Interview {interview_id} not found")
    return interview


@router.post("/interviews/{interview_id}/feedback", status_code=201, response_model=FeedbackResponse)
def submit_feedback(
    interview_id: str,
    request: FeedbackCreateRequest,
    actor_id: str = Depends(get_current_actor_id),
    aggregator: FeedbackAggregator = Depends(get_feedback_aggregator)
):
    """
    Submit feedback for a completed interview. Submitting again adds a new
    entry; the newest one is what counts in the rollup.
    """
    ensure_evaluator(_interview(aggregator, interview_id), actor_id)
    return aggregator.submit_feedback(
        interview_id,
        actor_id,
        request.recommendation,
        rating=request.rating,
        strengths=request.strengths,
        weaknesses=request.weaknesses,
        notes=request.notes,
        visible_to_candidate=request.is_visible_to_candidate
    )


@router.get("/interviews/{interview_id}/feedback", response_model=List[FeedbackResponse])
def list_feedback(
    interview_id: str,
    actor_id: str = Depends(get_current_actor_id),
    aggregator: FeedbackAggregator = Depends(get_feedback_aggregator)
):
    """
    Latest feedback of each evaluator. Candidates only see entries shared
    with them.
    """
    interview = _interview(aggregator, interview_id)
    ensure_interview_party(interview, actor_id)
    if actor_id == interview.application.candidate_id:
        return aggregator.visible_to_candidate(interview_id)
    return aggregator.latest_by_evaluator(interview_id)


@router.get("/interviews/{interview_id}/feedback/rollup", response_model=FeedbackRollup)
def get_feedback_rollup(
    interview_id: str,
    actor_id: str = Depends(get_current_actor_id),
    aggregator: FeedbackAggregator = Depends(get_feedback_aggregator)
):
    ensure_evaluator(_interview(aggregator, interview_id), actor_id)
    return aggregator.rollup(interview_id)


@router.patch("/feedback/{feedback_id}", response_model=FeedbackResponse)
def update_feedback(
    feedback_id: str,
    request: FeedbackUpdateRequest,
    actor_id: str = Depends(get_current_actor_id),
    aggregator: FeedbackAggregator = Depends(get_feedback_aggregator)
):
    """Edit your own feedback. Omitted fields are left unchanged."""
    if not feedback_crud.get_by_id(aggregator.db, feedback_id):
        raise NotFound(f"Feedback {feedback_id} not found")
    changes = request.model_dump(exclude_unset=True)
    return aggregator.update_feedback(feedback_id, actor_id, **changes)
