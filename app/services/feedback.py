"""
Feedback Aggregator.

Accepts evaluator feedback for completed interviews and rolls it up into an
average rating and a consensus recommendation. The rollup is advisory: it
only gates progression when a progression policy is configured
(see app/services/policies.py).
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from app.core.exceptions import InvalidRating, InvalidTransition, NotFound, Unauthorized
from app.crud import feedback as feedback_crud
from app.crud import interview as interview_crud
from app.models.feedback import InterviewFeedback, Recommendation
from app.models.interview import Interview, InterviewStatus
from app.schemas.feedback import FeedbackRollup
from app.services.base import PipelineService
from app.services.notifications import FeedbackSubmitted

logger = logging.getLogger(__name__)

# Most negative first; used to break ties in the consensus
RECOMMENDATION_ORDER: List[Recommendation] = [
    Recommendation.STRONG_NO,
    Recommendation.NO,
    Recommendation.MAYBE,
    Recommendation.YES,
    Recommendation.STRONG_YES,
]

UPDATABLE_FIELDS = ("rating", "strengths", "weaknesses", "notes", "recommendation", "is_visible_to_candidate")


def validate_rating(rating) -> Optional[int]:
    """
    Ratings are optional integers from 1 to 5.

    Raises:
        InvalidRating: anything else
    """
    if rating is None:
        return None
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidRating(f"Rating must be an integer from 1 to 5, got {rating!r}")
    return rating


def latest_per_evaluator(entries: Iterable[InterviewFeedback]) -> List[InterviewFeedback]:
    """
    Keep the newest submission of each evaluator.

    `entries` must be ordered oldest first (as the repository returns them).
    """
    latest: Dict[str, InterviewFeedback] = {}
    for entry in entries:
        latest[entry.evaluator_id] = entry
    return list(latest.values())


def candidate_visible_feedback(entries: Iterable[InterviewFeedback]) -> List[InterviewFeedback]:
    """Latest entry of each evaluator, kept only if it was shared with the candidate."""
    return [entry for entry in latest_per_evaluator(entries) if entry.is_visible_to_candidate]


def pick_consensus(counts: Dict[Recommendation, int]) -> Optional[Recommendation]:
    """
    Most common recommendation.

    When several recommendations share the top count, the middle one of the
    tied set wins, and with an even number of tied values the more negative
    of the two middle ones: [yes, maybe, no] -> maybe, [yes, no] -> no.

    This is not "most negative wins". With three or more tied values the
    extremes are discarded, so {strong_yes, yes, no, strong_no} gives no
    rather than strong_no. A pair of tied values still resolves to the more
    negative one.
    """
    top = max(counts.values(), default=0)
    if top == 0:
        return None
    tied = [rec for rec in RECOMMENDATION_ORDER if counts.get(rec, 0) == top]
    return tied[(len(tied) - 1) // 2]


def compute_rollup(entries: Iterable[InterviewFeedback]) -> FeedbackRollup:
    entries = list(entries)
    counts = Counter(entry.recommendation for entry in entries)
    recommendation_counts = {rec: counts.get(rec, 0) for rec in RECOMMENDATION_ORDER}

    ratings = [entry.rating for entry in entries if entry.rating is not None]
    average = round(sum(ratings) / len(ratings), 2) if ratings else None

    return FeedbackRollup(
        average_rating=average,
        recommendation_counts=recommendation_counts,
        consensus=pick_consensus(recommendation_counts),
        feedback_count=len(entries)
    )


class FeedbackAggregator(PipelineService):
    """Owns InterviewFeedback rows and their rollups."""

    def _get_interview(self, interview_id: str) -> Interview:
        interview = interview_crud.get_by_id(self.db, interview_id)
        if not interview:
            raise NotFound(f"Interview {interview_id} not found")
        return interview

    def submit_feedback(
        self,
        interview_id: str,
        evaluator_id: str,
        recommendation: Recommendation,
        rating: Optional[int] = None,
        strengths: Optional[str] = None,
        weaknesses: Optional[str] = None,
        notes: Optional[str] = None,
        visible_to_candidate: bool = False
    ) -> InterviewFeedback:
        """
        Record an evaluator's feedback for a completed interview.

        The same evaluator may submit more than once; every submission is
        kept and the newest one counts in rollups.

        Raises:
            NotFound: interview does not exist
            InvalidTransition: interview is not completed yet
            InvalidRating: rating outside 1-5
        """
        interview = self._get_interview(interview_id)
        if interview.status != InterviewStatus.COMPLETED:
            raise InvalidTransition(
                f"Feedback can only be submitted for completed interviews; interview {interview_id} is {interview.status.value}"
            )
        rating = validate_rating(rating)

        try:
            feedback = feedback_crud.create(
                self.db,
                interview_id=interview_id,
                evaluator_id=evaluator_id,
                recommendation=Recommendation(recommendation),
                created_at=self._now(),
                rating=rating,
                strengths=strengths,
                weaknesses=weaknesses,
                notes=notes,
                is_visible_to_candidate=visible_to_candidate
            )
            self._emit(FeedbackSubmitted(
                interview_id=interview_id,
                evaluator_id=evaluator_id,
                feedback_id=feedback.id
            ))
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(f"Feedback {feedback.id} submitted for interview {interview_id} by {evaluator_id}")
        return feedback

    def update_feedback(self, feedback_id: str, evaluator_id: str, **changes) -> InterviewFeedback:
        """
        Edit a feedback row. Only its original evaluator may do this.

        Args:
            changes: any of rating, strengths, weaknesses, notes,
                recommendation, is_visible_to_candidate (None values are ignored)

        Raises:
            NotFound, Unauthorized, InvalidRating
        """
        feedback = feedback_crud.get_by_id(self.db, feedback_id)
        if not feedback:
            raise NotFound(f"Feedback {feedback_id} not found")
        if feedback.evaluator_id != evaluator_id:
            raise Unauthorized(f"Only the original evaluator can edit feedback {feedback_id}")

        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update feedback fields: {', '.join(sorted(unknown))}")

        if changes.get("rating") is not None:
            validate_rating(changes["rating"])
        if changes.get("recommendation") is not None:
            changes["recommendation"] = Recommendation(changes["recommendation"])

        try:
            for field_name, value in changes.items():
                if value is not None:
                    setattr(feedback, field_name, value)
            feedback.updated_at = self._now()
            self._commit()
        except Exception:
            self._abort()
            raise

        self.db.refresh(feedback)
        return feedback

    def list_feedback(self, interview_id: str) -> List[InterviewFeedback]:
        self._get_interview(interview_id)
        return feedback_crud.list_for_interview(self.db, interview_id)

    def latest_by_evaluator(self, interview_id: str) -> List[InterviewFeedback]:
        """Newest submission of each evaluator, for display."""
        return latest_per_evaluator(self.list_feedback(interview_id))

    def visible_to_candidate(self, interview_id: str) -> List[InterviewFeedback]:
        """Feedback the candidate is allowed to read."""
        return candidate_visible_feedback(self.list_feedback(interview_id))

    def rollup(self, interview_id: str) -> FeedbackRollup:
        return compute_rollup(self.latest_by_evaluator(interview_id))

    def application_rollup(self, application_id: str) -> FeedbackRollup:
        """Rollup across all completed interviews of an application."""
        entries = feedback_crud.list_for_application(self.db, application_id)
        return compute_rollup(latest_per_evaluator(entries))
