"""
Unit tests for the Feedback Aggregator.

Tests:
- Submission rules (completed interviews only, rating range)
- Latest submission per evaluator
- Rollup average and consensus
- Editing feedback
- Favourable-feedback progression policy
"""

import pytest

from app.core.exceptions import InvalidRating, InvalidTransition, NotFound, Unauthorized
from app.models.application import ApplicationStatus
from app.models.feedback import Recommendation
from app.services.feedback import compute_rollup, pick_consensus
from app.services.lifecycle import ApplicationLifecycleManager
from app.services.pipeline_config import PipelineConfig
from app.services.policies import require_favourable_feedback

from conftest import EMPLOYER_ID, INTERVIEWER_ID, SECOND_INTERVIEWER_ID

R = Recommendation


class TestSubmitFeedback:
    """Test feedback submission"""

    def test_submit_for_completed_interview(self, aggregator, completed_interview, dispatcher):
        dispatcher.clear()
        feedback = aggregator.submit_feedback(
            completed_interview.id,
            INTERVIEWER_ID,
            R.YES,
            rating=4,
            strengths="Clear communicator",
            weaknesses="Light on testing"
        )

        assert feedback.rating == 4
        assert feedback.recommendation == R.YES
        assert feedback.is_visible_to_candidate is False
        assert dispatcher.types() == ["feedback_submitted"]
        assert dispatcher.events[0].feedback_id == feedback.id

    def test_interview_must_be_completed(self, aggregator, schedule_interview, reviewed_application):
        interview = schedule_interview(reviewed_application.id)
        with pytest.raises(InvalidTransition):
            aggregator.submit_feedback(interview.id, INTERVIEWER_ID, R.YES)

    def test_unknown_interview(self, aggregator, db_session):
        with pytest.raises(NotFound):
            aggregator.submit_feedback("missing", INTERVIEWER_ID, R.YES)

    @pytest.mark.parametrize("rating", [0, 6, -1, 3.5, True, "4"])
    def test_invalid_rating(self, aggregator, completed_interview, rating):
        with pytest.raises(InvalidRating):
            aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.YES, rating=rating)

        assert aggregator.list_feedback(completed_interview.id) == []

    @pytest.mark.parametrize("rating", [1, 5, None])
    def test_valid_rating_bounds(self, aggregator, completed_interview, rating):
        feedback = aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.MAYBE, rating=rating)
        assert feedback.rating == rating

    def test_resubmission_keeps_history_but_counts_latest(self, aggregator, completed_interview, clock):
        aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.NO, rating=2)
        clock.advance(minutes=10)
        aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.STRONG_YES, rating=5)

        assert len(aggregator.list_feedback(completed_interview.id)) == 2
        latest = aggregator.latest_by_evaluator(completed_interview.id)
        assert len(latest) == 1
        assert latest[0].recommendation == R.STRONG_YES

        rollup = aggregator.rollup(completed_interview.id)
        assert rollup.feedback_count == 1
        assert rollup.average_rating == 5.0

    def test_visible_to_candidate(self, aggregator, completed_interview):
        aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.YES, visible_to_candidate=True)
        aggregator.submit_feedback(completed_interview.id, SECOND_INTERVIEWER_ID, R.NO)

        visible = aggregator.visible_to_candidate(completed_interview.id)
        assert [entry.evaluator_id for entry in visible] == [INTERVIEWER_ID]


class TestUpdateFeedback:
    def test_evaluator_can_edit(self, aggregator, completed_interview, clock):
        feedback = aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.MAYBE, rating=3)
        clock.advance(minutes=5)

        updated = aggregator.update_feedback(feedback.id, INTERVIEWER_ID, rating=4, recommendation="yes", notes=None)

        assert updated.rating == 4
        assert updated.recommendation == R.YES
        assert updated.updated_at.replace(tzinfo=None) == clock.now.replace(tzinfo=None)

    def test_other_user_cannot_edit(self, aggregator, completed_interview):
        feedback = aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.MAYBE)
        with pytest.raises(Unauthorized):
            aggregator.update_feedback(feedback.id, SECOND_INTERVIEWER_ID, rating=1)

    def test_invalid_rating_on_edit(self, aggregator, completed_interview):
        feedback = aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.MAYBE, rating=3)
        with pytest.raises(InvalidRating):
            aggregator.update_feedback(feedback.id, INTERVIEWER_ID, rating=9)

    def test_unknown_feedback(self, aggregator, db_session):
        with pytest.raises(NotFound):
            aggregator.update_feedback("missing", INTERVIEWER_ID, rating=3)


class TestRollup:
    """Test rollup arithmetic and the consensus rule"""

    def test_empty_rollup(self, aggregator, completed_interview):
        rollup = aggregator.rollup(completed_interview.id)

        assert rollup.average_rating is None
        assert rollup.consensus is None
        assert rollup.feedback_count == 0
        assert set(rollup.recommendation_counts) == set(Recommendation)
        assert all(count == 0 for count in rollup.recommendation_counts.values())

    def test_three_way_tie_picks_middle(self, aggregator, completed_interview):
        aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.YES, rating=4)
        aggregator.submit_feedback(completed_interview.id, SECOND_INTERVIEWER_ID, R.MAYBE, rating=3)
        aggregator.submit_feedback(completed_interview.id, EMPLOYER_ID, R.NO, rating=2)

        rollup = aggregator.rollup(completed_interview.id)

        assert rollup.average_rating == 3.0
        assert rollup.consensus == R.MAYBE
        assert rollup.feedback_count == 3
        assert rollup.recommendation_counts[R.YES] == 1
        assert rollup.recommendation_counts[R.STRONG_YES] == 0

    def test_unrated_feedback_excluded_from_average(self, aggregator, completed_interview):
        aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.YES, rating=5)
        aggregator.submit_feedback(completed_interview.id, SECOND_INTERVIEWER_ID, R.YES)

        rollup = aggregator.rollup(completed_interview.id)
        assert rollup.average_rating == 5.0
        assert rollup.consensus == R.YES

    @pytest.mark.parametrize("counts,expected", [
        ({R.YES: 1, R.NO: 1}, R.NO),
        ({R.YES: 1, R.MAYBE: 1, R.NO: 1}, R.MAYBE),
        ({R.STRONG_YES: 2, R.NO: 1}, R.STRONG_YES),
        ({R.STRONG_YES: 1, R.STRONG_NO: 1}, R.STRONG_NO),
        ({R.STRONG_YES: 1, R.YES: 1, R.NO: 1, R.STRONG_NO: 1}, R.NO),
        ({}, None),
    ])
    def test_pick_consensus(self, counts, expected):
        assert pick_consensus(counts) == expected

    def test_average_is_rounded(self):
        class Entry:
            def __init__(self, evaluator_id, rating):
                self.evaluator_id = evaluator_id
                self.rating = rating
                self.recommendation = R.YES

        rollup = compute_rollup([Entry("a", 4), Entry("b", 4), Entry("c", 5)])
        assert rollup.average_rating == 4.33

    def test_application_rollup_spans_completed_interviews(
        self, aggregator, scheduler, schedule_interview, reviewed_application, clock
    ):
        first = schedule_interview(reviewed_application.id, hours=1)
        second = schedule_interview(reviewed_application.id, hours=2)
        clock.advance(hours=3)
        scheduler.complete(first.id, EMPLOYER_ID)
        scheduler.complete(second.id, EMPLOYER_ID)

        aggregator.submit_feedback(first.id, INTERVIEWER_ID, R.NO, rating=2)
        clock.advance(minutes=1)
        aggregator.submit_feedback(second.id, INTERVIEWER_ID, R.YES, rating=4)
        aggregator.submit_feedback(second.id, SECOND_INTERVIEWER_ID, R.YES, rating=4)

        rollup = aggregator.application_rollup(reviewed_application.id)
        assert rollup.feedback_count == 2
        assert rollup.consensus == R.YES
        assert rollup.average_rating == 4.0


class TestFavourableFeedbackPolicy:
    """Offers blocked when the consensus is negative"""

    @pytest.fixture
    def gated_lifecycle(self, db_session, dispatcher, clock):
        return ApplicationLifecycleManager(
            db_session,
            config=PipelineConfig(progression_policy=require_favourable_feedback),
            dispatcher=dispatcher,
            clock=clock
        )

    def test_negative_consensus_blocks_offer(self, gated_lifecycle, aggregator, completed_interview, reviewed_application):
        aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.NO)

        with pytest.raises(InvalidTransition):
            gated_lifecycle.transition(reviewed_application.id, ApplicationStatus.OFFER_MADE, EMPLOYER_ID)

        # Rejection is still allowed
        gated_lifecycle.transition(reviewed_application.id, ApplicationStatus.REJECTED, EMPLOYER_ID)
        assert gated_lifecycle.reload(reviewed_application.id).status == ApplicationStatus.REJECTED

    def test_positive_consensus_allows_offer(self, gated_lifecycle, aggregator, completed_interview, reviewed_application):
        aggregator.submit_feedback(completed_interview.id, INTERVIEWER_ID, R.STRONG_YES)

        gated_lifecycle.transition(reviewed_application.id, ApplicationStatus.OFFER_MADE, EMPLOYER_ID)
        assert gated_lifecycle.reload(reviewed_application.id).status == ApplicationStatus.OFFER_MADE

    def test_no_feedback_allows_offer(self, gated_lifecycle, completed_interview, reviewed_application):
        gated_lifecycle.transition(reviewed_application.id, ApplicationStatus.OFFER_MADE, EMPLOYER_ID)
        assert gated_lifecycle.reload(reviewed_application.id).status == ApplicationStatus.OFFER_MADE
