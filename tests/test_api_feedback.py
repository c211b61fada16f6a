"""
Test suite for feedback endpoints.

Tests cover:
- Submitting feedback (who may, and when)
- Rating validation
- Candidate visibility
- Rollups and edits
"""

import pytest

from conftest import CANDIDATE_ID, EMPLOYER_ID, INTERVIEWER_ID, SECOND_INTERVIEWER_ID, auth_headers

API = "/api/v1"


@pytest.fixture
def finished_interview(client, due_interview):
    """due_interview completed through the API."""
    response = client.post(f"{API}/interviews/{due_interview.id}/complete", headers=auth_headers(EMPLOYER_ID))
    assert response.status_code == 200
    return due_interview


def post_feedback(client, interview_id, user_id, **body):
    body.setdefault("recommendation", "yes")
    return client.post(f"{API}/interviews/{interview_id}/feedback", json=body, headers=auth_headers(user_id))


class TestSubmitFeedback:
    def test_interviewer_submits(self, client, finished_interview, dispatcher):
        """Test successful feedback submission"""
        dispatcher.clear()
        response = post_feedback(client, finished_interview.id, INTERVIEWER_ID, rating=4, strengths="Solid design skills")

        assert response.status_code == 201
        data = response.json()
        assert data["evaluator_id"] == INTERVIEWER_ID
        assert data["rating"] == 4
        assert data["is_visible_to_candidate"] is False
        assert dispatcher.types() == ["feedback_submitted"]

    def test_employer_may_submit(self, client, finished_interview):
        response = post_feedback(client, finished_interview.id, EMPLOYER_ID, recommendation="maybe")
        assert response.status_code == 201

    def test_candidate_may_not_submit(self, client, finished_interview):
        response = post_feedback(client, finished_interview.id, CANDIDATE_ID)
        assert response.status_code == 403

    def test_outsider_may_not_submit(self, client, finished_interview):
        response = post_feedback(client, finished_interview.id, "stranger")
        assert response.status_code == 403

    def test_interview_not_completed(self, client, due_interview):
        response = post_feedback(client, due_interview.id, INTERVIEWER_ID)

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, client, finished_interview, rating):
        response = post_feedback(client, finished_interview.id, INTERVIEWER_ID, rating=rating)

        assert response.status_code == 422
        assert response.json()["error"] == "invalid_rating"

    def test_unknown_recommendation(self, client, finished_interview):
        response = post_feedback(client, finished_interview.id, INTERVIEWER_ID, recommendation="hire")
        assert response.status_code == 422

    def test_unknown_interview(self, client, db_session):
        response = post_feedback(client, "missing", INTERVIEWER_ID)
        assert response.status_code == 404


class TestReadFeedback:
    def test_candidate_sees_only_shared_entries(self, client, finished_interview):
        post_feedback(client, finished_interview.id, INTERVIEWER_ID, is_visible_to_candidate=True, notes="Well done")
        post_feedback(client, finished_interview.id, EMPLOYER_ID, recommendation="no", notes="Internal only")

        candidate_view = client.get(
            f"{API}/interviews/{finished_interview.id}/feedback", headers=auth_headers(CANDIDATE_ID)
        )
        assert [f["notes"] for f in candidate_view.json()] == ["Well done"]

        employer_view = client.get(
            f"{API}/interviews/{finished_interview.id}/feedback", headers=auth_headers(EMPLOYER_ID)
        )
        assert len(employer_view.json()) == 2

        details = client.get(f"{API}/interviews/{finished_interview.id}", headers=auth_headers(CANDIDATE_ID))
        assert [f["notes"] for f in details.json()["feedback"]] == ["Well done"]

    def test_rollup(self, client, finished_interview):
        post_feedback(client, finished_interview.id, INTERVIEWER_ID, recommendation="yes", rating=5)
        post_feedback(client, finished_interview.id, EMPLOYER_ID, recommendation="no", rating=2)

        response = client.get(
            f"{API}/interviews/{finished_interview.id}/feedback/rollup", headers=auth_headers(EMPLOYER_ID)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["average_rating"] == 3.5
        assert data["consensus"] == "no"
        assert data["feedback_count"] == 2
        assert set(data["recommendation_counts"]) == {"strong_yes", "yes", "maybe", "no", "strong_no"}

    def test_candidate_cannot_read_rollup(self, client, finished_interview):
        response = client.get(
            f"{API}/interviews/{finished_interview.id}/feedback/rollup", headers=auth_headers(CANDIDATE_ID)
        )
        assert response.status_code == 403


class TestUpdateFeedback:
    def test_evaluator_edits_own_feedback(self, client, finished_interview):
        created = post_feedback(client, finished_interview.id, INTERVIEWER_ID, rating=3, notes="First pass").json()

        response = client.patch(
            f"{API}/feedback/{created['id']}",
            json={"rating": 4, "recommendation": "strong_yes"},
            headers=auth_headers(INTERVIEWER_ID)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["rating"] == 4
        assert data["recommendation"] == "strong_yes"
        assert data["notes"] == "First pass"

    def test_someone_else_cannot_edit(self, client, finished_interview):
        created = post_feedback(client, finished_interview.id, INTERVIEWER_ID).json()

        response = client.patch(
            f"{API}/feedback/{created['id']}", json={"rating": 1}, headers=auth_headers(SECOND_INTERVIEWER_ID)
        )
        assert response.status_code == 403

    def test_invalid_rating(self, client, finished_interview):
        created = post_feedback(client, finished_interview.id, INTERVIEWER_ID).json()

        response = client.patch(
            f"{API}/feedback/{created['id']}", json={"rating": 7}, headers=auth_headers(INTERVIEWER_ID)
        )
        assert response.status_code == 422

    def test_missing_feedback(self, client, db_session):
        response = client.patch(f"{API}/feedback/missing", json={"rating": 3}, headers=auth_headers(INTERVIEWER_ID))
        assert response.status_code == 404
