"""
Test suite for application endpoints.

Tests cover:
- Authentication
- Submission
- Status transitions and error mapping
- Withdrawal
- Employer notes
- History and dashboards
"""

from app.models.application import ApplicationStatus
from app.models.interview import InterviewStatus

from conftest import CANDIDATE_ID, EMPLOYER_ID, auth_headers

API = "/api/v1"


class TestAuthentication:
    """Bearer token handling"""

    def test_missing_token(self, client, job):
        response = client.post(f"{API}/applications", json={"job_id": job.id})
        assert response.status_code in (401, 403)

    def test_invalid_token(self, client, job):
        response = client.post(
            f"{API}/applications",
            json={"job_id": job.id},
            headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401


class TestSubmitApplication:
    def test_submit_success(self, client, job, dispatcher):
        """Candidate applies with a profile snapshot"""
        response = client.post(
            f"{API}/applications",
            json={
                "job_id": job.id,
                "first_name": "Ada",
                "last_name": "Lovelace",
                "email": "ada@example.com",
                "skills": ["python", "sql"]
            },
            headers=auth_headers(CANDIDATE_ID)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "submitted"
        assert data["candidate_id"] == CANDIDATE_ID
        assert data["skills"] == ["python", "sql"]
        assert dispatcher.types() == ["application_status_changed"]

    def test_submit_unknown_job(self, client, db_session):
        response = client.post(
            f"{API}/applications", json={"job_id": "missing"}, headers=auth_headers(CANDIDATE_ID)
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert "not found" in response.json()["detail"].lower()

    def test_submit_twice(self, client, application, job):
        response = client.post(f"{API}/applications", json={"job_id": job.id}, headers=auth_headers(CANDIDATE_ID))

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_invalid_email(self, client, job):
        response = client.post(
            f"{API}/applications",
            json={"job_id": job.id, "email": "not-an-email"},
            headers=auth_headers(CANDIDATE_ID)
        )
        assert response.status_code == 422

    def test_list_my_applications(self, client, application):
        response = client.get(f"{API}/applications", headers=auth_headers(CANDIDATE_ID))

        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [application.id]
        assert client.get(f"{API}/applications", headers=auth_headers("someone-else")).json() == []


class TestGetApplication:
    def test_candidate_and_employer_can_view(self, client, application):
        for user_id in (CANDIDATE_ID, EMPLOYER_ID):
            response = client.get(f"{API}/applications/{application.id}", headers=auth_headers(user_id))
            assert response.status_code == 200
            assert response.json()["id"] == application.id

    def test_stranger_forbidden(self, client, application):
        response = client.get(f"{API}/applications/{application.id}", headers=auth_headers("stranger"))

        assert response.status_code == 403
        assert response.json()["error"] == "unauthorized"

    def test_not_found(self, client, db_session):
        response = client.get(f"{API}/applications/missing", headers=auth_headers(EMPLOYER_ID))
        assert response.status_code == 404


class TestTransition:
    """POST /applications/{id}/transition"""

    def test_employer_moves_forward(self, client, application, dispatcher):
        dispatcher.clear()
        response = client.post(
            f"{API}/applications/{application.id}/transition",
            json={"target_status": "under_review", "notes": "Strong CV"},
            headers=auth_headers(EMPLOYER_ID)
        )

        assert response.status_code == 200
        assert response.json()["status"] == "under_review"
        assert dispatcher.types() == ["application_status_changed"]

    def test_illegal_transition(self, client, application):
        response = client.post(
            f"{API}/applications/{application.id}/transition",
            json={"target_status": "offer_made"},
            headers=auth_headers(EMPLOYER_ID)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_unknown_status_value(self, client, application):
        response = client.post(
            f"{API}/applications/{application.id}/transition",
            json={"target_status": "hired"},
            headers=auth_headers(EMPLOYER_ID)
        )
        assert response.status_code == 422

    def test_candidate_cannot_review_own_application(self, client, application):
        response = client.post(
            f"{API}/applications/{application.id}/transition",
            json={"target_status": "under_review"},
            headers=auth_headers(CANDIDATE_ID)
        )
        assert response.status_code == 403

    def test_stale_expected_status(self, client, lifecycle, application):
        lifecycle.transition(application.id, ApplicationStatus.UNDER_REVIEW, EMPLOYER_ID)

        response = client.post(
            f"{API}/applications/{application.id}/transition",
            json={"target_status": "rejected", "expected_status": "submitted"},
            headers=auth_headers(EMPLOYER_ID)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "concurrent_modification"
        assert lifecycle.reload(application.id).status == ApplicationStatus.UNDER_REVIEW


class TestWithdraw:
    """POST /applications/{id}/withdraw"""

    def test_withdraw_cancels_interviews(self, client, scheduler, schedule_interview, reviewed_application):
        interview = schedule_interview(reviewed_application.id)

        response = client.post(
            f"{API}/applications/{reviewed_application.id}/withdraw",
            json={"reason": "Accepted another offer"},
            headers=auth_headers(CANDIDATE_ID)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["application"]["status"] == "withdrawn"
        assert data["cancelled_interview_ids"] == [interview.id]
        assert scheduler.get(interview.id).status == InterviewStatus.CANCELLED

    def test_withdraw_without_body(self, client, application):
        response = client.post(f"{API}/applications/{application.id}/withdraw", headers=auth_headers(CANDIDATE_ID))

        assert response.status_code == 200
        assert response.json()["cancelled_interview_ids"] == []

    def test_employer_cannot_withdraw(self, client, application):
        response = client.post(f"{API}/applications/{application.id}/withdraw", headers=auth_headers(EMPLOYER_ID))
        assert response.status_code == 403

    def test_too_late_to_withdraw(self, client, lifecycle, application):
        lifecycle.advance_to(application.id, ApplicationStatus.INTERVIEW_COMPLETED, EMPLOYER_ID)
        lifecycle.db.commit()

        response = client.post(f"{API}/applications/{application.id}/withdraw", headers=auth_headers(CANDIDATE_ID))

        assert response.status_code == 409
        assert response.json()["error"] == "not_withdrawable"

    def test_transition_to_withdrawn_after_offer_is_refused(self, client, lifecycle, application):
        lifecycle.advance_to(application.id, ApplicationStatus.OFFER_MADE, EMPLOYER_ID)
        lifecycle.db.commit()

        response = client.post(
            f"{API}/applications/{application.id}/transition",
            json={"target_status": "withdrawn"},
            headers=auth_headers(CANDIDATE_ID)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "not_withdrawable"
        assert lifecycle.reload(application.id).status == ApplicationStatus.OFFER_MADE

    def test_transition_to_withdrawn_cancels_interviews(
        self, client, scheduler, schedule_interview, reviewed_application
    ):
        interview = schedule_interview(reviewed_application.id)

        response = client.post(
            f"{API}/applications/{reviewed_application.id}/transition",
            json={"target_status": "withdrawn", "notes": "Relocating"},
            headers=auth_headers(CANDIDATE_ID)
        )

        assert response.status_code == 200
        assert response.json()["status"] == "withdrawn"
        assert scheduler.get(interview.id).status == InterviewStatus.CANCELLED


class TestNotes:
    """/applications/{id}/notes"""

    def test_employer_adds_and_candidate_reads_shared(self, client, application):
        url = f"{API}/applications/{application.id}/notes"
        shared = client.post(
            url,
            json={"note": "We will be in touch next week", "note_type": "general", "is_visible_to_candidate": True},
            headers=auth_headers(EMPLOYER_ID)
        )
        internal = client.post(
            url, json={"note": "Check references", "note_type": "internal"}, headers=auth_headers(EMPLOYER_ID)
        )

        assert shared.status_code == 201
        assert shared.json()["created_by"] == EMPLOYER_ID
        assert internal.json()["is_visible_to_candidate"] is False

        employer_view = client.get(url, headers=auth_headers(EMPLOYER_ID)).json()
        assert {n["note"] for n in employer_view} == {"We will be in touch next week", "Check references"}

        candidate_view = client.get(url, headers=auth_headers(CANDIDATE_ID)).json()
        assert [n["note"] for n in candidate_view] == ["We will be in touch next week"]

    def test_candidate_cannot_add_notes(self, client, application):
        response = client.post(
            f"{API}/applications/{application.id}/notes", json={"note": "Hi"}, headers=auth_headers(CANDIDATE_ID)
        )
        assert response.status_code == 403

    def test_unknown_note_type(self, client, application):
        response = client.post(
            f"{API}/applications/{application.id}/notes",
            json={"note": "Hi", "note_type": "gossip"},
            headers=auth_headers(EMPLOYER_ID)
        )
        assert response.status_code == 422

    def test_stranger_cannot_read_notes(self, client, application):
        response = client.get(f"{API}/applications/{application.id}/notes", headers=auth_headers("stranger"))
        assert response.status_code == 403


class TestHistoryAndDashboards:
    def test_history(self, client, lifecycle, application):
        lifecycle.transition(application.id, ApplicationStatus.UNDER_REVIEW, EMPLOYER_ID)

        response = client.get(f"{API}/applications/{application.id}/history", headers=auth_headers(CANDIDATE_ID))
        assert response.status_code == 200
        assert [e["to_status"] for e in response.json()] == ["under_review", "submitted"]

        ascending = client.get(
            f"{API}/applications/{application.id}/history",
            params={"ascending": True},
            headers=auth_headers(CANDIDATE_ID)
        )
        assert [e["from_status"] for e in ascending.json()] == [None, "submitted"]

    def test_application_interviews(self, client, schedule_interview, reviewed_application):
        interview = schedule_interview(reviewed_application.id)

        response = client.get(
            f"{API}/applications/{reviewed_application.id}/interviews", headers=auth_headers(CANDIDATE_ID)
        )

        assert response.status_code == 200
        assert [i["id"] for i in response.json()] == [interview.id]
        assert {p["role"] for p in response.json()[0]["participants"]} == {"candidate", "interviewer"}

    def test_application_feedback_rollup_is_employer_only(self, client, application):
        url = f"{API}/applications/{application.id}/feedback/rollup"

        assert client.get(url, headers=auth_headers(CANDIDATE_ID)).status_code == 403
        response = client.get(url, headers=auth_headers(EMPLOYER_ID))
        assert response.status_code == 200
        assert response.json()["feedback_count"] == 0
        assert response.json()["consensus"] is None

    def test_job_applications(self, client, application, job):
        response = client.get(f"{API}/jobs/{job.id}/applications", headers=auth_headers(EMPLOYER_ID))
        assert [a["id"] for a in response.json()] == [application.id]

        filtered = client.get(
            f"{API}/jobs/{job.id}/applications", params={"status": "rejected"}, headers=auth_headers(EMPLOYER_ID)
        )
        assert filtered.json() == []

        assert client.get(f"{API}/jobs/{job.id}/applications", headers=auth_headers(CANDIDATE_ID)).status_code == 403
        assert client.get(f"{API}/jobs/missing/applications", headers=auth_headers(EMPLOYER_ID)).status_code == 404

    def test_job_application_stats(self, client, application, job):
        response = client.get(f"{API}/jobs/{job.id}/application-stats", headers=auth_headers(EMPLOYER_ID))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["by_status"]["submitted"] == 1
        assert data["by_status"]["rejected"] == 0

    def test_candidate_analytics(self, client, application):
        response = client.get(f"{API}/candidates/{CANDIDATE_ID}/analytics", headers=auth_headers(CANDIDATE_ID))

        assert response.status_code == 200
        data = response.json()
        assert data["total_applications"] == 1
        assert data["response_rate"] == 0

        other = client.get(f"{API}/candidates/{CANDIDATE_ID}/analytics", headers=auth_headers(EMPLOYER_ID))
        assert other.status_code == 403
