"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown (in-memory SQLite)
- A frozen clock and a recording notification dispatcher
- Pipeline services wired to both
- FastAPI test client with bearer tokens per user
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.deps import get_dispatcher, get_pipeline_config
from app.core.security import create_access_token
from app.core.timeutils import utcnow
from app.models.application import ApplicationStatus
from app.models.interview import InterviewType
from app.models.job import Job
from app.services.feedback import FeedbackAggregator
from app.services.lifecycle import ApplicationLifecycleManager
from app.services.notifications import NotificationDispatcher
from app.services.pipeline_config import PipelineConfig
from app.services.scheduler import InterviewScheduler
from main import app


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

EMPLOYER_ID = "employer-1"
CANDIDATE_ID = "candidate-1"
INTERVIEWER_ID = "interviewer-1"
SECOND_INTERVIEWER_ID = "interviewer-2"

FROZEN_NOW = datetime(2030, 3, 4, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every dispatched event in memory."""

    def __init__(self):
        self.events = []

    def dispatch(self, event):
        self.events.append(event)

    def types(self):
        return [event.event_type for event in self.events]

    def clear(self):
        self.events.clear()


@pytest.fixture
def db_session():
    """
    Create a fresh database for each test.
    Tables are dropped after the test completes.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FrozenClock(FROZEN_NOW)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def lifecycle(db_session, config, dispatcher, clock):
    return ApplicationLifecycleManager(db_session, config=config, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def scheduler(db_session, config, dispatcher, clock):
    return InterviewScheduler(db_session, config=config, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def aggregator(db_session, config, dispatcher, clock):
    return FeedbackAggregator(db_session, config=config, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def job(db_session):
    """A job owned by EMPLOYER_ID."""
    job = Job(title="Senior Python Developer", employer_id=EMPLOYER_ID, company_name="Acme")
    db_session.add(job)
    db_session.commit()
    db_session.refresh(job)
    return job


@pytest.fixture
def application(lifecycle, job):
    """A freshly submitted application by CANDIDATE_ID."""
    return lifecycle.submit(job.id, CANDIDATE_ID)


@pytest.fixture
def reviewed_application(lifecycle, application, dispatcher):
    """Application moved to under_review, with the dispatcher cleared."""
    lifecycle.transition(application.id, ApplicationStatus.UNDER_REVIEW, EMPLOYER_ID)
    dispatcher.clear()
    return lifecycle.reload(application.id)


@pytest.fixture
def schedule_interview(scheduler, clock):
    """Factory scheduling a phone interview `hours` from the frozen clock."""
    def _schedule(application_id, hours=24, **kwargs):
        kwargs.setdefault("interviewer_ids", [INTERVIEWER_ID])
        return scheduler.schedule(
            application_id,
            kwargs.pop("interview_type", InterviewType.PHONE),
            clock.now + timedelta(hours=hours),
            kwargs.pop("duration_minutes", 60),
            EMPLOYER_ID,
            **kwargs
        )
    return _schedule


@pytest.fixture
def completed_interview(scheduler, schedule_interview, reviewed_application, clock):
    """Interview scheduled, then completed after its start time."""
    interview = schedule_interview(reviewed_application.id, hours=2)
    clock.advance(hours=3)
    scheduler.complete(interview.id, EMPLOYER_ID)
    return scheduler.get(interview.id)


@pytest.fixture
def due_interview(db_session, dispatcher, reviewed_application):
    """
    Interview whose start time has already passed on the wall clock, so the
    API (which runs on real time) can start or complete it.
    """
    past = FrozenClock(utcnow() - timedelta(days=2))
    scheduler = InterviewScheduler(db_session, dispatcher=dispatcher, clock=past)
    interview = scheduler.schedule(
        reviewed_application.id,
        InterviewType.PHONE,
        past.now + timedelta(hours=2),
        60,
        EMPLOYER_ID,
        interviewer_ids=[INTERVIEWER_ID]
    )
    dispatcher.clear()
    return scheduler.get(interview.id)


@pytest.fixture
def client(db_session, dispatcher):
    """
    FastAPI test client with overridden database, dispatcher and config
    dependencies.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_pipeline_config] = lambda: PipelineConfig()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> dict:
    """Bearer headers for a user."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def in_days(days: float) -> str:
    """ISO timestamp relative to the wall clock, for request bodies."""
    return (utcnow() + timedelta(days=days)).isoformat()
