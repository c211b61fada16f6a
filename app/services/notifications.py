"""
Notification events emitted by the hiring pipeline.

The engine never delivers notifications itself. Services buffer typed
events in an EventOutbox while a unit of work is open and hand them to the
injected NotificationDispatcher only after the commit succeeds. A failing
dispatcher is logged and otherwise ignored: a flaky notification channel
must never block a status change.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.core.timeutils import utcnow

logger = logging.getLogger(__name__)


class PipelineEvent(BaseModel):
    """Base for all outbound events."""
    event_type: str
    occurred_at: datetime = Field(default_factory=utcnow)


class ApplicationStatusChanged(PipelineEvent):
    event_type: Literal["application_status_changed"] = "application_status_changed"
    application_id: str
    candidate_id: str
    from_status: Optional[str] = None
    to_status: str
    status_label: str


class InterviewScheduled(PipelineEvent):
    event_type: Literal["interview_scheduled"] = "interview_scheduled"
    interview_id: str
    application_id: str
    scheduled_at: datetime
    recipient_ids: List[str] = Field(default_factory=list)


class InterviewRescheduled(PipelineEvent):
    event_type: Literal["interview_rescheduled"] = "interview_rescheduled"
    interview_id: str
    application_id: str
    scheduled_at: datetime
    previous_scheduled_at: datetime
    recipient_ids: List[str] = Field(default_factory=list)


class InterviewCancelled(PipelineEvent):
    event_type: Literal["interview_cancelled"] = "interview_cancelled"
    interview_id: str
    application_id: str
    reason: Optional[str] = None
    recipient_ids: List[str] = Field(default_factory=list)


class InterviewCompleted(PipelineEvent):
    event_type: Literal["interview_completed"] = "interview_completed"
    interview_id: str
    application_id: str


class FeedbackSubmitted(PipelineEvent):
    event_type: Literal["feedback_submitted"] = "feedback_submitted"
    interview_id: str
    evaluator_id: str
    feedback_id: str


AnyPipelineEvent = Union[
    ApplicationStatusChanged,
    InterviewScheduled,
    InterviewRescheduled,
    InterviewCancelled,
    InterviewCompleted,
    FeedbackSubmitted,
]


class NotificationDispatcher(ABC):
    """
    Outbound port for pipeline events.

    Implementations should return quickly; delivery is fire-and-forget.
    """

    @abstractmethod
    def dispatch(self, event: PipelineEvent) -> None:
        """Hand one event to the delivery channel."""
        pass


class NullDispatcher(NotificationDispatcher):
    """Drops every event. Used when notifications are switched off."""

    def dispatch(self, event: PipelineEvent) -> None:
        logger.debug(f"Notifications disabled, dropping {event.event_type}")


class CeleryNotificationDispatcher(NotificationDispatcher):
    """Queues each event on the Celery notification worker via Redis."""

    def dispatch(self, event: PipelineEvent) -> None:
        from app.core.celery_utils import queue_task_safely
        from app.tasks.notification_tasks import deliver_pipeline_event

        queued = queue_task_safely(deliver_pipeline_event, event.model_dump(mode="json"))
        if not queued:
            raise RuntimeError(f"Could not queue {event.event_type} notification")


class EventOutbox:
    """
    Events waiting for the current unit of work to commit.

    Shared by every service taking part in one operation so that a cascade
    (scheduler -> lifecycle manager) publishes all of its events together.
    """

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher or NullDispatcher()
        self._pending: List[PipelineEvent] = []

    def add(self, event: PipelineEvent) -> None:
        self._pending.append(event)

    @property
    def pending(self) -> List[PipelineEvent]:
        return list(self._pending)

    def discard(self) -> None:
        if self._pending:
            logger.info(f"Discarding {len(self._pending)} unpublished event(s) after rollback")
        self._pending.clear()

    def flush(self) -> int:
        """
        Dispatch every pending event. Errors are logged, never raised.

        Returns:
            Number of events the dispatcher accepted
        """
        events, self._pending = self._pending, []
        delivered = 0
        for event in events:
            try:
                self.dispatcher.dispatch(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Failed to dispatch {event.event_type} notification: {e}",
                    extra={"event_type": event.event_type}
                )
        return delivered
