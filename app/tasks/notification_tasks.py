"""
Celery tasks for pipeline notifications.

The API queues one deliver_pipeline_event per committed event. The worker
turns it into a short title/message pair and POSTs it to the configured
webhook, retrying with backoff when the endpoint is unavailable.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import SessionLocal
from app.crud import application as application_crud
from app.crud import interview as interview_crud

logger = logging.getLogger(__name__)


def _job_context(application_id: Optional[str] = None, interview_id: Optional[str] = None) -> Dict[str, str]:
    """Job title and company for the message text; generic wording if unknown."""
    context = {"job_title": "the position", "company_name": "the company"}
    db = SessionLocal()
    try:
        if not application_id and interview_id:
            interview = interview_crud.get_by_id(db, interview_id)
            application_id = interview.application_id if interview else None
        application = application_crud.get_by_id(db, application_id) if application_id else None
        if application and application.job:
            context["job_title"] = application.job.title
            if application.job.company_name:
                context["company_name"] = application.job.company_name
    finally:
        db.close()
    return context


def render_notification(event: Dict[str, Any], context: Dict[str, str]) -> Tuple[str, str]:
    """
    Title and message for a serialized pipeline event.

    Args:
        event: PipelineEvent.model_dump(mode="json")
        context: job_title / company_name

    Returns:
        (title, message)
    """
    event_type = event.get("event_type")
    job = f"{context['job_title']} at {context['company_name']}"

    if event_type == "application_status_changed":
        if event.get("from_status") is None:
            return "Application Submitted", f"Your application for {job} has been submitted successfully."
        if event.get("to_status") == "offer_made":
            return "Job Offer Received", f"Congratulations! You've received an offer for {job}."
        label = event.get("status_label") or event.get("to_status", "").replace("_", " ")
        return "Application Status Update", f"Your application for {job} is now {label.lower()}."

    if event_type == "interview_scheduled":
        return "Interview Scheduled", f"Interview scheduled for {job} on {event.get('scheduled_at')}."

    if event_type == "interview_rescheduled":
        return (
            "Interview Rescheduled",
            f"Your interview for {job} has moved from {event.get('previous_scheduled_at')} "
            f"to {event.get('scheduled_at')}."
        )

    if event_type == "interview_cancelled":
        reason = event.get("reason")
        return (
            "Interview Cancelled",
            f"Your interview for {job} has been cancelled" + (f": {reason}." if reason else ".")
        )

    if event_type == "interview_completed":
        return "Interview Completed", f"The interview for {job} is complete."

    if event_type == "feedback_submitted":
        return "Feedback Submitted", f"New interview feedback is available for {job}."

    return "Hiring Update", f"There is an update on {job}."


@celery_app.task(
    bind=True,
    name="deliver_pipeline_event",
    max_retries=5,
    default_retry_delay=30,
    autoretry_for=(httpx.HTTPError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True
)
def deliver_pipeline_event(self, event: Dict[str, Any]):
    """
    Deliver one pipeline event to NOTIFICATION_WEBHOOK_URL.

    Args:
        event: serialized PipelineEvent

    Returns:
        dict with the delivery status (for the result backend)
    """
    event_type = event.get("event_type", "unknown")

    if not settings.NOTIFICATION_WEBHOOK_URL:
        logger.info(f"No notification webhook configured, skipping {event_type}")
        return {"status": "skipped", "event_type": event_type}

    context = _job_context(event.get("application_id"), event.get("interview_id"))
    title, message = render_notification(event, context)

    try:
        logger.info(f"Delivering {event_type} notification (attempt {self.request.retries + 1})")
        response = httpx.post(
            settings.NOTIFICATION_WEBHOOK_URL,
            json={"title": title, "message": message, "event": event},
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Error delivering {event_type} notification: {str(e)}")
        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for {event_type} notification")
        raise

    logger.info(f"{event_type} notification delivered")
    return {"status": "delivered", "event_type": event_type}
