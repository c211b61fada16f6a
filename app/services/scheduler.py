"""
Interview Scheduler.

Creates interviews and drives them through their status machine:

    schedule -> [confirm] -> [start] -> complete
             -> reschedule (any number of times while not started)
             -> cancel / mark_no_show

Scheduling and completing an interview cascade into the application
(interview_scheduled / interview_completed) through the lifecycle manager.
With PipelineConfig.atomic_cascades the interview write and the cascade
commit together; otherwise the interview commits first and a failed cascade
is reported as PartialSuccess, to be repaired later with reconcile().
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    ConcurrentModification,
    InvalidSchedule,
    InvalidTransition,
    MissingRequiredField,
    NotFound,
    PartialSuccess,
    PipelineError,
)
from app.core.timeutils import as_utc
from app.crud import history as history_crud
from app.crud import interview as interview_crud
from app.models.application import Application, ApplicationStatus
from app.models.interview import (
    Interview,
    InterviewParticipant,
    InterviewStatus,
    InterviewType,
    ParticipantRole,
    ParticipantStatus,
)
from app.services.base import PipelineService
from app.services.lifecycle import ApplicationLifecycleManager
from app.services.notifications import (
    InterviewCancelled,
    InterviewCompleted,
    InterviewRescheduled,
    InterviewScheduled,
)
from app.services.pipeline_config import ProposedSlot

logger = logging.getLogger(__name__)

WITHDRAWAL_CANCEL_REASON = "Application withdrawn by candidate"


class InterviewScheduler(PipelineService):
    """Owns Interview records, their participants and their status machine."""

    def __init__(self, db, config=None, dispatcher=None, clock=None, outbox=None, lifecycle=None):
        kwargs = {"clock": clock} if clock else {}
        super().__init__(db, config=config, dispatcher=dispatcher, outbox=outbox, **kwargs)
        self.lifecycle = lifecycle or ApplicationLifecycleManager(
            db, config=self.config, clock=self.clock, outbox=self.outbox
        )

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    def get(self, interview_id: str) -> Interview:
        interview = interview_crud.get_by_id(self.db, interview_id)
        if not interview:
            raise NotFound(f"Interview {interview_id} not found")
        return interview

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(
        self,
        application_id: str,
        interview_type: InterviewType,
        scheduled_at: datetime,
        duration_minutes: int,
        actor_id: str,
        location: Optional[str] = None,
        meeting_link: Optional[str] = None,
        notes: Optional[str] = None,
        interviewer_ids: Iterable[str] = (),
        observer_ids: Iterable[str] = ()
    ) -> Interview:
        """
        Schedule a new interview against an application.

        Creates the interview in SCHEDULED status with exactly one candidate
        participant (taken from the application) plus one participant per
        interviewer / observer id, then moves the application forward to
        interview_scheduled unless it is already there or beyond.

        Raises:
            InvalidSchedule: time not in the future, non-positive duration,
                or rejected by a schedule validator
            MissingRequiredField: location / meeting link missing for the type
            NotFound: application does not exist
            InvalidTransition: application is rejected or withdrawn
            PartialSuccess: non-atomic mode, interview saved but cascade failed
        """
        interview_type = InterviewType(interview_type)
        scheduled_at = as_utc(scheduled_at)
        self._check_duration(duration_minutes)
        self._check_future(scheduled_at)
        self._check_location(interview_type, location, meeting_link)

        application = self.lifecycle.get(application_id)
        if self.config.is_closed(application.status):
            raise InvalidTransition(
                f"Cannot schedule an interview for a {application.status.value} application"
            )
        if self.config.single_active_interview and interview_crud.list_active_for_application(self.db, application_id):
            raise InvalidSchedule(f"Application {application_id} already has an active interview")

        participants = self._participant_list(application, interviewer_ids, observer_ids)
        slot = ProposedSlot(application_id=application_id, starts_at=scheduled_at, duration_minutes=duration_minutes)
        self._run_validators(slot, [user_id for user_id, _ in participants])

        now = self._now()
        try:
            interview = interview_crud.create(
                self.db,
                application_id=application_id,
                interview_type=interview_type,
                scheduled_at=scheduled_at,
                duration_minutes=duration_minutes,
                created_by=actor_id,
                created_at=now,
                location=location,
                meeting_link=meeting_link,
                notes=notes
            )
            interview_crud.add_participants(self.db, interview, participants)
            history_crud.record_interview_event(
                self.db,
                interview_id=interview.id,
                from_status=None,
                to_status=InterviewStatus.SCHEDULED,
                actor_id=actor_id,
                created_at=now,
                notes=notes
            )
            self._emit(InterviewScheduled(
                interview_id=interview.id,
                application_id=application_id,
                scheduled_at=scheduled_at,
                recipient_ids=[user_id for user_id, _ in participants]
            ))
        except Exception:
            self._abort()
            raise

        interview_id = interview.id
        self._commit_with_cascade(
            interview,
            lambda: self._cascade(application_id, ApplicationStatus.INTERVIEW_SCHEDULED, actor_id),
            f"advance application {application_id} to interview_scheduled"
        )
        logger.info(
            f"Scheduled {interview_type.value} interview {interview_id} for application {application_id} "
            f"at {scheduled_at.isoformat()} ({len(participants)} participants)"
        )
        return interview

    def reschedule(
        self,
        interview_id: str,
        new_scheduled_at: datetime,
        actor_id: str,
        duration_minutes: Optional[int] = None,
        location: Optional[str] = None,
        meeting_link: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Interview:
        """
        Move an interview to a later time.

        Allowed from scheduled, confirmed and rescheduled. The new time must
        be in the future and strictly later than the current one. Invitations
        go back to `invited` since the old RSVPs were for the old time.

        Raises:
            InvalidTransition, InvalidSchedule, MissingRequiredField
        """
        interview = self.get(interview_id)
        current = interview.status
        self._require_transition(interview, InterviewStatus.RESCHEDULED)

        new_scheduled_at = as_utc(new_scheduled_at)
        previous = as_utc(interview.scheduled_at)
        self._check_future(new_scheduled_at)
        if new_scheduled_at <= previous:
            raise InvalidSchedule(
                f"New time {new_scheduled_at.isoformat()} must be later than the current {previous.isoformat()}"
            )

        duration = interview.duration_minutes if duration_minutes is None else duration_minutes
        self._check_duration(duration)
        new_location = location if location is not None else interview.location
        new_link = meeting_link if meeting_link is not None else interview.meeting_link
        self._check_location(interview.interview_type, new_location, new_link)

        slot = ProposedSlot(
            application_id=interview.application_id,
            starts_at=new_scheduled_at,
            duration_minutes=duration,
            interview_id=interview.id
        )
        self._run_validators(slot, [p.user_id for p in interview.participants])

        values = {
            "scheduled_at": new_scheduled_at,
            "duration_minutes": duration,
            "location": new_location,
            "meeting_link": new_link,
        }
        if notes is not None:
            values["notes"] = notes

        try:
            self._set_status(
                interview, current, InterviewStatus.RESCHEDULED, actor_id,
                event_notes=f"Moved from {previous.isoformat()} to {new_scheduled_at.isoformat()}",
                **values
            )
            interview_crud.set_participant_status(
                self.db, interview.id, ParticipantStatus.INVITED,
                only_from=(ParticipantStatus.CONFIRMED, ParticipantStatus.DECLINED)
            )
            self._emit(InterviewRescheduled(
                interview_id=interview.id,
                application_id=interview.application_id,
                scheduled_at=new_scheduled_at,
                previous_scheduled_at=previous,
                recipient_ids=[p.user_id for p in interview.participants]
            ))
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(f"Rescheduled interview {interview_id} to {new_scheduled_at.isoformat()} by {actor_id}")
        return interview

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def confirm(self, interview_id: str, actor_id: str) -> Interview:
        """Mark a scheduled (or rescheduled) interview as confirmed."""
        interview = self.get(interview_id)
        self._require_transition(interview, InterviewStatus.CONFIRMED)
        return self._simple_transition(interview, InterviewStatus.CONFIRMED, actor_id)

    def start(self, interview_id: str, actor_id: str) -> Interview:
        """Mark an interview as in progress once its start time has arrived."""
        interview = self.get(interview_id)
        self._require_transition(interview, InterviewStatus.IN_PROGRESS)
        self._require_started(interview, "start")
        return self._simple_transition(interview, InterviewStatus.IN_PROGRESS, actor_id)

    def cancel(self, interview_id: str, actor_id: str, reason: Optional[str] = None) -> Interview:
        """
        Cancel an interview that has not started.

        The owning application keeps its status; whether to reject or
        re-schedule is left to the employer.

        Raises:
            InvalidTransition: interview is in progress or already closed
        """
        interview = self.get(interview_id)
        self._require_transition(interview, InterviewStatus.CANCELLED)
        try:
            self._cancel(interview, actor_id, reason)
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(f"Cancelled interview {interview_id} by {actor_id}" + (f": {reason}" if reason else ""))
        return interview

    def complete(self, interview_id: str, actor_id: str, notes: Optional[str] = None) -> Interview:
        """
        Mark an interview as completed and open it for feedback.

        Attending participants are marked `attended`. If the application is
        at interview_scheduled it moves to interview_completed.

        Raises:
            InvalidTransition: interview already closed
            InvalidSchedule: interview has not started yet
            PartialSuccess: non-atomic mode, interview saved but cascade failed
        """
        interview = self.get(interview_id)
        current = interview.status
        self._require_transition(interview, InterviewStatus.COMPLETED)
        self._require_started(interview, "complete")

        now = self._now()
        values = {"completed_at": now}
        if notes is not None:
            values["notes"] = notes

        try:
            self._set_status(interview, current, InterviewStatus.COMPLETED, actor_id, event_notes=notes, **values)
            interview_crud.set_participant_status(
                self.db, interview.id, ParticipantStatus.ATTENDED,
                only_from=(ParticipantStatus.INVITED, ParticipantStatus.CONFIRMED)
            )
            self._emit(InterviewCompleted(interview_id=interview.id, application_id=interview.application_id))
        except Exception:
            self._abort()
            raise

        application_id = interview.application_id
        self._commit_with_cascade(
            interview,
            lambda: self._cascade(
                application_id,
                ApplicationStatus.INTERVIEW_COMPLETED,
                actor_id,
                only_from=ApplicationStatus.INTERVIEW_SCHEDULED
            ),
            f"advance application {application_id} to interview_completed"
        )
        logger.info(f"Completed interview {interview_id} by {actor_id}")
        return interview

    def mark_no_show(self, interview_id: str, actor_id: str) -> Interview:
        """
        Record that the candidate did not turn up. Terminal; the
        application is left alone.
        """
        interview = self.get(interview_id)
        current = interview.status
        self._require_transition(interview, InterviewStatus.NO_SHOW)
        self._require_started(interview, "mark as no-show")

        try:
            self._set_status(interview, current, InterviewStatus.NO_SHOW, actor_id)
            interview_crud.set_participant_status(
                self.db, interview.id, ParticipantStatus.NO_SHOW, role=ParticipantRole.CANDIDATE
            )
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(f"Interview {interview_id} marked no-show by {actor_id}")
        return interview

    def respond(self, interview_id: str, user_id: str, accept: bool) -> InterviewParticipant:
        """
        Participant RSVP: invited -> confirmed / declined. A participant may
        change their answer until the interview starts.

        Raises:
            NotFound: user is not a participant
            InvalidTransition: interview no longer accepts responses
        """
        interview = self.get(interview_id)
        if interview.status not in (InterviewStatus.SCHEDULED, InterviewStatus.CONFIRMED, InterviewStatus.RESCHEDULED):
            raise InvalidTransition(f"Interview {interview_id} is {interview.status.value}; responses are closed")

        participant = interview_crud.get_participant(self.db, interview_id, user_id)
        if not participant:
            raise NotFound(f"User {user_id} is not a participant of interview {interview_id}")
        if participant.status not in (ParticipantStatus.INVITED, ParticipantStatus.CONFIRMED, ParticipantStatus.DECLINED):
            raise InvalidTransition(f"Participant is already {participant.status.value}")

        try:
            participant.status = ParticipantStatus.CONFIRMED if accept else ParticipantStatus.DECLINED
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(f"User {user_id} {'accepted' if accept else 'declined'} interview {interview_id}")
        return participant

    # ------------------------------------------------------------------
    # Orchestration across both aggregates
    # ------------------------------------------------------------------

    def withdraw_application(
        self,
        application_id: str,
        candidate_id: str,
        reason: Optional[str] = None
    ) -> Tuple[Application, List[Interview]]:
        """
        Withdraw an application and cancel its pending interviews in one
        unit of work.

        Returns:
            (withdrawn application, interviews that were cancelled)
        """
        try:
            application = self.lifecycle.withdraw(application_id, candidate_id, reason=reason, commit=False)
            cancelled = []
            for interview in interview_crud.list_active_for_application(self.db, application_id):
                if self.config.can_transition_interview(interview.status, InterviewStatus.CANCELLED):
                    self._cancel(interview, candidate_id, reason or WITHDRAWAL_CANCEL_REASON)
                    cancelled.append(interview)
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(
            f"Application {application_id} withdrawn by {candidate_id}; cancelled {len(cancelled)} interview(s)"
        )
        return application, cancelled

    def reconcile(self, application_id: str, actor_id: str) -> Application:
        """
        Re-run the cascades implied by an application's interviews.

        Repair path for PartialSuccess: safe to call any number of times,
        since the cascade is a no-op once the application has caught up.
        """
        application = self.lifecycle.get(application_id)
        if self.config.is_closed(application.status):
            return application

        interviews = interview_crud.list_for_application(self.db, application_id)
        statuses = {interview.status for interview in interviews}
        if InterviewStatus.COMPLETED in statuses:
            target = ApplicationStatus.INTERVIEW_COMPLETED
        elif statuses & set(interview_crud.ACTIVE_STATUSES):
            target = ApplicationStatus.INTERVIEW_SCHEDULED
        else:
            return application

        try:
            self._cascade(application_id, target, actor_id, notes="Reconciled from interview state")
            self._commit()
        except Exception:
            self._abort()
            raise
        return self.lifecycle.reload(application_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cascade(
        self,
        application_id: str,
        target: ApplicationStatus,
        actor_id: str,
        only_from: Optional[ApplicationStatus] = None,
        notes: Optional[str] = None
    ) -> Optional[Application]:
        """
        Idempotent application cascade, retried once on a concurrent write.
        """
        for attempt in (1, 2):
            try:
                if only_from is not None:
                    application = self.lifecycle.get(application_id)
                    if application.status != only_from:
                        return application
                return self.lifecycle.advance_to(application_id, target, actor_id, notes=notes)
            except ConcurrentModification:
                if attempt == 2:
                    raise
                logger.warning(f"Concurrent change on application {application_id}, retrying cascade")
                self.lifecycle.reload(application_id)
        return None

    def _commit_with_cascade(self, completed: Interview, cascade: Callable[[], object], description: str) -> None:
        if self.config.atomic_cascades:
            try:
                cascade()
                self._commit()
            except Exception:
                self._abort()
                raise
            return

        # Non-atomic: the interview is durable before the cascade runs
        self._commit()
        try:
            cascade()
            self._commit()
        except (PipelineError, SQLAlchemyError) as e:
            self._abort()
            logger.error(f"Cascade failed after saving interview {completed.id}: {e}")
            failure = e if isinstance(e, PipelineError) else None
            raise PartialSuccess(
                f"Interview {completed.id} saved but could not {description}",
                completed=completed,
                failed=description,
                error=failure
            ) from e

    def _cancel(self, interview: Interview, actor_id: str, reason: Optional[str]) -> None:
        values = {}
        if reason:
            values["notes"] = f"Cancelled: {reason}"
        self._set_status(interview, interview.status, InterviewStatus.CANCELLED, actor_id, event_notes=reason, **values)
        self._emit(InterviewCancelled(
            interview_id=interview.id,
            application_id=interview.application_id,
            reason=reason,
            recipient_ids=[p.user_id for p in interview.participants]
        ))

    def _simple_transition(self, interview: Interview, target: InterviewStatus, actor_id: str) -> Interview:
        try:
            self._set_status(interview, interview.status, target, actor_id)
            self._commit()
        except Exception:
            self._abort()
            raise
        logger.info(f"Interview {interview.id} -> {target.value} by {actor_id}")
        return interview

    def _set_status(
        self,
        interview: Interview,
        current: InterviewStatus,
        target: InterviewStatus,
        actor_id: str,
        event_notes: Optional[str] = None,
        **values
    ) -> None:
        now = self._now()
        self.db.flush()
        swapped = interview_crud.compare_and_set_status(
            self.db, interview.id, current, target, updated_at=now, **values
        )
        if not swapped:
            raise ConcurrentModification(
                f"Interview {interview.id} changed while moving {current.value} -> {target.value}"
            )
        self.db.expire(interview)

        history_crud.record_interview_event(
            self.db,
            interview_id=interview.id,
            from_status=current,
            to_status=target,
            actor_id=actor_id,
            created_at=now,
            notes=event_notes
        )

    def _require_transition(self, interview: Interview, target: InterviewStatus) -> None:
        if not self.config.can_transition_interview(interview.status, target):
            raise InvalidTransition(
                f"Cannot move interview {interview.id} from {interview.status.value} to {target.value}"
            )

    def _require_started(self, interview: Interview, action: str) -> None:
        if as_utc(interview.scheduled_at) > self._now():
            raise InvalidSchedule(
                f"Cannot {action} interview {interview.id} before its scheduled time"
            )

    def _check_future(self, scheduled_at: datetime) -> None:
        if scheduled_at <= self._now():
            raise InvalidSchedule(f"Interview time {scheduled_at.isoformat()} must be in the future")

    @staticmethod
    def _check_duration(duration_minutes: int) -> None:
        if duration_minutes is None or duration_minutes <= 0:
            raise InvalidSchedule(f"Duration must be a positive number of minutes, got {duration_minutes}")

    def _check_location(
        self,
        interview_type: InterviewType,
        location: Optional[str],
        meeting_link: Optional[str]
    ) -> None:
        required = self.config.required_location_field(interview_type)
        provided = {"location": location, "meeting_link": meeting_link}
        if required and not (provided.get(required) or "").strip():
            raise MissingRequiredField(
                f"{interview_type.value} interviews require a {required.replace('_', ' ')}"
            )

    def _participant_list(
        self,
        application: Application,
        interviewer_ids: Iterable[str],
        observer_ids: Iterable[str]
    ) -> List[Tuple[str, ParticipantRole]]:
        """Candidate first, then interviewers, then observers, without duplicates."""
        participants = [(application.candidate_id, ParticipantRole.CANDIDATE)]
        seen = {application.candidate_id}
        for role, user_ids in ((ParticipantRole.INTERVIEWER, interviewer_ids), (ParticipantRole.OBSERVER, observer_ids)):
            for user_id in user_ids:
                if user_id and user_id not in seen:
                    participants.append((user_id, role))
                    seen.add(user_id)
        return participants

    def _run_validators(self, slot: ProposedSlot, participant_ids: List[str]) -> None:
        for validator in self.config.schedule_validators:
            validator(self.db, slot, participant_ids)
