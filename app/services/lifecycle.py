"""
Application Lifecycle Manager.

Owns the Application.status field. Every change is validated against the
transition table in PipelineConfig, written with a compare-and-swap on the
current status, recorded in the ledger and announced as an
ApplicationStatusChanged event once the transaction commits.

The scheduler calls into this manager (advance_to) when interviews are
scheduled or completed; this manager never calls back into the scheduler.
Employer notes on an application live here too; they sit beside the ledger
and never move the status.
"""

import logging
from typing import List, Optional

from app.core.exceptions import (
    ConcurrentModification,
    InvalidTransition,
    MissingRequiredField,
    NotFound,
    NotWithdrawable,
    Unauthorized,
)
from app.crud import application as application_crud
from app.crud import history as history_crud
from app.models.application import Application, ApplicationNote, ApplicationStatus, NoteType
from app.schemas.application import ApplicationProfile
from app.services.base import PipelineService
from app.services.notifications import ApplicationStatusChanged

logger = logging.getLogger(__name__)


class ApplicationLifecycleManager(PipelineService):
    """Validates and applies application status transitions."""

    def get(self, application_id: str) -> Application:
        """
        Load an application or raise NotFound.
        """
        application = application_crud.get_by_id(self.db, application_id)
        if not application:
            raise NotFound(f"Application {application_id} not found")
        return application

    def reload(self, application_id: str) -> Application:
        """Re-read an application from the database, discarding cached state."""
        application = self.get(application_id)
        self.db.refresh(application)
        return application

    def submit(
        self,
        job_id: str,
        candidate_id: str,
        profile: Optional[ApplicationProfile] = None
    ) -> Application:
        """
        Create an application in SUBMITTED status and write the initial
        ledger event.

        Raises:
            NotFound: job does not exist
            InvalidTransition: candidate already applied to this job
        """
        job = application_crud.get_job(self.db, job_id)
        if not job:
            raise NotFound(f"Job {job_id} not found")

        if application_crud.get_for_candidate_and_job(self.db, candidate_id, job_id):
            raise InvalidTransition(f"Candidate {candidate_id} has already applied to job {job_id}")

        now = self._now()
        try:
            application = application_crud.create(
                self.db,
                job_id=job_id,
                candidate_id=candidate_id,
                created_at=now,
                profile=profile.model_dump() if profile else None
            )
            history_crud.record_application_event(
                self.db,
                application_id=application.id,
                from_status=None,
                to_status=ApplicationStatus.SUBMITTED,
                actor_id=candidate_id,
                created_at=now
            )
            self._emit(ApplicationStatusChanged(
                application_id=application.id,
                candidate_id=candidate_id,
                from_status=None,
                to_status=ApplicationStatus.SUBMITTED.value,
                status_label=self.config.label(ApplicationStatus.SUBMITTED)
            ))
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(f"Application {application.id} submitted for job {job_id} by candidate {candidate_id}")
        return application

    def transition(
        self,
        application_id: str,
        target_status: ApplicationStatus,
        actor_id: str,
        notes: Optional[str] = None,
        expected_status: Optional[ApplicationStatus] = None,
        commit: bool = True
    ) -> Application:
        """
        Move an application to `target_status`.

        Args:
            application_id: Application to change
            target_status: Requested status
            actor_id: User performing the change (employer, or candidate for withdrawal)
            notes: Optional note stored on the ledger entry
            expected_status: Status the caller last saw; a mismatch means another
                writer got there first
            commit: Commit the unit of work (False when part of a larger operation)

        Returns:
            The application, updated (or unchanged when already at target)

        Raises:
            NotFound, Unauthorized, InvalidTransition, ConcurrentModification,
            NotWithdrawable (candidate withdrawing past the early stages)
        """
        target_status = ApplicationStatus(target_status)
        try:
            application = self._load(application_id)
            self._authorize(application, target_status, actor_id)

            current = application.status
            if expected_status is not None and current != ApplicationStatus(expected_status):
                raise ConcurrentModification(
                    f"Application {application_id} is {current.value}, expected {ApplicationStatus(expected_status).value}"
                )

            if target_status == ApplicationStatus.WITHDRAWN and not self._is_employer(application, actor_id):
                self._ensure_withdrawable(application)

            if current == target_status:
                # Retried request that already succeeded: nothing to record
                logger.info(f"Application {application_id} already {current.value}, no-op")
                return application

            if not self.config.can_transition(current, target_status):
                raise InvalidTransition(
                    f"Cannot move application from {current.value} to {target_status.value}"
                )

            if self.config.progression_policy:
                self.config.progression_policy(self.db, application, target_status)

            self._apply(application, current, target_status, actor_id, notes)
            if commit:
                self._commit()
        except Exception:
            if commit:
                self._abort()
            raise

        logger.info(f"Application {application_id}: {current.value} -> {target_status.value} by {actor_id}")
        return application

    def withdraw(
        self,
        application_id: str,
        candidate_id: str,
        reason: Optional[str] = None,
        commit: bool = True
    ) -> Application:
        """
        Candidate withdraws their own application.

        Only allowed while submitted, under review or with an interview
        scheduled. Cancelling that interview is the caller's job
        (see InterviewScheduler.withdraw_application).

        Raises:
            NotWithdrawable: application is past the withdrawable stages
            Unauthorized: actor is not the applying candidate
        """
        application = self.get(application_id)
        if application.candidate_id != candidate_id:
            raise Unauthorized(f"User {candidate_id} cannot withdraw application {application_id}")
        self._ensure_withdrawable(application)
        return self.transition(
            application_id,
            ApplicationStatus.WITHDRAWN,
            actor_id=candidate_id,
            notes=reason,
            commit=commit
        )

    def add_note(
        self,
        application_id: str,
        author_id: str,
        note: str,
        note_type: NoteType = NoteType.GENERAL,
        visible_to_candidate: bool = False
    ) -> ApplicationNote:
        """
        Attach a note to an application. The status is not touched.

        Raises:
            NotFound: application does not exist
            MissingRequiredField: note is blank
        """
        application = self.get(application_id)
        if not note or not note.strip():
            raise MissingRequiredField("A note needs some text")

        try:
            entry = application_crud.add_note(
                self.db,
                application_id=application.id,
                created_by=author_id,
                note=note.strip(),
                note_type=NoteType(note_type),
                is_visible_to_candidate=visible_to_candidate,
                created_at=self._now()
            )
            self._commit()
        except Exception:
            self._abort()
            raise

        logger.info(f"Note {entry.id} ({entry.note_type.value}) added to application {application_id} by {author_id}")
        return entry

    def list_notes(self, application_id: str, candidate_view: bool = False) -> List[ApplicationNote]:
        self.get(application_id)
        return application_crud.list_notes(self.db, application_id, visible_only=candidate_view)

    def advance_to(
        self,
        application_id: str,
        target_status: ApplicationStatus,
        actor_id: str,
        notes: Optional[str] = None
    ) -> Application:
        """
        Idempotently bring an application forward to at least `target_status`.

        Used by cascades. Walks the happy path one edge at a time so that
        the ledger stays a valid walk on the transition graph. Already being
        at or past the target is a no-op. Does not commit.

        Raises:
            InvalidTransition: application is closed (rejected / withdrawn)
            ConcurrentModification: another writer changed the status mid-walk
        """
        application = self._load(application_id)
        current = application.status

        if self.config.is_closed(current):
            raise InvalidTransition(
                f"Application {application_id} is {current.value}; cannot advance to {target_status.value}"
            )

        path = self.config.forward_path(current, target_status)
        if not path:
            logger.debug(f"Application {application_id} already at or past {target_status.value}")
            return application

        for step in path:
            if not self.config.can_transition(current, step):
                raise InvalidTransition(f"Cannot move application from {current.value} to {step.value}")
            self._apply(application, current, step, actor_id, notes)
            current = step

        logger.info(f"Application {application_id} advanced to {target_status.value} by cascade")
        return application

    def _load(self, application_id: str) -> Application:
        return self.get(application_id)

    def _is_employer(self, application: Application, actor_id: str) -> bool:
        return application.job is not None and application.job.employer_id == actor_id

    def _ensure_withdrawable(self, application: Application) -> None:
        if application.status not in self.config.withdrawable_statuses:
            raise NotWithdrawable(
                f"Application {application.id} is {application.status.value} and can no longer be withdrawn"
            )

    def _authorize(self, application: Application, target_status: ApplicationStatus, actor_id: str) -> None:
        if self._is_employer(application, actor_id):
            return
        if actor_id == application.candidate_id and target_status == ApplicationStatus.WITHDRAWN:
            return
        raise Unauthorized(
            f"User {actor_id} may not move application {application.id} to {target_status.value}"
        )

    def _apply(
        self,
        application: Application,
        current: ApplicationStatus,
        target_status: ApplicationStatus,
        actor_id: str,
        notes: Optional[str]
    ) -> None:
        now = self._now()
        self.db.flush()
        swapped = application_crud.compare_and_set_status(
            self.db, application.id, current, target_status, updated_at=now
        )
        if not swapped:
            raise ConcurrentModification(
                f"Application {application.id} changed while moving {current.value} -> {target_status.value}"
            )
        self.db.expire(application, ["status", "updated_at"])

        history_crud.record_application_event(
            self.db,
            application_id=application.id,
            from_status=current,
            to_status=target_status,
            actor_id=actor_id,
            created_at=now,
            notes=notes
        )
        self._emit(ApplicationStatusChanged(
            application_id=application.id,
            candidate_id=application.candidate_id,
            from_status=current.value,
            to_status=target_status.value,
            status_label=self.config.label(target_status)
        ))
