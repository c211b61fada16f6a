"""
Transition tables and policy switches for the hiring pipeline.

Everything the lifecycle manager and scheduler need to decide "is this move
legal" lives in one PipelineConfig object that is built once and handed to
both at construction time. The tables are data, so they can be unit-tested
and swapped without touching the services.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.models.application import Application, ApplicationStatus
from app.models.interview import InterviewStatus, InterviewType

AS = ApplicationStatus
IS = InterviewStatus

APPLICATION_TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    AS.SUBMITTED: frozenset({AS.UNDER_REVIEW, AS.REJECTED, AS.WITHDRAWN}),
    AS.UNDER_REVIEW: frozenset({AS.INTERVIEW_SCHEDULED, AS.REJECTED, AS.WITHDRAWN}),
    AS.INTERVIEW_SCHEDULED: frozenset({AS.INTERVIEW_COMPLETED, AS.REJECTED, AS.WITHDRAWN}),
    AS.INTERVIEW_COMPLETED: frozenset({AS.OFFER_MADE, AS.REJECTED, AS.WITHDRAWN}),
    AS.OFFER_MADE: frozenset({AS.ACCEPTED, AS.REJECTED, AS.WITHDRAWN}),
    AS.ACCEPTED: frozenset({AS.WITHDRAWN}),
    AS.REJECTED: frozenset(),
    AS.WITHDRAWN: frozenset(),
}

# The happy path; rank in this list is the "stage" used by idempotent cascades
APPLICATION_STAGES: List[ApplicationStatus] = [
    AS.SUBMITTED,
    AS.UNDER_REVIEW,
    AS.INTERVIEW_SCHEDULED,
    AS.INTERVIEW_COMPLETED,
    AS.OFFER_MADE,
    AS.ACCEPTED,
]

INTERVIEW_TRANSITIONS: Dict[InterviewStatus, FrozenSet[InterviewStatus]] = {
    IS.SCHEDULED: frozenset({IS.CONFIRMED, IS.IN_PROGRESS, IS.COMPLETED, IS.CANCELLED, IS.RESCHEDULED, IS.NO_SHOW}),
    IS.CONFIRMED: frozenset({IS.IN_PROGRESS, IS.COMPLETED, IS.CANCELLED, IS.RESCHEDULED, IS.NO_SHOW}),
    # rescheduled behaves exactly like scheduled with a new time
    IS.RESCHEDULED: frozenset({IS.CONFIRMED, IS.IN_PROGRESS, IS.COMPLETED, IS.CANCELLED, IS.RESCHEDULED, IS.NO_SHOW}),
    IS.IN_PROGRESS: frozenset({IS.COMPLETED}),
    IS.COMPLETED: frozenset(),
    IS.CANCELLED: frozenset(),
    IS.NO_SHOW: frozenset(),
}

LOCATION_REQUIREMENTS: Dict[InterviewType, str] = {
    InterviewType.IN_PERSON: "location",
    InterviewType.VIDEO: "meeting_link",
}

STATUS_LABELS: Dict[ApplicationStatus, str] = {
    AS.SUBMITTED: "Submitted",
    AS.UNDER_REVIEW: "Under Review",
    AS.INTERVIEW_SCHEDULED: "Interview Scheduled",
    AS.INTERVIEW_COMPLETED: "Interview Completed",
    AS.OFFER_MADE: "Offer Made",
    AS.ACCEPTED: "Accepted",
    AS.REJECTED: "Rejected",
    AS.WITHDRAWN: "Withdrawn",
}

WITHDRAWABLE_STATUSES: FrozenSet[ApplicationStatus] = frozenset({
    AS.SUBMITTED, AS.UNDER_REVIEW, AS.INTERVIEW_SCHEDULED,
})


@dataclass(frozen=True)
class ProposedSlot:
    """A time slot an interview is about to occupy (new or moved)."""
    application_id: str
    starts_at: datetime
    duration_minutes: int
    interview_id: Optional[str] = None

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + timedelta(minutes=self.duration_minutes)


# (db, slot, participant user ids) -> None, raising InvalidSchedule to veto
ScheduleValidator = Callable[[Session, ProposedSlot, List[str]], None]

# (db, application, target status) -> None, raising InvalidTransition to veto
ProgressionPolicy = Callable[[Session, Application, ApplicationStatus], None]


@dataclass
class PipelineConfig:
    application_transitions: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = field(
        default_factory=lambda: dict(APPLICATION_TRANSITIONS)
    )
    application_stages: List[ApplicationStatus] = field(default_factory=lambda: list(APPLICATION_STAGES))
    interview_transitions: Dict[InterviewStatus, FrozenSet[InterviewStatus]] = field(
        default_factory=lambda: dict(INTERVIEW_TRANSITIONS)
    )
    location_requirements: Dict[InterviewType, str] = field(default_factory=lambda: dict(LOCATION_REQUIREMENTS))
    status_labels: Dict[ApplicationStatus, str] = field(default_factory=lambda: dict(STATUS_LABELS))
    withdrawable_statuses: FrozenSet[ApplicationStatus] = WITHDRAWABLE_STATUSES

    atomic_cascades: bool = True
    single_active_interview: bool = False
    schedule_validators: List[ScheduleValidator] = field(default_factory=list)
    progression_policy: Optional[ProgressionPolicy] = None

    def allowed_application_targets(self, current: ApplicationStatus) -> FrozenSet[ApplicationStatus]:
        return self.application_transitions.get(current, frozenset())

    def can_transition(self, current: ApplicationStatus, target: ApplicationStatus) -> bool:
        return target in self.allowed_application_targets(current)

    def can_transition_interview(self, current: InterviewStatus, target: InterviewStatus) -> bool:
        return target in self.interview_transitions.get(current, frozenset())

    def interview_sources(self, target: InterviewStatus) -> FrozenSet[InterviewStatus]:
        """Interview statuses from which `target` is reachable."""
        return frozenset(
            status for status, targets in self.interview_transitions.items() if target in targets
        )

    def is_closed(self, status: ApplicationStatus) -> bool:
        """Closed applications accept no further pipeline progress."""
        return not self.allowed_application_targets(status) or status not in self.application_stages

    def stage_rank(self, status: ApplicationStatus) -> Optional[int]:
        try:
            return self.application_stages.index(status)
        except ValueError:
            return None

    def forward_path(self, current: ApplicationStatus, target: ApplicationStatus) -> List[ApplicationStatus]:
        """
        Stages strictly after `current` up to and including `target`.

        Empty when `current` is already at or past `target`.
        """
        current_rank = self.stage_rank(current)
        target_rank = self.stage_rank(target)
        if current_rank is None or target_rank is None or current_rank >= target_rank:
            return []
        return self.application_stages[current_rank + 1:target_rank + 1]

    def label(self, status: ApplicationStatus) -> str:
        return self.status_labels.get(status, status.value.replace("_", " ").title())

    def required_location_field(self, interview_type: InterviewType) -> Optional[str]:
        return self.location_requirements.get(interview_type)


def build_pipeline_config(
    settings=None,
    extra_validators: Iterable[ScheduleValidator] = ()
) -> PipelineConfig:
    """
    Build the PipelineConfig from application settings.

    Args:
        settings: Settings instance (defaults to app.core.config.settings)
        extra_validators: additional schedule validators to install

    Returns:
        PipelineConfig with the PIPELINE_* switches applied
    """
    if settings is None:
        from app.core.config import settings
    from app.services import policies

    validators: List[ScheduleValidator] = []
    if settings.PIPELINE_PREVENT_DOUBLE_BOOKING:
        validators.append(policies.prevent_double_booking)
    validators.extend(extra_validators)

    return PipelineConfig(
        atomic_cascades=settings.PIPELINE_ATOMIC_CASCADES,
        single_active_interview=settings.PIPELINE_SINGLE_ACTIVE_INTERVIEW,
        schedule_validators=validators,
        progression_policy=(
            policies.require_favourable_feedback
            if settings.PIPELINE_REQUIRE_FAVOURABLE_FEEDBACK else None
        ),
    )
