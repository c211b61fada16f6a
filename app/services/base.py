"""
Shared plumbing for the pipeline services: session, config, clock and the
event outbox, plus commit/rollback helpers that keep events and data in step.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.timeutils import utcnow
from app.services.notifications import EventOutbox, NotificationDispatcher, PipelineEvent
from app.services.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)


class PipelineService:
    """
    Base class for the lifecycle manager, scheduler and feedback aggregator.

    One instance wraps one database session (one request). Services that
    collaborate on a cascade share the same session and outbox.
    """

    def __init__(
        self,
        db: Session,
        config: Optional[PipelineConfig] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
        outbox: Optional[EventOutbox] = None
    ):
        self.db = db
        self.config = config or PipelineConfig()
        self.clock = clock
        self.outbox = outbox or EventOutbox(dispatcher)

    def _now(self) -> datetime:
        return self.clock()

    def _emit(self, event: PipelineEvent) -> None:
        self.outbox.add(event)

    def _commit(self) -> None:
        """Commit the unit of work, then publish its events."""
        self.db.commit()
        self.outbox.flush()

    def _abort(self) -> None:
        """Roll back the unit of work and drop its events."""
        self.db.rollback()
        self.outbox.discard()
