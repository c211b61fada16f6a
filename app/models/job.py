import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.timeutils import utcnow


class Job(Base):
    """
    Job posting owned by an employer.

    Job CRUD lives outside the pipeline; the engine only reads jobs to
    answer "does this employer own this application" and for notification
    text.
    """
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    title = Column(String, nullable=False)
    employer_id = Column(String(36), nullable=False, index=True)
    company_name = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    applications = relationship("Application", back_populates="job")

    def __repr__(self):
        return f"<Job(id={self.id}, title='{self.title}', employer_id={self.employer_id})>"
