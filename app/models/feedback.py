"""
Interview feedback model.

One row per submission. An evaluator may submit more than once; the
aggregator reads the newest row per evaluator for display and rollups.
"""

import enum
import uuid
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, Enum, DateTime
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.timeutils import utcnow


class Recommendation(str, enum.Enum):
    STRONG_YES = "strong_yes"
    YES = "yes"
    MAYBE = "maybe"
    NO = "no"
    STRONG_NO = "strong_no"


class InterviewFeedback(Base):
    """
    An evaluator's assessment of a completed interview.

    - rating: optional 1-5 score
    - strengths / weaknesses / notes: free text
    - recommendation: hire signal, see Recommendation
    - is_visible_to_candidate: whether the candidate may read this row
    """
    __tablename__ = "interview_feedback"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    interview_id = Column(String(36), ForeignKey("interviews.id"), nullable=False, index=True)
    evaluator_id = Column(String(36), nullable=False, index=True)

    rating = Column(Integer, nullable=True)
    strengths = Column(Text, nullable=True)
    weaknesses = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    recommendation = Column(
        Enum(Recommendation, name="recommendation", values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    is_visible_to_candidate = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    interview = relationship("Interview", back_populates="feedback")

    def __repr__(self):
        return f"<InterviewFeedback(interview_id={self.interview_id}, evaluator_id={self.evaluator_id}, recommendation={self.recommendation.value})>"
