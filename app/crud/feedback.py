"""
CRUD operations for InterviewFeedback model.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from app.models.feedback import InterviewFeedback, Recommendation
from app.models.interview import Interview, InterviewStatus


def create(
    db: Session,
    interview_id: str,
    evaluator_id: str,
    recommendation: Recommendation,
    created_at: datetime,
    rating: Optional[int] = None,
    strengths: Optional[str] = None,
    weaknesses: Optional[str] = None,
    notes: Optional[str] = None,
    is_visible_to_candidate: bool = False
) -> InterviewFeedback:
    feedback = InterviewFeedback(
        interview_id=interview_id,
        evaluator_id=evaluator_id,
        recommendation=recommendation,
        rating=rating,
        strengths=strengths,
        weaknesses=weaknesses,
        notes=notes,
        is_visible_to_candidate=is_visible_to_candidate,
        created_at=created_at,
        updated_at=created_at
    )
    db.add(feedback)
    db.flush()
    return feedback


def get_by_id(db: Session, feedback_id: str) -> Optional[InterviewFeedback]:
    return db.query(InterviewFeedback).filter(InterviewFeedback.id == feedback_id).first()


def list_for_interview(db: Session, interview_id: str) -> List[InterviewFeedback]:
    """All submissions for an interview, oldest first."""
    return db.query(InterviewFeedback).filter(
        InterviewFeedback.interview_id == interview_id
    ).order_by(InterviewFeedback.created_at.asc(), InterviewFeedback.id.asc()).all()


def list_for_application(db: Session, application_id: str) -> List[InterviewFeedback]:
    """Feedback across every completed interview of an application, oldest first."""
    return db.query(InterviewFeedback).join(
        Interview, Interview.id == InterviewFeedback.interview_id
    ).filter(
        Interview.application_id == application_id,
        Interview.status == InterviewStatus.COMPLETED
    ).order_by(InterviewFeedback.created_at.asc(), InterviewFeedback.id.asc()).all()
