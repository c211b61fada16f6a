"""
CRUD operations (Create, Read, Update) for database models.

This layer keeps SQL out of the pipeline services, following the Repository
pattern. Functions here flush but never commit: the service that owns the
unit of work decides when a change becomes durable.
"""

from app.crud import application, feedback, history, interview

__all__ = ["application", "feedback", "history", "interview"]
