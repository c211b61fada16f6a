"""
Celery tasks package.

- notification_tasks: delivery of pipeline events to the notification webhook
"""

from app.tasks import notification_tasks

__all__ = ["notification_tasks"]
