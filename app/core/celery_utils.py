"""
Queueing helper used by the API process to hand work to Celery.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Tuple
from celery import Task
from kombu import Connection

logger = logging.getLogger(__name__)

# Queueing runs off the request thread so a slow broker cannot stall uvicorn's loop
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="pipeline_queue")

QUEUE_TIMEOUT_SECONDS = 5


def _send(task: Task, args: tuple, kwargs: dict) -> Tuple[bool, str, str]:
    """
    Publish one task over a fresh broker connection.

    Returns:
        (queued, task_id, error_message)
    """
    from app.core.config import settings

    try:
        with Connection(settings.REDIS_URL) as conn:
            result = task.apply_async(
                args=args,
                kwargs=kwargs,
                connection=conn,
                retry=True,
                retry_policy={
                    "max_retries": 3,
                    "interval_start": 0,
                    "interval_step": 0.2,
                    "interval_max": 0.5,
                }
            )
            return True, result.id, ""
    except Exception as e:
        return False, "", str(e)


def queue_task_safely(task: Task, *args, **kwargs) -> bool:
    """
    Queue a Celery task without letting broker trouble reach the caller.

    Args:
        task: Celery task to queue
        *args, **kwargs: task arguments

    Returns:
        True if the broker accepted the task, False otherwise

    Raises:
        concurrent.futures.TimeoutError: broker did not answer in time
    """
    future = _executor.submit(_send, task, args, kwargs)
    queued, task_id, error = future.result(timeout=QUEUE_TIMEOUT_SECONDS)

    if queued:
        logger.info(f"Task {task.name} queued: {task_id}")
    else:
        logger.error(f"Failed to queue task {task.name}: {error}")
    return queued
