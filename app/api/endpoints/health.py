"""
Health check endpoints.

Reports the status of the database and of the Redis broker that carries
notification events.
"""

import logging
from typing import Any, Dict

import redis
from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.timeutils import utcnow

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic liveness check for load balancers and uptime monitors.
    """
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat()
    }


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
def detailed_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Health of each dependency.

    The database is required; the broker only affects notifications, so a
    broker outage reports "degraded" rather than "unhealthy".
    """
    health_status = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "checks": {}
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database error: {str(e)}"
        }

    if not settings.NOTIFICATIONS_ENABLED:
        health_status["checks"]["broker"] = {"status": "disabled", "message": "Notifications are switched off"}
        return health_status

    try:
        client = redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
        client.ping()
        health_status["checks"]["broker"] = {
            "status": "healthy",
            "message": "Redis broker reachable"
        }
    except redis.RedisError as e:
        logger.warning(f"Broker health check failed: {e}")
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"
        health_status["checks"]["broker"] = {
            "status": "unhealthy",
            "message": f"Broker error: {str(e)}"
        }

    return health_status
