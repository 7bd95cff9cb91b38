"""
Core views providing infrastructure endpoints.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for load balancers and container probes.

    Returns:
        200 with {"status": "healthy", "database": ..., "cache": ...}
        503 when the database is unreachable

    Cache (Redis) failures are reported but do not fail the check;
    token refresh and sweeps retry on their own schedule.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.warning("Health check: database unreachable", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        cache.set("health_check", "ok", timeout=1)
        connected = cache.get("health_check") == "ok"
    except RedisError:
        logger.warning("Health check: cache unreachable", exc_info=True)
        connected = False
    health_status["cache"] = "connected" if connected else "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
