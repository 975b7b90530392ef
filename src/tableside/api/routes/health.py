from __future__ import annotations

from fastapi import APIRouter, Response, status

from tableside.infrastructure.db.session import ping_database
from tableside.infrastructure.messaging.redis_client import ping_redis

router = APIRouter()


@router.get("/health/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
def ready(response: Response) -> dict[str, object]:
    # redis only carries change hints; dashboards fall back to polling
    database_ready = ping_database(timeout_seconds=1.0)
    redis_ready = ping_redis(timeout_seconds=1.0)
    checks = {
        "database": database_ready,
        "redis": "disabled" if redis_ready is None else redis_ready,
    }

    if database_ready:
        return {"status": "ok", "checks": checks}

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "unavailable", "checks": checks}
