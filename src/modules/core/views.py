import time
from typing import Any, Callable, Dict, Tuple

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger(__name__)


def _timed(check: Callable[[], None]) -> Dict[str, Any]:
    start = time.monotonic()
    check()
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


CHECKS: Tuple[Tuple[str, Callable[[], None]], ...] = (
    ("database", _check_database),
    ("cache", _check_cache),
)


def health_check(request: HttpRequest) -> JsonResponse:
    """GET /health: database and cache reachability (503 if any is down)."""
    services: Dict[str, Dict[str, Any]] = {}
    healthy = True

    for name, check in CHECKS:
        try:
            services[name] = _timed(check)
        except Exception as exc:  # noqa: BLE001
            services[name] = {"status": "down"}
            healthy = False
            logger.error("health_check.failure", service=name, error=str(exc))

    overall = "healthy" if healthy else "unhealthy"
    logger.info("health_check.completed", status=overall)

    return JsonResponse(
        {
            "status": overall,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )
