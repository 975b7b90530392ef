from __future__ import annotations

import logging
import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("tableside.api.access")

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def _route_template(request: Request) -> str:
    # order ids in raw paths would give every order its own label set
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._observe(request, 500, started, failed=True)
            raise
        self._observe(request, response.status_code, started, failed=False)
        return response

    def _observe(self, request: Request, status_code: int, started: float, failed: bool) -> None:
        elapsed = time.perf_counter() - started
        method = request.method
        template = _route_template(request)
        REQUEST_COUNT.labels(method=method, path=template, status_code=str(status_code)).inc()
        REQUEST_LATENCY.labels(method=method, path=template).observe(elapsed)

        fields = {
            "method": method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round(elapsed * 1000, 2),
        }
        if failed:
            logger.exception("request_error", extra=fields)
        else:
            logger.info("request_complete", extra=fields)
