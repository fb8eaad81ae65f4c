"""FastAPI middleware for Prometheus metrics instrumentation."""
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from app.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collects request count, latency and in-flight gauges per route template."""

    EXCLUDE_PATHS = {"/metrics", "/health", "/ping"}

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path in self.EXCLUDE_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = self._route_template(request)
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=endpoint)
        in_progress.inc()

        status_code = 500
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
            in_progress.dec()
            HTTP_REQUESTS_TOTAL.labels(
                method=method, endpoint=endpoint, status_code=str(status_code)
            ).inc()

    @staticmethod
    def _route_template(request: Request) -> str:
        """Matched route path (e.g. /v1/restaurants) to keep label cardinality bounded."""
        for route in request.app.router.routes:
            match, _ = route.matches(request.scope)
            if match == Match.FULL:
                return getattr(route, "path", request.url.path)
        return "unmatched"
