"""Prometheus metrics middleware.

For each request this records:
  1. ACTIVE_REQUESTS, up while the request is in flight
  2. REQUEST_COUNT by method, endpoint and status code
  3. REQUEST_DURATION by method and endpoint

The endpoint label is the matched route template
(``/v1/versions/{version_id}``), not the raw URL.  Nearly every route here
carries a version, course, path or user id, and one label value per id
would grow the series count without bound.  Requests that match no route
share the ``<unmatched>`` label for the same reason.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from progress_engine.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

UNMATCHED = "<unmatched>"


def endpoint_label(request: Request) -> str:
    # The router stores the matched route in the scope once routing has run.
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if isinstance(path, str) else UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes of /metrics are not counted.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            endpoint = endpoint_label(request)
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method, endpoint=endpoint, status_code=status_code
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                time.monotonic() - start
            )

        return response
