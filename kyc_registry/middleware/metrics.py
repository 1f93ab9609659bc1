"""Prometheus metrics middleware: instruments every HTTP request.

For each request, this middleware:
  1. Increments the ACTIVE_REQUESTS gauge (decrement on completion)
  2. Times the request duration
  3. On completion: increments REQUEST_COUNT (by method/endpoint/status)
     and observes the duration in REQUEST_DURATION histogram

ENDPOINT LABEL
----------------
Registry URLs embed credential ids and holder addresses
(/v1/credentials/42/valid, /v1/holders/0xabc.../credential).  Labelling by
raw path would create one time series per credential.  The label is the
matched route template instead (/v1/credentials/{credential_id}/valid);
unmatched paths (404s) fall back to the raw path.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from kyc_registry.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION


def endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or request.url.path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Prometheus scrapes of /metrics are not counted.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code: str | None = None

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            # Routing has run by now, so the matched route is on the scope.
            endpoint = endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code if status_code is not None else "500",
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

        return response
