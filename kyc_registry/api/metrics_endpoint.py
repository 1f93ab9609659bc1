"""Prometheus metrics endpoint.

Returns every registered metric in Prometheus text exposition format,
including the registry counters (credential_operations_total,
soulbound_violations_total, ...).

In production, restrict access to /metrics (internal port or scraper
allow-list): rejection counts reveal who is testing the authority gate.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
