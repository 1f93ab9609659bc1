"""Health and readiness endpoints.

  /health (liveness):
    "Is this process alive?"  Always 200; the ``status`` field says
    whether a dependency is impaired ("degraded").

  /ready (readiness):
    "Can this instance serve registry requests?"  With a database
    configured, the registry cannot answer without it, so an unreachable
    database returns 503 and the load balancer stops routing here.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy.exc import SQLAlchemyError

from kyc_registry.db import engine as db_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _database_check() -> str:
    if db_engine.engine is None:
        return "not_configured"
    try:
        db_engine.database_ping()
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
def health() -> dict:
    checks = {"database": _database_check()}
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
def ready() -> Response:
    if _database_check() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
