from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kyc_registry.api.credentials import holders_router
from kyc_registry.api.credentials import router as credentials_router
from kyc_registry.api.health import router as health_router
from kyc_registry.api.metrics_endpoint import router as metrics_router
from kyc_registry.core.config import SETTINGS
from kyc_registry.core.logging import setup_logging
from kyc_registry.db.engine import lifespan_db
from kyc_registry.middleware.metrics import MetricsMiddleware
from kyc_registry.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        yield


app = FastAPI(
    title="kyc-registry",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(credentials_router)
app.include_router(holders_router)

logger.info(
    "kyc-registry started  env=%s log_level=%s port=%d authority=%s storage=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "allowlist" if SETTINGS.uses_allowlist_authority else f"role:{SETTINGS.authority_role}",
    "sql" if SETTINGS.database_url else "memory",
)
