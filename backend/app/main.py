"""FastAPI application for the Procedure Suggestion Engine."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import procedures_router, suggestions_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.schemas.base import PredictionStoreBackend
from app.services.procedure_catalog import get_procedure_catalog_service

logger = logging.getLogger(__name__)


def prewarm_all_services() -> dict[str, Any]:
    """Pre-warm singleton services at startup.

    Loads the procedure catalog and builds the suggestion service so the
    first request does not pay the load cost.

    Returns:
        Dictionary with service names and their stats.
    """
    start_time = time.perf_counter()
    services_loaded = {}

    try:
        catalog = get_procedure_catalog_service()
        services_loaded["procedure_catalog"] = catalog.get_stats()
    except Exception as e:
        logger.warning(f"Failed to prewarm procedure_catalog: {e}")

    try:
        from app.services.procedure_suggestions import get_procedure_suggestion_service
        svc = get_procedure_suggestion_service()
        services_loaded["procedure_suggestions"] = {
            "provider": svc.provider.name,
            "available": svc.provider.is_available(),
        }
    except Exception as e:
        logger.warning(f"Failed to prewarm procedure_suggestions: {e}")

    total_time_ms = (time.perf_counter() - start_time) * 1000

    return {
        "services_loaded": len(services_loaded),
        "total_prewarm_time_ms": round(total_time_ms, 2),
        "services": services_loaded,
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Create tables for the database store, prewarm services
    - Shutdown: Close database connections
    """
    startup_start = time.perf_counter()

    # Startup
    if settings.prediction_store_backend == PredictionStoreBackend.DATABASE and settings.debug:
        init_db()

    prewarm_stats = prewarm_all_services()
    logger.info(
        f"Services pre-warmed: {prewarm_stats['services_loaded']} services "
        f"in {prewarm_stats['total_prewarm_time_ms']}ms"
    )

    total_startup_ms = (time.perf_counter() - startup_start) * 1000
    logger.info(f"Server ready - total startup time: {total_startup_ms:.0f}ms")

    # Store prewarm stats for the readiness endpoint
    app.state.prewarm_stats = prewarm_stats
    app.state.startup_time_ms = total_startup_ms

    yield

    # Shutdown
    close_db()


app = FastAPI(
    title="Procedure Suggestion Engine",
    description="API for suggesting clinical procedures from historical co-occurrence statistics.",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:3001", "http://localhost:3002"],  # Next.js dev server
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(procedures_router)
app.include_router(suggestions_router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint (liveness probe).

    Returns service status and basic info for monitoring.
    Use /ready for readiness checks.
    """
    return {
        "status": "healthy",
        "service": "procedure-suggestion-engine",
        "version": "0.1.0",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, Any]:
    """Readiness check endpoint.

    Confirms the procedure catalog is loaded and services are pre-warmed.
    """
    catalog = get_procedure_catalog_service()

    prewarm_stats = getattr(app.state, 'prewarm_stats', {})
    startup_time = getattr(app.state, 'startup_time_ms', 0)

    return {
        "status": "ready",
        "service": "procedure-suggestion-engine",
        "version": "0.1.0",
        "timestamp": datetime.now(UTC).isoformat(),
        "startup_time_ms": startup_time,
        "catalog": catalog.get_stats(),
        "prewarmed_services": prewarm_stats.get("services_loaded", 0),
        "prewarm_time_ms": prewarm_stats.get("total_prewarm_time_ms", 0),
    }


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "service": "Procedure Suggestion Engine API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
    }
