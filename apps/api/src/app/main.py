"""
GoodHours API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- Background job scheduler
- CORS middleware
- API routing
- Health check endpoints
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.api import api_router
from app.core.config import settings
from app.core.database import async_session_maker, close_db, init_db
from app.core.geocode import close_geocoder
from app.core.redis import close_redis, get_redis, init_redis
from app.core.scheduler import (
    list_registered_jobs,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from app.modules.opportunities.jobs import register_opportunity_jobs


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Redis connection
    - Database connection
    - Background job scheduler
    """
    print(f"Starting GoodHours API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    try:
        register_opportunity_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield

    print("Shutting down GoodHours API...")

    # Stop the scheduler first (wait for running jobs)
    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_geocoder()
    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="GoodHours API",
    description="Community service hours: opportunities, signups, attendance and verification",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "message": "Welcome to GoodHours API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check: the database answers a trivial query."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        raise HTTPException(status_code=503, detail={"status": "unavailable"}) from e
    return {"status": "ready"}


# ============================================
# Debug Endpoints (development only)
# ============================================

if settings.is_development:

    @app.get("/debug/redis", tags=["Debug"])
    async def debug_redis():
        """Test Redis connection."""
        client = await get_redis()
        if client is None:
            return {"redis": "not initialized"}
        try:
            await client.ping()
            return {"redis": "connected"}
        except Exception as e:
            return {"redis": "error", "message": str(e)}

    @app.get("/debug/jobs", tags=["Debug"])
    async def list_jobs():
        """List registered background jobs and their next run time."""
        return {"jobs": list_registered_jobs()}

    @app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
    async def trigger_job(job_id: str):
        """
        Run a background job now, bypassing its schedule.

        Available jobs:
            - opportunities_send_reminders
            - opportunities_complete_past

        Raises:
            HTTPException 400: If job_id is not registered
        """
        try:
            return await trigger_job_manually(job_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
