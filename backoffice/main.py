"""POS Back Office: FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from backoffice.attendance.router import router as attendance_router
from backoffice.attendance.sweeper import start_sweeper
from backoffice.common.exceptions import register_exception_handlers
from backoffice.common.rate_limit import limiter
from backoffice.company.router import router as settings_router
from backoffice.config import settings
from backoffice.database import Base, engine
from backoffice.leave.router import router as leave_router
from backoffice.payroll.router import router as payroll_router

# Models not reached through a router still need to be on the metadata
import backoffice.auth.models  # noqa: F401
import backoffice.common.audit  # noqa: F401
import backoffice.sales.models  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    # Startup
    if settings.AUTO_CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    scheduler = None
    if settings.SWEEPER_ENABLED:
        scheduler = start_sweeper(settings.SWEEPER_INTERVAL_SECONDS)
    logger.info("Back office started (%s, tz=%s)", settings.ENVIRONMENT, settings.COMPANY_TIMEZONE)
    yield
    # Shutdown
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="POS Back Office",
        description="Time & leave accounting: attendance, leave quotas, payroll",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(payroll_router, prefix="/api/v1/payroll", tags=["payroll"])
    app.include_router(settings_router, prefix="/api/v1/settings", tags=["settings"])

    return app


app = create_app()
