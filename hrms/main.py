"""HRMS — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hrms.attendance.router import router as attendance_router
from hrms.auth.router import router as auth_router
from hrms.common.exceptions import register_exception_handlers
from hrms.common.rate_limit import limiter
from hrms.config import settings
from hrms.core_hr.router import router as core_hr_router
from hrms.dashboard.router import router as dashboard_router
from hrms.database import engine
from hrms.leave.router import router as leave_router
from hrms.organisation.router import router as organisation_router
from hrms.payroll.router import router as payroll_router

API_PREFIX = "/api/v1"
VERSION = "1.0.0"

logger = logging.getLogger("hrms")


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("HRMS starting (environment=%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("HRMS stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="HRMS",
        description="Organisation-scoped HR platform: employees, attendance, leave and payroll",
        version=VERSION,
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # Exception handlers (error envelope)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
    app.include_router(organisation_router, prefix=API_PREFIX)
    app.include_router(core_hr_router, prefix=API_PREFIX)
    app.include_router(attendance_router, prefix=API_PREFIX)
    app.include_router(leave_router, prefix=API_PREFIX)
    app.include_router(payroll_router, prefix=API_PREFIX)
    app.include_router(dashboard_router, prefix=API_PREFIX)

    return app


app = create_app()
