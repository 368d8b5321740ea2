"""EthioLearn Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .config import get_settings
from .database import COURSES_TABLE, get_supabase_client
from .errors import WorkflowError, workflow_error_handler
from .logging_config import get_logger, setup_logging
from .rate_limit import limiter
from .routes import (
    applications_router,
    auth_router,
    courses_router,
    dashboard_router,
    jobs_router,
    payments_router,
)

logger = get_logger("ethiolearn.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info(f"Starting EthioLearn Backend API (debug={settings.debug})")
    yield
    logger.info("Shutting down EthioLearn Backend API")


app = FastAPI(
    title="EthioLearn Backend API",
    description="Courses, jobs and manually verified payments",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Workflow errors -> {"detail": ...} with the error's status code
app.add_exception_handler(WorkflowError, workflow_error_handler)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(courses_router)
app.include_router(payments_router)
app.include_router(jobs_router)
app.include_router(applications_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "ethiolearn-backend",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health")
async def health():
    """Detailed health check with actual database verification."""
    db_status = "disconnected"
    try:
        db = get_supabase_client()
        db.table(COURSES_TABLE).select("id").limit(1).execute()
        db_status = "connected"
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        db_status = f"error: {str(e)[:50]}"

    overall_status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": overall_status,
        "database": db_status,
    }
