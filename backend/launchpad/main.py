"""FastAPI application entry point."""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from launchpad.config import settings
from launchpad.database import Base, engine

# Import routers
from launchpad.routers import admin, cron, startups

# Import all models so Base.metadata knows about them
from launchpad.models.profile import Profile            # noqa: F401
from launchpad.models.startup import Startup            # noqa: F401
from launchpad.models.audit_log import AuditLogEntry    # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LaunchPad",
    description="Startup directory backend: slugs, moderation workflow and integrity sweeps",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


# Register routers
app.include_router(startups.router, prefix="/api/startups", tags=["Startups"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
