"""Homework planner — FastAPI Application Entry Point."""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded

from planner.config import settings
from planner.database import Base, engine
from planner.errors import PlannerError
from planner.logging_config import init_logging
from planner.middleware.rate_limit import limiter
from planner.routers import (
    announcements,
    attachments,
    auth,
    classes,
    gate,
    homework,
    notifications,
    realtime,
)
from planner.routers import settings as settings_router
from planner import models  # noqa: F401  (registers tables on Base.metadata)

logger = logging.getLogger(__name__)

# Create all tables on startup
Base.metadata.create_all(bind=engine)

# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="Homework Planner",
    description="Class homework planner with realtime sync.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

init_logging(app)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)  # applies DEFAULT_RATE_LIMIT to undecorated routes


@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(classes.router)
app.include_router(homework.router)
app.include_router(attachments.router)
app.include_router(announcements.router)
app.include_router(notifications.router)
app.include_router(settings_router.router)
app.include_router(realtime.router)
app.include_router(gate.router)


@app.on_event("startup")
async def on_startup():
    """Create the storage directory."""
    Path(settings.STORAGE_DIR, settings.STORAGE_BUCKET).mkdir(parents=True, exist_ok=True)
    if not settings.ADMIN_API_KEY:
        logger.warning("ADMIN_API_KEY is not set; class creation is disabled")


@app.get("/health")
def health():
    return {"status": "ok"}
