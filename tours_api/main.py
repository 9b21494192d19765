"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — creates tables on startup, disposes the engine on shutdown
  2. CORS middleware — lets the frontend send the refresh cookie cross-origin
  3. Exception handlers — maps domain errors to the JSON error envelope
  4. Router registration — mounts users, tours and reviews under /api/v1

Running locally:
    uvicorn tours_api.main:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import make_url

import tours_api.models  # noqa: F401  (registers tables on Base.metadata)
from tours_api.config import settings
from tours_api.database import engine, Base
from tours_api.exceptions import register_exception_handlers
from tours_api.routers import reviews, tours, users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create missing tables.
    Shutdown: close all pooled connections.
    """
    db_path = make_url(settings.DATABASE_URL).database
    if settings.DATABASE_URL.startswith("sqlite") and db_path:
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Tours REST API with user accounts, tours and reviews",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(tours.router, prefix="/api/v1/tours", tags=["Tours"])
app.include_router(reviews.router, prefix="/api/v1/reviews", tags=["Reviews"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
