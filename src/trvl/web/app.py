"""
TRVL Web API - FastAPI application.

Uses Supabase Auth for authentication. Onboarding routes live in the
onboarding package and are mounted under /api.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onboarding.api import router as onboarding_router
from trvl import __version__
from trvl.config import core_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="TRVL", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Configure logging and log configuration on startup."""
    logging.basicConfig(
        level=core_settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("TRVL API starting up...")
    logger.info(f"  Environment: {core_settings.trvl_env}")
    logger.info(f"  Onboarding progress backend: {core_settings.onboarding_progress_backend}")
    if core_settings.trvl_analytics_log_dir:
        logger.info(f"  Analytics event log dir: {core_settings.trvl_analytics_log_dir}")


# CORS middleware for the frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(onboarding_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
