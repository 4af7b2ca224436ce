"""
Tasy Web - FastAPI application.

Uses Supabase Auth bearer tokens for authenticated routes.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onboarding.api import router as onboarding_router
from tasy import __version__
from tasy.config import core_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Tasy", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Log configuration on startup."""
    logger.info("Tasy API starting up...")
    logger.info(f"  Environment: {core_settings.tasy_env}")
    logger.info(f"  Onboarding steps: {core_settings.onboarding_total_steps}")


# CORS for the Next.js frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=core_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(onboarding_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
