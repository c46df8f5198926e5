"""
Charity Ledger Backend - FastAPI Application

Main entry point for the charity case management API.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.routers import auth, leads, donations, allocations, activity
from app.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Charity Ledger API starting up")
    yield
    # Shutdown
    logger.info("Charity Ledger API shutting down")


app = FastAPI(
    title="Charity Ledger API",
    description="""
    Admin API for a charity's help-request cases.

    ## Features
    - Record donations and verify them before use
    - Track leads (help requests) and how much of each has been funded
    - Allocate verified donations to leads, never over-funding a lead or over-drawing a donation
    - Record fund transfers paid out to beneficiaries
    - Pre-fill donations from payment screenshots with AI
    - Audit trail of every administrative action
    """,
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(auth.router)
app.include_router(leads.router)
app.include_router(allocations.router)
app.include_router(donations.router)
app.include_router(activity.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "Charity Ledger API",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Detailed health check."""
    settings = get_settings()

    return {
        "status": "healthy",
        "supabase_configured": bool(settings.supabase_url and settings.supabase_key),
        "ai_configured": bool(settings.gemini_api_key),
        "allocation_max_retries": settings.allocation_max_retries
    }
