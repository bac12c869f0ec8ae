"""
CLEP Finder - FastAPI Application

Main entry point for the backend API.
Provides the public CLEP acceptance search, the institution portal
endpoints and admin maintenance endpoints.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clepfinder.config.settings import settings
from clepfinder.infrastructure.exceptions import (
    ClepFinderError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"CLEP Finder backend starting in {settings.environment} mode...")

    database_configured = bool(
        settings.database_url or (settings.supabase_url and settings.supabase_password)
    )
    if database_configured:
        try:
            from clepfinder.infrastructure.db.database import init_db
            await init_db()
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.warning(f"Database initialization skipped: {e}")

    yield

    if database_configured:
        try:
            from clepfinder.infrastructure.db.database import close_db
            await close_db()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.warning(f"Database shutdown error: {e}")

    logger.info("CLEP Finder backend shutting down...")


app = FastAPI(
    title="CLEP Finder",
    description="Find colleges that accept CLEP exam credit",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(RateLimitError)
async def rate_limit_error_handler(request: Request, exc: RateLimitError):
    return JSONResponse(status_code=429, content=exc.to_dict())


@app.exception_handler(ClepFinderError)
async def general_error_handler(request: Request, exc: ClepFinderError):
    """Handle all other application errors."""
    logger.error(f"Unhandled {exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content=exc.to_dict())


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "clep-finder"}


@app.get("/")
async def root():
    return {
        "message": "CLEP Finder API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from clepfinder.api.routes import (  # noqa: E402
    admin,
    auth,
    chat,
    feedback,
    institutions,
    universities,
)

app.include_router(universities.router)
app.include_router(institutions.router)
app.include_router(feedback.router)
app.include_router(chat.router)
app.include_router(auth.router)
app.include_router(admin.router)
