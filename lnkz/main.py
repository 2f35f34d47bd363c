"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- Logging
- API routes
- Middleware (request logging, security headers, CORS)
- Route throttling for read endpoints
- Startup/shutdown of the rate limiter sweeper
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from lnkz.api import endpoints
from lnkz.core.rate_limit import limiter
from lnkz.core.runtime import initialize_runtime, shutdown_runtime
from lnkz.core.setting import EnvSettingsOptions, settings
from lnkz.db.session import init_models
from lnkz.middleware.logging import add_logging_middleware
from lnkz.middleware.security import add_security_headers_middleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(levelname)s - %(asctime)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Interactive docs are not served in production
show_docs = settings.ENV_SETTING != EnvSettingsOptions.production

app = FastAPI(
    title="lnkz",
    description="Short links with abuse controls",
    version="1.0.0",
    docs_url="/docs" if show_docs else None,
    redoc_url="/redoc" if show_docs else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)
add_security_headers_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health endpoints defined before router to match before catch-all route
@app.get("/", tags=["Health"])
async def root():
    """Service information."""
    return {
        "message": "lnkz link service",
        "version": "1.0.0",
        "docs": "/docs" if show_docs else None
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Links"])


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    if settings.CREATE_TABLES_ON_STARTUP:
        await init_models()
        logger.info("Database tables created")
    await initialize_runtime()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    await shutdown_runtime()
