"""FastAPI application for phone import.

This is the main entry point for the phone import API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import close_db_pool, get_config, init_catalog, init_db_pool
from .api.error_sanitizer import sanitize_error_message
from .api.router import router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Load the vendor catalog, initialize the database pool
    - Shutdown: Close the database pool
    """
    logger.info("Starting Phone Import API...")

    try:
        init_catalog()
        logger.info("Vendor catalog loaded")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load vendor catalog: {e}")
        raise

    try:
        await init_db_pool()
    except Exception as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise

    yield

    logger.info("Shutting down Phone Import API...")
    await close_db_pool()
    logger.info("Database pool closed")


# Create FastAPI application
app = FastAPI(
    title="Phone Import API",
    description="""
    API for bulk phone provisioning from spreadsheets.

    ## Workflow

    1. Upload a spreadsheet of phones (MAC, number, vendor, model) for a domain
    2. Review each row: new, conflict (with the reason) or error
    3. Choose import, overwrite or skip per row
    4. Commit; each row succeeds or fails on its own
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

app.include_router(router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unexpected errors in full, return a sanitized message."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": sanitize_error_message(str(exc), "Internal server error")},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Phone Import API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/phone-import/health",
    }


@app.get("/health")
async def health():
    """Global health check."""
    return {"status": "healthy"}


# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.prov.phone_import.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
