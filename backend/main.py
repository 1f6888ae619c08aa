"""
Wine Lens API

FastAPI backend that analyzes photos of wine bottles and wine lists
as asynchronous, pollable jobs.

Usage:
    uvicorn main:app --reload
"""

# Load environment variables from .env file FIRST
from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from winelens.config import Config

# Configure logging from environment
logging.basicConfig(
    level=getattr(logging, Config.log_level(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)
logger.info(f"Starting with LOG_LEVEL={Config.log_level()}, DEV_MODE={Config.is_dev()}, USE_MOCKS={Config.use_mocks()}")
from fastapi.middleware.cors import CORSMiddleware

from winelens.routes import analysis_result_router, analyze_router, image_search_router
from winelens.services.job_runner import get_job_runner
from winelens.services.job_store import JobStoreError, get_job_store
from winelens.services.rate_limiter import get_rate_limiter

# Startup state - set to True once the job store is migrated
_is_ready = False


def is_ready() -> bool:
    """Check if the service is ready to handle requests."""
    return _is_ready


def set_ready(ready: bool = True):
    """Set the service ready state."""
    global _is_ready
    _is_ready = ready


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    # Startup: migrate the job store, start the rate limit sweeper
    get_job_store()
    sweeper = asyncio.create_task(
        get_rate_limiter().run_sweeper(Config.rate_limit_sweep_seconds())
    )
    set_ready(True)
    logger.info("Service ready to handle requests")
    yield
    # Shutdown: stop accepting, drain running jobs
    set_ready(False)
    sweeper.cancel()
    await asyncio.gather(sweeper, return_exceptions=True)
    await get_job_runner().shutdown(Config.job_shutdown_grace_seconds())
    get_job_store().close()


app = FastAPI(
    title="Wine Lens API",
    description="Photograph wine bottles or a wine list and get AI tasting notes and scores",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web and mobile apps
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Job-Id", "Retry-After"],
)


@app.middleware("http")
async def warmup_middleware(request: Request, call_next):
    """Return 503 with retry hint if service is still warming up."""
    # Always allow health checks (for probes) and root
    if request.url.path in ("/health", "/", "/docs", "/openapi.json"):
        return await call_next(request)

    if not is_ready():
        return JSONResponse(
            status_code=503,
            content={
                "error": "Service warming up",
                "message": "The server is starting up. Please retry in a few seconds.",
                "retry_after": 10,
            },
            headers={"Retry-After": "10"},
        )

    return await call_next(request)

# Locally stored uploads (no GCS bucket configured)
if Config.is_dev():
    upload_dir = Path(Config.local_upload_dir())
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

# Include routers
app.include_router(analyze_router, tags=["analyze"])
app.include_router(analysis_result_router, tags=["analyze"])
app.include_router(image_search_router, tags=["image-search"])


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Wine Lens API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run probes."""
    try:
        get_job_store().ping()
    except JobStoreError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})
    return {"status": "healthy", "activeJobs": len(get_job_runner().active_job_ids)}
