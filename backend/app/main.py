"""
Job Board Admin API - Main Application Entry Point

This module initializes the FastAPI application with:
- Document table initialization
- Live snapshots of jobs, companies and categories
- CORS middleware for the dashboard frontend
- Prometheus metrics
- Static serving of uploaded logos
- API router registration

Architecture:
    FastAPI App
    ├── Lifespan Management (startup/shutdown)
    ├── CORS Middleware
    ├── Prometheus Middleware (/metrics)
    ├── /static - Uploaded company logos
    └── API Router
        ├── /auth - Email/password session login
        ├── /jobs - Job listing and CRUD
        ├── /companies - Company CRUD
        ├── /categories - Category CRUD
        ├── /uploads - Logo normalization, preview and upload
        └── /stats - Dashboard statistics
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api import api_router
from app.config import get_settings
from app.database import init_db
from app.middleware import setup_metrics
from app.services.document_store import get_document_store
from app.services.logo_form import get_logo_form_sessions
from app.services.snapshots import get_live_collections

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


def ensure_local_dirs() -> None:
    Path(settings.storage_dir).mkdir(parents=True, exist_ok=True)
    if settings.database_url.startswith("sqlite:///"):
        Path(settings.database_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle events.

    Startup:
        1. Create local data directories
        2. Initialize database tables
        3. Subscribe to job, company and category snapshots

    Shutdown:
        1. Unsubscribe snapshot listeners
        2. Close open logo forms, releasing their previews
    """
    ensure_local_dirs()
    await init_db()
    live = get_live_collections()
    await live.start(get_document_store())
    yield
    live.stop()
    get_logo_form_sessions().close_all()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Job Board Admin API",
    description="Admin backend for jobs, companies and categories",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_metrics(app)

app.mount("/static", StaticFiles(directory=settings.storage_dir, check_dir=False), name="static")

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "snapshots_ready": get_live_collections().ready}
