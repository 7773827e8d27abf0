"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .api.links import router as links_router
from .config import settings
from .dependencies import get_batch_repository, get_link_engine
from .health import get_health_status
from .services.reconcile import sweep_open_batches
from .services.scheduler import LinkScheduler

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)

logger = logging.getLogger(__name__)


async def run_sweep():
    return await sweep_open_batches(
        get_link_engine(),
        get_batch_repository(),
        lookback_days=settings.sweep_lookback_days,
        concurrency=settings.sweep_concurrency,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if settings.sweep_enabled:
        scheduler = LinkScheduler(run_sweep, interval_minutes=settings.sweep_interval_minutes)
        await scheduler.start()
    yield
    if scheduler is not None:
        await scheduler.stop()


app = FastAPI(title="Batch Link", version="1.0.0", lifespan=lifespan)
app.include_router(links_router)


@app.get("/")
async def root():
    return {"message": "Batch link engine running"}


@app.get("/health")
async def health():
    """Liveness check - always returns OK if app is running."""
    return {"status": "ok"}


@app.get("/health/ready")
async def health_ready():
    """Readiness check - queries the database."""
    status = await get_health_status()
    code = 200 if status["status"] == "healthy" else 503
    return JSONResponse(content=status, status_code=code)
