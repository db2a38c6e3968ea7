"""Video Variation Service - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from functools import partial

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.router import api_router
from app.api import video as video_api
from app.jobs.models import JobRecord
from app.jobs.in_process import InProcessDispatcher
from app.jobs.registry import JobRegistry
from app.processing.batch import run_variation_batch
from app.processing.ffmpeg import EncoderOptions, transcode
from app.storage.video_store import VideoStore, create_default_store

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("app")


def make_worker(store: VideoStore):
    """Worker function bound to this process's store and encoder settings."""
    options = EncoderOptions.from_settings(settings)

    async def run_video_job(job: JobRecord) -> None:
        await run_variation_batch(
            job,
            store=store,
            transcode=partial(transcode, options=options),
            ranges=settings.transform_ranges,
        )

    return run_video_job


# Global dispatcher reference
_dispatcher = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    global _dispatcher

    logger.info("Starting Video Variation Service on port %d", settings.port)
    logger.info("Upload dir: %s, processed dir: %s", settings.upload_dir, settings.processed_dir)

    store = create_default_store()
    registry = JobRegistry(retention_hours=settings.job_retention_hours)
    _dispatcher = InProcessDispatcher(
        worker_fn=make_worker(store),
        registry=registry,
        max_concurrent_jobs=settings.max_concurrent_jobs,
        purge_interval_s=settings.purge_interval_seconds,
        maintenance_fns=[store.cleanup_expired],
    )
    await _dispatcher.start()
    logger.info("Job dispatcher started (max concurrent jobs: %s)", settings.max_concurrent_jobs or "unbounded")

    # Wire dispatcher and store into API endpoints
    video_api.set_dispatcher(_dispatcher)
    video_api.set_store(store)

    yield

    logger.info("Shutting down Video Variation Service")
    await _dispatcher.stop()
    removed = store.cleanup_expired()
    if removed:
        logger.info("Removed %d expired file(s)", removed)


app = FastAPI(
    title="Video Variation Service",
    description="Generates randomized ffmpeg variations of uploaded videos",
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

app.include_router(api_router)


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
