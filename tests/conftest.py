from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api import video as video_api
from app.api.router import api_router
from app.jobs.in_process import InProcessDispatcher
from app.jobs.models import JobRecord
from app.jobs.registry import JobRegistry
from app.processing.batch import run_variation_batch
from app.processing.ffmpeg import TranscodeError
from app.storage.video_store import VideoStore


class FakeTranscoder:
    """Stands in for ffmpeg: writes a small output file per call.

    fail_on: 1-based call number that raises TranscodeError
    block: when True every call sleeps until cancelled
    """

    def __init__(self, fail_on: int | None = None, message: str = "ffmpeg exited with code 1: boom",
                 block: bool = False) -> None:
        self.fail_on = fail_on
        self.message = message
        self.block = block
        self.calls: list[tuple[str, str, Any]] = []
        self.progress_seen: list[int] = []
        self.job: JobRecord | None = None

    async def __call__(self, input_path: str, output_path: str, config) -> None:
        self.calls.append((input_path, output_path, config))
        if self.job is not None:
            self.progress_seen.append(self.job.progress)
        if self.block:
            await asyncio.sleep(3600)
        if len(self.calls) == self.fail_on:
            Path(output_path).write_bytes(b"partial")
            raise TranscodeError(self.message, returncode=1)
        Path(output_path).write_bytes(b"\x00\x00\x00\x18ftypmp42")


@pytest.fixture()
def store(tmp_path) -> VideoStore:
    return VideoStore(tmp_path / "uploads", tmp_path / "processed", ttl_hours=1)


@pytest.fixture()
def asset_id(store: VideoStore) -> str:
    vid = "1700000000000-123456"
    (store.upload_dir / f"{vid}.mp4").write_bytes(b"fake video")
    return vid


@pytest.fixture()
def registry() -> JobRegistry:
    return JobRegistry(retention_hours=1)


@pytest.fixture()
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture()
def app(store: VideoStore, registry: JobRegistry, transcoder: FakeTranscoder) -> FastAPI:
    async def worker(job: JobRecord) -> None:
        await run_variation_batch(job, store=store, transcode=transcoder)

    dispatcher = InProcessDispatcher(worker_fn=worker, registry=registry)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        await dispatcher.start()
        video_api.set_dispatcher(dispatcher)
        video_api.set_store(store)
        try:
            yield
        finally:
            await dispatcher.stop()
            video_api.set_dispatcher(None)
            video_api.set_store(None)

    test_app = FastAPI(lifespan=lifespan)
    test_app.include_router(api_router)
    return test_app


@pytest.fixture()
def client(app: FastAPI):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_transcoder():
    return FakeTranscoder
