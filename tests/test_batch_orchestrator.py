import asyncio
import random

import pytest

from app.jobs.models import JobStatus
from app.processing.batch import progress_percent, run_variation_batch


@pytest.mark.asyncio
async def test_all_variations_succeed(store, registry, asset_id, make_transcoder) -> None:
    transcoder = make_transcoder()
    job = registry.create(asset_id, 5)
    transcoder.job = job

    await run_variation_batch(job, store=store, transcode=transcoder, rng=random.Random(9))

    assert job.status == JobStatus.COMPLETED
    assert job.progress == 100
    assert job.error is None
    assert transcoder.progress_seen == [0, 20, 40, 60, 80]
    assert len(job.data) == 5
    for n, result in enumerate(job.data, start=1):
        assert result.id == f"{asset_id}_variation_{n}"
        assert result.name == f"variation_{n}.mp4"
        assert result.download_url == f"/api/video/download/{asset_id}_variation_{n}"
        assert 50 <= result.similarity <= 70
        assert store.output_exists(result.id)

    input_path, output_path, _ = transcoder.calls[0]
    assert input_path == str(store.upload_dir / f"{asset_id}.mp4")
    assert output_path == str(store.processed_dir / f"{asset_id}_variation_1.mp4")


@pytest.mark.asyncio
async def test_third_failure_freezes_progress(store, registry, asset_id, make_transcoder) -> None:
    transcoder = make_transcoder(fail_on=3, message="ffmpeg exited with code 1: corrupt input")
    job = registry.create(asset_id, 5)

    await run_variation_batch(job, store=store, transcode=transcoder)

    assert job.status == JobStatus.FAILED
    assert job.progress == 40
    assert job.data is None
    assert job.error == "ffmpeg exited with code 1: corrupt input"
    assert len(transcoder.calls) == 3
    assert store.output_exists(f"{asset_id}_variation_2")
    for n in (3, 4, 5):
        assert not store.output_exists(f"{asset_id}_variation_{n}")


@pytest.mark.asyncio
async def test_missing_asset_fails_job(store, registry, make_transcoder) -> None:
    transcoder = make_transcoder()
    job = registry.create("1700000000000-999", 5)

    await run_variation_batch(job, store=store, transcode=transcoder)

    assert job.status == JobStatus.FAILED
    assert job.error == "Input file not found"
    assert job.progress == 0
    assert transcoder.calls == []


@pytest.mark.asyncio
async def test_cancellation_marks_job_failed(store, registry, asset_id, make_transcoder) -> None:
    transcoder = make_transcoder(block=True)
    job = registry.create(asset_id, 3)

    task = asyncio.create_task(run_variation_batch(job, store=store, transcode=transcoder))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert job.status == JobStatus.FAILED
    assert job.error == "Job cancelled"


def test_progress_rounds_halves_up() -> None:
    assert progress_percent(1, 8) == 13
    assert progress_percent(2, 5) == 40
    assert progress_percent(1, 3) == 33
    assert progress_percent(3, 3) == 100
