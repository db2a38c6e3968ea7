"""Variation batch orchestrator.

Drives one job through N sequential variations:

1. Resolve the uploaded asset
2. For each variation: generate params, run ffmpeg, score, record progress
3. Mark the job completed with all results, or failed on the first error

The job record is the only output; callers observe it by polling.
"""

import asyncio
import logging
import math
import random
from typing import Awaitable, Callable, List, Optional

from app.config import TransformRanges
from app.jobs.models import JobRecord, VariationResult
from app.processing.params import TransformConfig, generate_config
from app.processing.similarity import estimate_similarity
from app.storage.video_store import VideoStore

logger = logging.getLogger(__name__)

# async fn(input_path, output_path, config) -> None, raises on failure
Transcoder = Callable[[str, str, TransformConfig], Awaitable[None]]

DOWNLOAD_ROUTE = "/api/video/download"


def variation_id(video_id: str, n: int) -> str:
    return f"{video_id}_variation_{n}"


def progress_percent(done: int, total: int) -> int:
    """Percent complete, rounding halves up."""
    return int(math.floor(done / total * 100 + 0.5))


async def run_variation_batch(
    job: JobRecord,
    *,
    store: VideoStore,
    transcode: Transcoder,
    rng: Optional[random.Random] = None,
    ranges: Optional[TransformRanges] = None,
) -> None:
    """Run every variation of `job` in order, updating the record as it goes."""
    video_id = job.video_id
    count = job.variation_count
    current_output = None

    logger.info("Job %d started: %d variation(s) of %s", job.id, count, video_id)
    try:
        input_path = store.resolve_asset(video_id)
        results: List[VariationResult] = []

        for n in range(1, count + 1):
            config = generate_config(n - 1, rng=rng, ranges=ranges)
            vid = variation_id(video_id, n)
            current_output = store.output_path(vid)
            logger.debug("Job %d: variation %d params %s", job.id, n, config.to_dict())

            await transcode(str(input_path), str(current_output), config)
            current_output = None

            similarity = estimate_similarity(config)
            results.append(VariationResult(
                id=vid,
                name=f"variation_{n}.mp4",
                similarity=similarity,
                download_url=f"{DOWNLOAD_ROUTE}/{vid}",
            ))
            job.advance(progress_percent(n, count))
            logger.info(
                "Job %d: variation %d/%d done (similarity=%d)",
                job.id, n, count, similarity,
            )

        job.complete(results)
        logger.info("Job %d completed", job.id)

    except asyncio.CancelledError:
        _discard(current_output)
        if not job.is_terminal:
            job.fail("Job cancelled")
        logger.warning("Job %d cancelled at %d%%", job.id, job.progress)
        raise
    except Exception as e:
        _discard(current_output)
        job.fail(str(e))
        logger.warning("Job %d failed at %d%%: %s", job.id, job.progress, e)


def _discard(path) -> None:
    """Remove a partial output left by an interrupted transcode."""
    if path is not None:
        path.unlink(missing_ok=True)
