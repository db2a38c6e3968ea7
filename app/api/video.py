"""Video variation API.

  POST /api/video/upload            — store an uploaded video, return its id
  POST /api/video/process           — start a variation batch, return job id
  GET  /api/video/status/{job_id}   — poll a job
  GET  /api/video/download/{id}     — stream a finished variation
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field

from app.config import settings
from app.storage.video_store import UploadTooLargeError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/video")

# Wired in during lifespan
_dispatcher = None
_store = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


def set_store(store):
    global _store
    _store = store


class ProcessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: str = Field(alias="videoId", min_length=1)
    variation_count: Optional[int] = Field(default=None, alias="variationCount", ge=1)


# ---------------------------------------------------------------------------
# POST /api/video/upload
# ---------------------------------------------------------------------------

@router.post("/upload")
async def upload_video(video: Optional[UploadFile] = File(None)):
    """Accept a video upload and persist it under a generated id.

    Returns:
        {success, videoId, originalName, size}
    """
    if _store is None:
        raise HTTPException(status_code=503, detail="Storage not ready")

    if video is None:
        raise HTTPException(status_code=400, detail="No video uploaded")

    if not video.content_type or not video.content_type.startswith(settings.allowed_mime_prefix):
        raise HTTPException(status_code=400, detail="Only video files allowed")

    try:
        asset = await _store.save_upload(video, video.filename, settings.max_upload_bytes)
    except UploadTooLargeError as exc:
        raise HTTPException(status_code=413, detail=str(exc))
    except OSError as exc:
        logger.exception("Failed to save upload %s", video.filename)
        raise HTTPException(status_code=500, detail=f"Failed to save upload: {exc}")

    logger.info("Stored upload %s as %s (%s)", asset.original_name, asset.asset_id, asset.size_mb)
    return {
        "success": True,
        "videoId": asset.asset_id,
        "originalName": asset.original_name,
        "size": asset.size_mb,
    }


# ---------------------------------------------------------------------------
# POST /api/video/process
# ---------------------------------------------------------------------------

@router.post("/process")
async def process_video(request: ProcessRequest):
    """Create a job and start it in the background. Returns before any work is done."""
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Dispatcher not ready")

    count = request.variation_count or settings.default_variation_count
    if count > settings.max_variation_count:
        raise HTTPException(
            status_code=400,
            detail=f"variationCount must be at most {settings.max_variation_count}",
        )

    job = _dispatcher.registry.create(request.video_id, count)
    await _dispatcher.submit(job)
    return {"success": True, "jobId": job.id}


# ---------------------------------------------------------------------------
# GET /api/video/status/{job_id}
# ---------------------------------------------------------------------------

@router.get("/status/{job_id}")
async def get_status(job_id: str):
    """Return the job record, or {status: not_found} for unknown ids."""
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Dispatcher not ready")

    job = None
    if job_id.isascii() and job_id.isdigit():
        job = await _dispatcher.get_status(int(job_id))
    if job is None:
        return {"status": "not_found"}
    return job.to_status()


# ---------------------------------------------------------------------------
# GET /api/video/download/{variation_id}
# ---------------------------------------------------------------------------

@router.get("/download/{variation_id}")
async def download_variation(variation_id: str):
    """Stream a processed variation back to the client."""
    if _store is None:
        raise HTTPException(status_code=503, detail="Storage not ready")

    if not _store.output_exists(variation_id):
        raise HTTPException(status_code=404, detail="File not found")

    path = _store.output_path(variation_id)
    return FileResponse(path, media_type="video/mp4", filename=f"{variation_id}.mp4")
