"""Health check endpoint."""

import shutil

from fastapi import APIRouter

from app.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Service health and ffmpeg availability."""
    ffmpeg_path = shutil.which(settings.ffmpeg_bin)
    return {
        "status": "SUCCESS",
        "message": "FFmpeg processing ready" if ffmpeg_path else "FFmpeg binary not found",
        "ffmpeg": "Available" if ffmpeg_path else "Unavailable",
    }
