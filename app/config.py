"""Application configuration via environment variables."""

from typing import List

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class TransformRanges(BaseModel):
    """Bounds for randomized per-variation transform parameters."""
    speed_min: float = 0.95
    speed_max: float = 1.05
    brightness_min: float = -0.05
    brightness_max: float = 0.05
    contrast_min: float = 0.95
    contrast_max: float = 1.05
    saturation_min: float = 0.9
    saturation_max: float = 1.1
    scale_min: float = 0.98
    scale_max: float = 1.02
    flip_probability: float = 0.3


class Settings(BaseSettings):
    # Server
    port: int = 3000
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # File storage
    upload_dir: str = "uploads"
    processed_dir: str = "processed"
    file_ttl_hours: int = 24

    # Upload gate
    max_upload_mb: int = 500
    allowed_mime_prefix: str = "video/"

    # Batch processing
    default_variation_count: int = 5
    max_variation_count: int = 50
    max_concurrent_jobs: int = 0  # 0 = unbounded
    job_retention_hours: int = 24  # 0 = keep for process lifetime
    purge_interval_seconds: float = 60.0

    # ffmpeg
    ffmpeg_bin: str = "ffmpeg"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    encoder_preset: str = "fast"
    encoder_crf: int = 23

    transform_ranges: TransformRanges = TransformRanges()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings()
