"""Upload and processed-output storage with auto-cleanup."""

import os
import random
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from app.config import settings

# Asset and variation ids are used as file names
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")

_CHUNK_BYTES = 1024 * 1024
OUTPUT_EXT = ".mp4"


class AssetNotFoundError(LookupError):
    """No stored upload matches the asset id."""


class UploadTooLargeError(ValueError):
    def __init__(self, max_bytes: int):
        super().__init__(f"File too large (max {max_bytes // (1024 * 1024)} MB)")
        self.max_bytes = max_bytes


@dataclass(frozen=True)
class StoredAsset:
    asset_id: str
    path: Path
    original_name: str
    size_bytes: int

    @property
    def size_mb(self) -> str:
        return f"{self.size_bytes / (1024 * 1024):.2f} MB"


def is_safe_id(value: str) -> bool:
    return bool(value) and _SAFE_ID.match(value) is not None


class VideoStore:
    """Manages uploaded inputs and processed variation outputs on disk."""

    def __init__(
        self,
        upload_dir: Union[str, Path],
        processed_dir: Union[str, Path],
        ttl_hours: int = 24,
    ):
        self._upload_dir = Path(upload_dir)
        self._processed_dir = Path(processed_dir)
        self._upload_dir.mkdir(parents=True, exist_ok=True)
        self._processed_dir.mkdir(parents=True, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600
        # asset id -> stored path, recorded at upload time
        self._assets: Dict[str, Path] = {}

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    @property
    def processed_dir(self) -> Path:
        return self._processed_dir

    @staticmethod
    def new_asset_id() -> str:
        """Ingestion timestamp (ms) plus a random suffix."""
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"

    async def save_upload(
        self,
        upload,
        filename: Optional[str],
        max_bytes: int,
    ) -> StoredAsset:
        """Stream an upload (anything with async read(n)) to disk in 1 MB chunks."""
        ext = os.path.splitext(filename or "")[1]
        asset_id = self.new_asset_id()
        path = self._upload_dir / f"{asset_id}{ext}"

        total = 0
        try:
            with open(path, "wb") as dst:
                while True:
                    chunk = await upload.read(_CHUNK_BYTES)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > max_bytes:
                        raise UploadTooLargeError(max_bytes)
                    dst.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        self._assets[asset_id] = path
        return StoredAsset(
            asset_id=asset_id,
            path=path,
            original_name=filename or "upload",
            size_bytes=total,
        )

    def resolve_asset(self, asset_id: str) -> Path:
        """Map an asset id to its stored file.

        Prefers the path recorded at upload; otherwise looks for a file whose
        name without extension is exactly the id (first in sorted order).
        """
        if not is_safe_id(asset_id):
            raise AssetNotFoundError("Input file not found")

        known = self._assets.get(asset_id)
        if known is not None and known.exists():
            return known

        matches = sorted(
            p for p in self._upload_dir.iterdir()
            if p.is_file() and p.stem == asset_id
        )
        if not matches:
            raise AssetNotFoundError("Input file not found")
        self._assets[asset_id] = matches[0]
        return matches[0]

    def output_path(self, variation_id: str) -> Path:
        return self._processed_dir / f"{variation_id}{OUTPUT_EXT}"

    def output_exists(self, variation_id: str) -> bool:
        return is_safe_id(variation_id) and self.output_path(variation_id).is_file()

    def cleanup_expired(self) -> int:
        """Remove files older than TTL. Returns count of removed files."""
        now = time.time()
        removed = 0
        for directory in (self._upload_dir, self._processed_dir):
            if not directory.exists():
                continue
            for entry in directory.iterdir():
                if not entry.is_file():
                    continue
                if now - entry.stat().st_mtime > self._ttl_seconds:
                    entry.unlink(missing_ok=True)
                    removed += 1
        self._assets = {k: p for k, p in self._assets.items() if p.exists()}
        return removed


def create_default_store() -> VideoStore:
    return VideoStore(
        settings.upload_dir,
        settings.processed_dir,
        ttl_hours=settings.file_ttl_hours,
    )
