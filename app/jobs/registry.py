"""Process-wide job registry with a retention window."""

import itertools
import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

from app.jobs.models import JobRecord

logger = logging.getLogger(__name__)


class JobRegistry:
    """Owns every job record for the lifetime of the process.

    - Ids come from a lock-protected counter and are never reused
    - Terminal jobs older than the retention window are purged
    """

    def __init__(self, retention_hours: int = 24):
        self._jobs: Dict[int, JobRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._retention = (
            timedelta(hours=retention_hours) if retention_hours > 0 else None
        )

    def create(self, video_id: str, variation_count: int) -> JobRecord:
        """Reserve the next id and store a fresh active record."""
        with self._lock:
            job = JobRecord(
                id=next(self._ids),
                video_id=video_id,
                variation_count=variation_count,
            )
            self._jobs[job.id] = job
        return job

    def get(self, job_id: int) -> Optional[JobRecord]:
        return self._jobs.get(job_id)

    def __len__(self) -> int:
        return len(self._jobs)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop terminal jobs finished before the retention window. Returns count removed."""
        if self._retention is None:
            return 0
        cutoff = (now or datetime.utcnow()) - self._retention
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.is_terminal and job.completed_at and job.completed_at < cutoff
            ]
            for job_id in expired:
                del self._jobs[job_id]
        if expired:
            logger.info("Purged %d expired job(s)", len(expired))
        return len(expired)
