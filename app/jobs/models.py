"""Job record data model for async variation batches."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class InvalidJobTransition(RuntimeError):
    """Raised when a job record is mutated out of a terminal state."""


class VariationResult(BaseModel):
    """One successfully transcoded variation."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    similarity: int
    download_url: str = Field(alias="downloadUrl")


class JobRecord(BaseModel):
    """Tracks the lifecycle of one variation batch.

    Records are created by the registry and mutated only by the task that runs
    the batch. Pollers read them as-is.
    """
    id: int
    video_id: str
    variation_count: int
    status: JobStatus = JobStatus.ACTIVE
    progress: int = 0
    data: Optional[List[VariationResult]] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def _ensure_active(self, action: str) -> None:
        if self.is_terminal:
            raise InvalidJobTransition(
                f"Cannot {action} job {self.id}: already {self.status.value}"
            )

    def advance(self, progress: int) -> None:
        """Record progress. Never moves backwards; 100 is reserved for complete()."""
        self._ensure_active("advance")
        progress = min(max(progress, 0), 99)
        if progress > self.progress:
            self.progress = progress

    def complete(self, results: List[VariationResult]) -> None:
        self._ensure_active("complete")
        self.progress = 100
        self.data = list(results)
        self.status = JobStatus.COMPLETED
        self.completed_at = datetime.utcnow()

    def fail(self, message: str) -> None:
        self._ensure_active("fail")
        self.error = message
        self.data = None
        self.status = JobStatus.FAILED
        self.completed_at = datetime.utcnow()

    def to_status(self) -> Dict[str, Any]:
        """Shape returned to polling clients."""
        return {
            "jobId": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "data": (
                [r.model_dump(by_alias=True) for r in self.data]
                if self.data is not None
                else None
            ),
            "error": self.error,
        }
