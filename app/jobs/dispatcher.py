"""Job dispatcher interface."""

from abc import ABC, abstractmethod
from typing import Optional

from app.jobs.models import JobRecord


class JobDispatcher(ABC):
    """Runs variation batches in the background and owns their task handles.

    Callers hand over a registry record and get control back at once; the
    outcome is only visible by polling the record.
    """

    @abstractmethod
    async def submit(self, job: JobRecord) -> int:
        """Schedule the batch for `job` and return its id without awaiting the work."""
        ...

    @abstractmethod
    async def get_status(self, job_id: int) -> Optional[JobRecord]:
        """Current record for `job_id`, or None if unknown or purged."""
        ...

    @abstractmethod
    def cancel(self, job_id: int) -> bool:
        """Stop an in-flight batch; the job ends as failed. False if not running."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Begin periodic maintenance (expired jobs and files)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Cancel maintenance and every in-flight batch, then wait for them."""
        ...
