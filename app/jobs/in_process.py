"""In-process job dispatcher using asyncio tasks.

Each submitted job runs as its own supervised task on the event loop. The
submitting request returns immediately; results are observed by polling the
registry. No external dependencies (Redis, Celery) needed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from app.jobs.dispatcher import JobDispatcher
from app.jobs.models import JobRecord
from app.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)

WorkerFn = Callable[[JobRecord], Awaitable[None]]


class InProcessDispatcher(JobDispatcher):
    """Runs jobs concurrently as asyncio tasks, optionally bounded."""

    def __init__(
        self,
        worker_fn: WorkerFn,
        registry: JobRegistry,
        max_concurrent_jobs: int = 0,
        purge_interval_s: float = 60.0,
        maintenance_fns: Sequence[Callable[[], object]] = (),
    ):
        """
        worker_fn: async callable(job: JobRecord) -> None
            Drives the job to a terminal state by mutating the record.
        max_concurrent_jobs: 0 disables the limit.
        maintenance_fns: extra callables run on every maintenance tick
            after expired jobs are purged (e.g. file cleanup).
        """
        self._worker_fn = worker_fn
        self._registry = registry
        self._tasks: Dict[int, asyncio.Task] = {}
        self._slots: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(max_concurrent_jobs) if max_concurrent_jobs > 0 else None
        )
        self._purge_interval_s = purge_interval_s
        self._maintenance_fns: List[Callable[[], object]] = [
            registry.purge_expired, *maintenance_fns,
        ]
        self._maintenance: Optional[asyncio.Task] = None
        self._running = False

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def submit(self, job: JobRecord) -> int:
        task = asyncio.create_task(self._run(job), name=f"job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._tasks.pop(job_id, None))
        logger.info(
            "Job %d submitted (video=%s, variations=%d)",
            job.id, job.video_id, job.variation_count,
        )
        return job.id

    async def get_status(self, job_id: int) -> Optional[JobRecord]:
        return self._registry.get(job_id)

    def cancel(self, job_id: int) -> bool:
        """Cancel an in-flight job. Returns False if it is not running."""
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def start(self) -> None:
        self._running = True
        self._maintenance = asyncio.create_task(self._maintenance_loop())

    async def stop(self) -> None:
        self._running = False
        tasks = list(self._tasks.values())
        if self._maintenance:
            tasks.append(self._maintenance)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._maintenance = None

    async def _run(self, job: JobRecord) -> None:
        try:
            if self._slots is None:
                await self._worker_fn(job)
            else:
                async with self._slots:
                    await self._worker_fn(job)
        except asyncio.CancelledError:
            if not job.is_terminal:
                job.fail("Job cancelled")
            raise
        except Exception as e:
            logger.exception("Job %d crashed", job.id)
            if not job.is_terminal:
                job.fail(f"{type(e).__name__}: {e}")

    async def _maintenance_loop(self) -> None:
        """Periodically drop expired job records and run cleanup hooks."""
        while self._running:
            try:
                await asyncio.sleep(self._purge_interval_s)
            except asyncio.CancelledError:
                break
            self.run_maintenance()

    def run_maintenance(self) -> None:
        """Run every maintenance callable once; one failing does not stop the rest."""
        for fn in self._maintenance_fns:
            try:
                fn()
            except Exception:
                logger.exception("Maintenance step %s failed", getattr(fn, "__qualname__", fn))
