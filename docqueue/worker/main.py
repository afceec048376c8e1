"""
Worker process for executing jobs.

The worker claims jobs from a queue manager, runs a handler on each one and
reports the outcome. A handler that returns acknowledges the job; one that
raises fails it with the exception message.
"""

import asyncio
import logging
import signal
import time
from collections.abc import Awaitable, Callable
from uuid import UUID

from docqueue.config import get_settings
from docqueue.constants import SPAN_EXECUTE_JOB, JobOutcome
from docqueue.db import close_db, init_db
from docqueue.manager import QueueManager
from docqueue.observability.logging import bind_context, setup_logging
from docqueue.observability.metrics import get_metrics, start_metrics_server
from docqueue.observability.tracing import get_tracer, setup_tracing
from docqueue.types.job import JobView

logger = logging.getLogger(__name__)

# Type alias for job handler functions
JobHandler = Callable[[JobView], Awaitable[None]]


class Worker:
    """
    Job worker that polls a queue and executes jobs.

    Features:
    - Claims up to ``batch_size`` jobs per poll and runs them concurrently
    - Backs off for ``poll_interval`` when the queue is empty
    - Graceful shutdown on SIGTERM/SIGINT

    There is no lease extension: a handler that outlives the queue's
    ``block_duration`` may see its job claimed again by another worker.
    """

    def __init__(
        self,
        manager: QueueManager,
        handler: JobHandler,
        batch_size: int | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            manager: Queue manager to claim from.
            handler: Coroutine function run for each claimed job.
            batch_size: Maximum number of jobs claimed per poll.
            poll_interval: Seconds between polls when queue is empty.
        """
        settings = get_settings()

        self.manager = manager
        self.handler = handler
        self.batch_size = batch_size or settings.worker_batch_size
        self.poll_interval = poll_interval or settings.worker_poll_interval_seconds

        self._running = False
        self._current_jobs: dict[UUID, asyncio.Task] = {}
        self._metrics = get_metrics()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run the polling loop until :meth:`stop` is called."""
        logger.info(
            "Worker starting",
            extra={
                "worker_id": self.manager.worker_id,
                "queue": self.manager.queue,
                "batch_size": self.batch_size,
            },
        )

        self._running = True

        while self._running:
            try:
                jobs_processed = await self.poll_once()

                if jobs_processed == 0:
                    await asyncio.sleep(self.poll_interval)

            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.manager.worker_id},
                )
                await asyncio.sleep(self.poll_interval)

        if self._current_jobs:
            logger.info(f"Waiting for {len(self._current_jobs)} jobs to complete")
            await asyncio.gather(*self._current_jobs.values(), return_exceptions=True)

        logger.info("Worker stopped", extra={"worker_id": self.manager.worker_id})

    async def stop(self) -> None:
        """Stop the worker after the jobs in flight finish."""
        logger.info("Worker stopping", extra={"worker_id": self.manager.worker_id})
        self._running = False

    async def poll_once(self) -> int:
        """
        Claim up to ``batch_size`` jobs and execute them.

        Returns:
            Number of jobs processed.
        """
        jobs: list[JobView] = []
        while len(jobs) < self.batch_size:
            job = await self.manager.claim()
            if job is None:
                break
            jobs.append(job)

        if not jobs:
            return 0

        tasks = []
        for job in jobs:
            task = asyncio.create_task(self._execute_job(job))
            self._current_jobs[job.id] = task
            tasks.append(task)

        await asyncio.gather(*tasks, return_exceptions=True)

        return len(jobs)

    async def _execute_job(self, job: JobView) -> None:
        """
        Execute a single job and report its outcome.

        Args:
            job: The claimed job.
        """
        start_time = time.monotonic()
        queue = self.manager.queue

        try:
            logger.info(
                "Executing job",
                extra={"job_id": str(job.id), "queue": queue, "retries": job.retries},
            )

            try:
                with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
                    span.set_attribute("job_id", str(job.id))
                    span.set_attribute("queue", queue)
                    span.set_attribute("retries", job.retries)

                    await self.handler(job)

            except Exception as e:
                logger.warning(
                    "Job failed",
                    extra={"job_id": str(job.id), "error": str(e), "retries": job.retries},
                )
                outcome = JobOutcome.FAILED
                await self.manager.fail(job.id, str(e) or type(e).__name__)
            else:
                outcome = JobOutcome.ACKNOWLEDGED
                await self.manager.acknowledge(job.id)

            self._metrics.record_job_duration(queue, outcome, time.monotonic() - start_time)

        except Exception:
            # Reporting failed; the lease expires and the job is claimed again
            logger.exception(
                "Failed to report job outcome",
                extra={"job_id": str(job.id)},
            )

        finally:
            self._current_jobs.pop(job.id, None)


async def run_async(manager: QueueManager, handler: JobHandler) -> None:
    """Run a worker with observability, database and signal handling set up."""
    setup_logging()
    setup_tracing()
    start_metrics_server()
    bind_context(worker_id=manager.worker_id, queue=manager.queue)
    await init_db()

    worker = Worker(manager, handler)

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_db()


def run(manager: QueueManager, handler: JobHandler) -> None:
    """Run a worker until interrupted."""
    asyncio.run(run_async(manager, handler))
