"""
Queue manager.

Coordinates enqueue, claim, acknowledge, fail and maintenance against a job
collection. The manager keeps only read-only configuration; all mutual
exclusion comes from the single-statement updates in
:class:`~docqueue.db.repository.JobRepository`, so any number of managers
in any number of processes can work the same collection.
"""

import logging
import socket
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docqueue.constants import (
    ERROR_JOB_NOT_FOUND,
    ERROR_PAYLOAD_INVALID,
    ERROR_PAYLOAD_MISSING,
    SPAN_ACKNOWLEDGE,
    SPAN_CLAIM,
    SPAN_CLEAN,
    SPAN_ENQUEUE,
    SPAN_FAIL,
    SPAN_RESET,
    JobOutcome,
    RemovalReason,
)
from docqueue.db.connection import get_session_context, session_scope
from docqueue.db.models import get_job_model
from docqueue.db.repository import JobRepository
from docqueue.exceptions import NotFoundError, ValidationError
from docqueue.observability.metrics import get_metrics
from docqueue.observability.tracing import get_tracer
from docqueue.types.job import JobView, QueueOptions

logger = logging.getLogger(__name__)


class QueueManager:
    """
    Persistent job queue over a payload model.

    Usage:
        queue = QueueManager(Document, worker_id="indexer-1", options={"max_retries": 3})
        job_id = await queue.enqueue(document)

        job = await queue.claim()
        if job is not None:
            try:
                await process(job.payload)
            except Exception as e:
                await queue.fail(job.id, str(e))
            else:
                await queue.acknowledge(job.id)
    """

    def __init__(
        self,
        payload_model: type[Any],
        worker_id: str = "",
        options: QueueOptions | Mapping[str, Any] | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        """
        Initialize the queue manager.

        Args:
            payload_model: Mapped class of the documents jobs refer to.
            worker_id: Identity recorded on claimed jobs, not required to be unique.
            options: Queue options; missing fields take their defaults.
            session_factory: Session factory to use. Defaults to the
                process-wide factory set up by ``init_db()``.
        """
        if options is None:
            options = QueueOptions()
        elif not isinstance(options, QueueOptions):
            options = QueueOptions(**options)

        self.payload_model = payload_model
        self.worker_id = worker_id
        self.worker_hostname = socket.gethostname()
        self.options = options

        self.job_model = get_job_model(
            options.queue_collection,
            payload_model,
            options.payload_ref_type,
        )

        self._session_factory = session_factory
        self._metrics = get_metrics()

    @property
    def queue(self) -> str:
        """Name of the job collection."""
        return self.options.queue_collection

    @asynccontextmanager
    async def _repository(self) -> AsyncGenerator[tuple[AsyncSession, JobRepository]]:
        """Open a transaction and a repository bound to it."""
        if self._session_factory is not None:
            scope = session_scope(self._session_factory)
        else:
            scope = get_session_context()

        async with scope as session:
            yield session, JobRepository(session, self.job_model)

    @staticmethod
    def _parse_job_id(job_id: UUID | str) -> UUID:
        """Parse a job id; malformed ids are reported as unknown jobs."""
        if isinstance(job_id, UUID):
            return job_id
        try:
            return UUID(str(job_id))
        except ValueError:
            raise NotFoundError(ERROR_JOB_NOT_FOUND) from None

    async def enqueue(self, payload: Any) -> str:
        """
        Add a job for a persisted payload document.

        Args:
            payload: Persisted instance of the payload model.

        Returns:
            The new job's id as a string.

        Raises:
            ValidationError: If the payload is missing or has no identity.
        """
        if payload is None:
            raise ValidationError(ERROR_PAYLOAD_MISSING)

        state = inspect(payload, raiseerr=False)
        if state is None or not hasattr(state, "identity") or state.identity is None:
            raise ValidationError(ERROR_PAYLOAD_INVALID)

        with get_tracer().start_as_current_span(SPAN_ENQUEUE) as span:
            span.set_attribute("queue", self.queue)

            async with self._repository() as (_, repo):
                job = await repo.create_job(state.identity[0])

            span.set_attribute("job_id", str(job.id))

        self._metrics.record_job_enqueued(self.queue)
        return str(job.id)

    async def claim(self) -> JobView | None:
        """
        Lease the oldest eligible job.

        A job is eligible while its lease has expired, it is not done and
        its retry count has not passed ``max_retries``. The returned view
        carries the loaded payload document.

        Returns:
            The claimed job, or None when nothing is eligible right now.
        """
        with get_tracer().start_as_current_span(SPAN_CLAIM) as span:
            span.set_attribute("queue", self.queue)
            span.set_attribute("worker_id", self.worker_id)

            async with self._repository() as (session, repo):
                job = await repo.claim_next(
                    worker_id=self.worker_id,
                    worker_hostname=self.worker_hostname,
                    block_duration=self.options.lease,
                    max_retries=self.options.max_retries,
                )
                if job is None:
                    self._metrics.record_claim_empty(self.queue)
                    return None

                view = JobView.from_job(job)
                view.payload = await session.get(self.payload_model, job.payload_id)

            span.set_attribute("job_id", str(job.id))
            span.set_attribute("retries", job.retries)

        if view.payload is None:
            logger.warning(
                "Claimed job references a missing payload",
                extra={"job_id": str(job.id), "payload_id": str(job.payload_id)},
            )

        self._metrics.record_job_claimed(self.queue, self.worker_id)
        return view

    async def _finish(
        self,
        span_name: str,
        outcome: JobOutcome,
        job_id: UUID | str,
        **values: Any,
    ) -> JobView:
        """Mark a job done and return its view."""
        job_uuid = self._parse_job_id(job_id)

        with get_tracer().start_as_current_span(span_name) as span:
            span.set_attribute("queue", self.queue)
            span.set_attribute("job_id", str(job_uuid))

            async with self._repository() as (_, repo):
                job = await repo.mark_done(job_uuid, **values)

            if job is None:
                raise NotFoundError(ERROR_JOB_NOT_FOUND)

        logger.info(
            f"Job {outcome}",
            extra={"job_id": str(job_uuid), "queue": self.queue, "retries": job.retries},
        )
        self._metrics.record_job_finished(self.queue, outcome)
        return JobView.from_job(job)

    async def acknowledge(self, job_id: UUID | str) -> JobView:
        """
        Mark a job as successfully done.

        Args:
            job_id: Id of the job.

        Returns:
            The updated job.

        Raises:
            NotFoundError: If no job has this id, including malformed ids.
        """
        return await self._finish(SPAN_ACKNOWLEDGE, JobOutcome.ACKNOWLEDGED, job_id)

    async def fail(self, job_id: UUID | str, error: str) -> JobView:
        """
        Mark a job as done with an error message.

        Calling it again overwrites the message; the job stays done.

        Args:
            job_id: Id of the job.
            error: Failure message.

        Returns:
            The updated job, including ``error``.

        Raises:
            NotFoundError: If no job has this id, including malformed ids.
        """
        return await self._finish(SPAN_FAIL, JobOutcome.FAILED, job_id, error=error)

    async def clean(self) -> int:
        """
        Delete done jobs and jobs past the retry ceiling.

        Returns:
            Number of deleted jobs.
        """
        with get_tracer().start_as_current_span(SPAN_CLEAN) as span:
            span.set_attribute("queue", self.queue)

            async with self._repository() as (_, repo):
                count = await repo.delete_finished(self.options.max_retries)

            span.set_attribute("deleted", count)

        logger.info("Cleaned queue", extra={"queue": self.queue, "deleted": count})
        self._metrics.record_jobs_removed(self.queue, RemovalReason.CLEAN, count)
        return count

    async def reset(self) -> int:
        """
        Delete every job in the collection.

        Returns:
            Number of deleted jobs.
        """
        with get_tracer().start_as_current_span(SPAN_RESET) as span:
            span.set_attribute("queue", self.queue)

            async with self._repository() as (_, repo):
                count = await repo.delete_all()

            span.set_attribute("deleted", count)

        logger.warning("Reset queue", extra={"queue": self.queue, "deleted": count})
        self._metrics.record_jobs_removed(self.queue, RemovalReason.RESET, count)
        return count

    async def count_pending(self) -> int:
        """Number of jobs that are neither done nor past the retry ceiling."""
        async with self._repository() as (_, repo):
            return await repo.count_pending(self.options.max_retries)
