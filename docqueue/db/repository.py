"""
Job repository for database operations.
Implements the data access patterns behind the queue manager.
"""

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from docqueue.db.models import utcnow

logger = logging.getLogger(__name__)


class JobRepository:
    """
    Repository for job database operations.

    Every mutation is a single statement:
    - Claim with UPDATE ... WHERE id = (SELECT ... FOR UPDATE SKIP LOCKED)
    - Completion and failure with UPDATE ... RETURNING
    - Maintenance with DELETE ... WHERE
    """

    def __init__(self, session: AsyncSession, job_model: type[Any]):
        """
        Initialize the repository.

        Args:
            session: The async database session.
            job_model: Mapped job class of the queue collection.
        """
        self._session = session
        self._job = job_model

    def _eligible(self, now: datetime, max_retries: int, job: Any = None) -> Any:
        """Predicate for jobs that may be claimed at ``now``."""
        if job is None:
            job = self._job
        return and_(
            job.blocked_until < now,
            job.retries <= max_retries,
            job.done.is_(False),
        )

    def _finished(self, max_retries: int) -> Any:
        """Predicate for jobs that can never be claimed again."""
        job = self._job
        return or_(
            job.done.is_(True),
            job.retries > max_retries,
        )

    async def create_job(self, payload_id: Any) -> Any:
        """
        Insert a new job referencing a payload.

        Args:
            payload_id: Primary key of the payload row.

        Returns:
            The persisted job.
        """
        job = self._job(payload_id=payload_id)
        self._session.add(job)
        await self._session.flush()

        logger.info(
            "Created new job",
            extra={"job_id": str(job.id), "queue": self._job.__tablename__},
        )
        return job

    async def claim_next(
        self,
        worker_id: str,
        worker_hostname: str,
        block_duration: timedelta,
        max_retries: int,
    ) -> Any | None:
        """
        Lease the oldest eligible job.

        Selection and update happen in one statement. On PostgreSQL the
        subquery locks the candidate row with SKIP LOCKED, so concurrent
        claimers move on to the next row instead of waiting; the predicate is
        repeated on the outer statement so a row changed by another claimer
        between snapshot and lock is not leased twice.

        Args:
            worker_id: Identity of the claiming worker.
            worker_hostname: Host of the claiming worker.
            block_duration: Lease length.
            max_retries: Retry ceiling of the queue.

        Returns:
            The leased job or None if no job is eligible.
        """
        job = self._job
        now = utcnow()
        eligible = self._eligible(now, max_retries)

        # Aliased so the subquery keeps its own FROM instead of correlating
        # with the table being updated
        oldest = aliased(job)
        candidate = (
            select(oldest.id)
            .where(self._eligible(now, max_retries, oldest))
            .order_by(oldest.created_at.asc(), oldest.id.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )

        stmt = (
            update(job)
            .where(and_(job.id == candidate, eligible))
            .values(
                blocked_until=now + block_duration,
                worker_id=worker_id,
                worker_hostname=worker_hostname,
                retries=job.retries + 1,
            )
            .returning(job)
            .execution_options(synchronize_session=False, populate_existing=True)
        )

        result = await self._session.execute(stmt)
        claimed = result.scalar_one_or_none()

        if claimed is not None:
            logger.info(
                "Claimed job",
                extra={
                    "job_id": str(claimed.id),
                    "worker_id": worker_id,
                    "retries": claimed.retries,
                },
            )

        return claimed

    async def mark_done(self, job_id: UUID, **values: Any) -> Any | None:
        """
        Set the terminal flag on a job.

        Args:
            job_id: The job UUID.
            **values: Additional columns to set, such as ``error``.

        Returns:
            Updated job or None if no job matches.
        """
        stmt = (
            update(self._job)
            .where(self._job.id == job_id)
            .values(done=True, **values)
            .returning(self._job)
            .execution_options(synchronize_session=False, populate_existing=True)
        )

        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_finished(self, max_retries: int) -> int:
        """
        Delete done and exhausted jobs.

        Args:
            max_retries: Retry ceiling of the queue.

        Returns:
            Number of deleted jobs.
        """
        stmt = delete(self._job).where(self._finished(max_retries))
        result = await self._session.execute(stmt)
        return result.rowcount

    async def delete_all(self) -> int:
        """
        Delete every job of the collection.

        Returns:
            Number of deleted jobs.
        """
        result = await self._session.execute(delete(self._job))
        return result.rowcount

    async def count_pending(self, max_retries: int) -> int:
        """
        Count jobs that are neither done nor exhausted.

        Args:
            max_retries: Retry ceiling of the queue.

        Returns:
            Number of pending jobs, leased or not.
        """
        job = self._job
        stmt = select(func.count()).select_from(job).where(
            and_(job.done.is_(False), job.retries <= max_retries)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0
