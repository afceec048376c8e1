"""
Job-related type definitions shared by the manager and its callers.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Uuid

from docqueue.config import Settings, get_settings
from docqueue.constants import (
    DEFAULT_BLOCK_DURATION_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_QUEUE_COLLECTION,
)


class QueueOptions(BaseModel):
    """
    Configuration of a queue manager.

    Fields left out take their defaults; ``max_retries`` counts the claims
    allowed after the first one, so a job is leased at most
    ``max_retries + 1`` times.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    payload_ref_type: Any = Uuid
    queue_collection: str = Field(default=DEFAULT_QUEUE_COLLECTION, min_length=1)
    block_duration: int = Field(default=DEFAULT_BLOCK_DURATION_MS, ge=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)

    @property
    def lease(self) -> timedelta:
        """Lease length granted on each claim."""
        return timedelta(milliseconds=self.block_duration)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "QueueOptions":
        """Build options from environment configuration."""
        settings = settings or get_settings()
        values = {
            "queue_collection": settings.queue_collection,
            "block_duration": settings.queue_block_duration_ms,
            "max_retries": settings.queue_max_retries,
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class JobView:
    """
    Caller-visible state of a job.

    ``payload`` is the loaded payload document for claimed jobs and the
    payload reference for acknowledged or failed ones.
    """

    id: UUID
    payload: Any
    blocked_until: datetime
    done: bool
    retries: int = 0
    error: str | None = None

    @classmethod
    def from_job(cls, job: Any) -> "JobView":
        """Create a view from a mapped job row."""
        return cls(
            id=job.id,
            payload=job.payload_id,
            blocked_until=job.blocked_until,
            done=job.done,
            retries=job.retries,
            error=job.error,
        )
