"""
SQLAlchemy database models.
Defines the job table layout and the per-collection model factory.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeEngine


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in job rows."""
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class JobMixin:
    """
    Columns shared by every queue collection.

    A job is claimable while ``blocked_until`` lies in the past, it is not
    ``done`` and ``retries`` has not passed the configured ceiling. Claims
    push ``blocked_until`` forward and bump ``retries``; acknowledge and fail
    set ``done``. ``created_at`` is never modified and defines claim order.

    The ``payload_id`` column is added by :func:`get_job_model` because its
    type and foreign key depend on the payload model.
    """

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        nullable=False,
    )

    # Lease management
    blocked_until: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    worker_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    worker_hostname: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Retry tracking
    retries: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Completion
    done: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def is_exhausted(self, max_retries: int) -> bool:
        """Check if the job has used up its claims."""
        return self.retries > max_retries

    def is_blocked(self, now: datetime | None = None) -> bool:
        """Check if the job is still leased."""
        return self.blocked_until >= (now or utcnow())

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id}, retries={self.retries}, "
            f"done={self.done}, blocked_until={self.blocked_until})"
        )


# Mapped job classes, one per queue collection
_job_models: dict[str, type[Any]] = {}


def _check_payload_reference(
    model: type[Any],
    payload_column: Any,
    payload_ref_type: type[TypeEngine] | TypeEngine,
) -> None:
    """Reject a mapped collection whose payload reference differs."""
    column = model.__table__.c.payload_id
    target = next(iter(column.foreign_keys)).column
    if target is not payload_column:
        raise ValueError(
            f"Collection {model.__tablename__!r} references {target.table.name}, "
            f"not {payload_column.table.name}"
        )

    ref_type = payload_ref_type if isinstance(payload_ref_type, type) else type(payload_ref_type)
    if type(column.type) is not ref_type:
        raise ValueError(
            f"Collection {model.__tablename__!r} stores payload references as "
            f"{type(column.type).__name__}, not {ref_type.__name__}"
        )


def get_job_model(
    queue_collection: str,
    payload_model: type[Any],
    payload_ref_type: type[TypeEngine] | TypeEngine = Uuid,
) -> type[Any]:
    """
    Get or create the mapped job class for a queue collection.

    The first call for a collection defines its table; later calls return the
    same class, so every manager on a collection shares one mapping. A later
    call must name the same payload table and reference type.

    Args:
        queue_collection: Name of the job table.
        payload_model: Mapped class the jobs reference.
        payload_ref_type: Column type of the payload reference.

    Returns:
        The mapped job class.

    Raises:
        ValueError: If the payload key is not a single column, or if the
            collection is already mapped to another payload or reference type.
    """
    payload_key = inspect(payload_model).primary_key
    if len(payload_key) != 1:
        raise ValueError(
            f"{payload_model.__name__} must have a single-column primary key"
        )

    model = _job_models.get(queue_collection)
    if model is not None:
        _check_payload_reference(model, payload_key[0], payload_ref_type)
        return model

    attrs = {
        "__tablename__": queue_collection,
        "payload_id": mapped_column(
            payload_ref_type,
            ForeignKey(payload_key[0]),
            nullable=False,
            index=True,
        ),
        "__table_args__": (
            # Index for claim polling, oldest first
            Index(
                f"ix_{queue_collection}_claim",
                "done",
                "created_at",
            ),
        ),
    }
    class_name = "".join(part.capitalize() for part in queue_collection.split("_")) + "Job"
    model = type(class_name, (JobMixin, Base), attrs)
    _job_models[queue_collection] = model
    return model
