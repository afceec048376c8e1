"""
Exceptions raised by the queue manager.

Store failures are not wrapped: anything raised by SQLAlchemy or the driver
reaches the caller unchanged. ``StoreError`` is exported as an alias so
callers can catch it without importing SQLAlchemy.
"""

from sqlalchemy.exc import SQLAlchemyError as StoreError


class QueueError(Exception):
    """Base class for queue errors."""


class ValidationError(QueueError):
    """The payload passed to enqueue is missing or not a persisted document."""


class NotFoundError(QueueError):
    """No job matches the given identifier."""


__all__ = ["QueueError", "ValidationError", "NotFoundError", "StoreError"]
