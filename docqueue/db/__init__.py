"""
Database module.
Contains database connection, models, and repository implementations.
"""

from docqueue.db.connection import (
    close_db,
    create_session_factory,
    create_tables,
    get_engine,
    get_session_context,
    init_db,
    session_scope,
)
from docqueue.db.models import Base, JobMixin, get_job_model, utcnow

__all__ = [
    "get_session_context",
    "session_scope",
    "create_session_factory",
    "create_tables",
    "get_engine",
    "init_db",
    "close_db",
    "Base",
    "JobMixin",
    "get_job_model",
    "utcnow",
]
