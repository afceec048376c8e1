"""
docqueue

A persistent job queue over a shared SQL store. Jobs reference payload rows,
are leased to one worker at a time and retried a bounded number of times.
"""

__version__ = "1.0.0"

from docqueue.cleaner import Cleaner
from docqueue.db import close_db, create_tables, init_db
from docqueue.exceptions import NotFoundError, QueueError, StoreError, ValidationError
from docqueue.manager import QueueManager
from docqueue.types.job import JobView, QueueOptions
from docqueue.worker import Worker

__all__ = [
    "QueueManager",
    "QueueOptions",
    "JobView",
    "QueueError",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "Worker",
    "Cleaner",
    "init_db",
    "close_db",
    "create_tables",
]
