"""
Type definitions for the queue.
"""

from docqueue.types.job import JobView, QueueOptions

__all__ = [
    "JobView",
    "QueueOptions",
]
