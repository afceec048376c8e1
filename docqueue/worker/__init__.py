"""
Worker module.
Contains the polling worker that drives a queue manager.
"""

from docqueue.worker.main import JobHandler, Worker, run

__all__ = ["JobHandler", "Worker", "run"]
