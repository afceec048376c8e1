"""
Queue cleaner for removing finished jobs.

The cleaner runs periodically and deletes jobs that are done or have passed
the retry ceiling. Such jobs can never be claimed again, so the sweep is safe
to run while workers are claiming.
"""

import asyncio
import logging
import signal

from docqueue.config import get_settings
from docqueue.db import close_db, init_db
from docqueue.manager import QueueManager
from docqueue.observability.logging import setup_logging
from docqueue.observability.metrics import get_metrics, start_metrics_server
from docqueue.observability.tracing import setup_tracing

logger = logging.getLogger(__name__)


class Cleaner:
    """
    Maintenance loop over one queue collection.

    Each run:
    1. Deletes done and exhausted jobs
    2. Updates the queue depth gauge with the remaining pending jobs
    """

    def __init__(self, manager: QueueManager, interval_seconds: int | None = None):
        """
        Initialize the cleaner.

        Args:
            manager: Queue manager of the collection to sweep.
            interval_seconds: Seconds between runs.
        """
        settings = get_settings()
        self.manager = manager
        self.interval = interval_seconds or settings.cleaner_interval_seconds
        self._running = False
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the cleaner loop."""
        logger.info(
            f"Cleaner starting with interval {self.interval}s",
            extra={"queue": self.manager.queue},
        )
        self._running = True

        while self._running:
            try:
                removed = await self.run_once()

                if removed > 0:
                    logger.info(f"Removed {removed} finished jobs")

            except Exception as e:
                logger.exception(f"Error in cleaner loop: {e}")

            await asyncio.sleep(self.interval)

        logger.info("Cleaner stopped")

    async def stop(self) -> None:
        """Stop the cleaner."""
        logger.info("Cleaner stopping")
        self._running = False

    async def run_once(self) -> int:
        """
        Run one sweep (for testing or cron-style execution).

        Returns:
            Number of jobs removed.
        """
        removed = await self.manager.clean()
        depth = await self.manager.count_pending()
        self._metrics.update_queue_depth(self.manager.queue, depth)
        return removed


async def run_async(manager: QueueManager) -> None:
    """Run the cleaner asynchronously."""
    setup_logging()
    setup_tracing()
    start_metrics_server()
    await init_db()

    cleaner = Cleaner(manager)

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(cleaner.stop())
        )

    try:
        await cleaner.start()
    finally:
        await close_db()


def run(manager: QueueManager) -> None:
    """Run the cleaner."""
    asyncio.run(run_async(manager))
