#!/usr/bin/env python3
"""Entry point for running the lifecycle scheduler as a standalone worker."""
import asyncio
import logging
import sys

from eventsphere.config import get_settings
from eventsphere.tasks.scheduler import LifecycleScheduler, register_default_tasks

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def main():
    """Main async function to start scheduler and keep it running."""
    logger.info("Starting lifecycle scheduler worker...")

    scheduler = LifecycleScheduler()
    register_default_tasks(scheduler, settings=get_settings())
    scheduler.start()

    # Keep the process running
    try:
        logger.info("Scheduler is running. Press Ctrl+C to stop.")
        # Wait forever - scheduler runs in background
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Received shutdown signal")
    finally:
        await scheduler.stop()


if __name__ == "__main__":
    # Run the main async function
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        sys.exit(0)
