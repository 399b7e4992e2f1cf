"""Scheduler for periodic queue maintenance."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from hiring_processor.config import settings
from hiring_processor.maintenance import CleanupResult, QueueMaintenanceService


class MaintenanceScheduler:
    """Runs the queue cleanup sweep on start and then every interval."""

    def __init__(self, maintenance: QueueMaintenanceService, interval: Optional[float] = None, logger=None):
        """Initialize scheduler.

        Args:
            maintenance: Service that performs the sweep
            interval: Seconds between sweeps, defaults to CLEANUP_INTERVAL
        """
        self.maintenance = maintenance
        self.running = False
        self.interval = interval if interval is not None else settings.CLEANUP_INTERVAL
        self.last_run: Optional[datetime] = None
        self.last_result: Optional[CleanupResult] = None
        self.logger = logger or structlog.get_logger().bind(component="maintenance_scheduler")

    async def run(self) -> None:
        """Main scheduler loop."""
        self.running = True
        self.logger.info("Maintenance scheduler started", interval=self.interval)

        while self.running:
            await self.run_once()
            await asyncio.sleep(self.interval)

        self.logger.info("Maintenance scheduler stopped")

    async def run_once(self) -> Optional[CleanupResult]:
        """Run a single sweep; failures are logged, never raised."""
        try:
            self.last_result = await asyncio.to_thread(self.maintenance.cleanup_problematic_jobs)
            self.last_run = datetime.now(timezone.utc)
            return self.last_result
        except Exception as e:
            self.logger.error("Scheduled cleanup failed", error=str(e), exc_info=True)
            return None

    async def stop(self) -> None:
        """Stop the scheduler."""
        self.running = False
