"""Main entry point for the processor service."""

import asyncio
import logging
import signal
import sys
from typing import List

import structlog

from hiring_processor.config import settings
from hiring_processor.database import SessionLocal
from hiring_processor.errors import QueueNotReadyError
from hiring_processor.events import QueueEventLogger, QueueEvents
from hiring_processor.health_server import HealthServer
from hiring_processor.integrations.claude import ClaudeClient
from hiring_processor.maintenance import QueueMaintenanceService
from hiring_processor.matching import MatchAnalysisEngine
from hiring_processor.processors import AnalyzeApplicationProcessor
from hiring_processor.queue_manager import QueueManager
from hiring_processor.scheduler import MaintenanceScheduler
from hiring_processor.worker import Worker

# Configure stdlib logging level (required for structlog.stdlib.filter_by_level)
logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.LOG_FORMAT == "json" else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


class ProcessorService:
    """Main processor service orchestrating worker, maintenance and the ops server."""

    def __init__(self):
        self.events = QueueEvents()
        self.events.subscribe(QueueEventLogger())

        self.worker = Worker(SessionLocal, events=self.events)  # Pass factory, not instance
        self.maintenance = QueueMaintenanceService(SessionLocal, events=self.events)
        self.scheduler = MaintenanceScheduler(self.maintenance)
        self.health_server = HealthServer(self.maintenance, status_callback=self.worker.get_status)
        self.running = False
        self.tasks: List[asyncio.Task] = []

    def _check_queue_ready(self) -> None:
        """Refuse to start unless the queue backend answers.

        Raises:
            QueueNotReadyError: If the queue tables cannot be reached
        """
        db = SessionLocal()
        try:
            if not QueueManager(db, events=self.events).is_ready():
                raise QueueNotReadyError(f"Queue '{settings.QUEUE_NAME}' is not ready")
        finally:
            db.close()
        logger.info("Queue ready", queue=settings.QUEUE_NAME)

    def _register_processors(self) -> None:
        """Register all job processors."""
        engine = MatchAnalysisEngine(SessionLocal, ClaudeClient())
        self.worker.register_processor(AnalyzeApplicationProcessor, engine=engine)

    async def start(self) -> None:
        """Start all processor components."""
        self.running = True
        logger.info("Starting processor service")

        await asyncio.to_thread(self._check_queue_ready)

        # Register processors
        self._register_processors()

        # Start components as tasks
        self.tasks = [
            asyncio.create_task(self.worker.run(), name="worker"),
            asyncio.create_task(self.health_server.run(), name="health_server"),
        ]

        # Only start maintenance if enabled
        if settings.CLEANUP_ENABLED:
            self.tasks.append(
                asyncio.create_task(self.scheduler.run(), name="scheduler")
            )
        else:
            logger.info("Queue maintenance disabled by configuration")

        logger.info(
            "Processor service started",
            components=[t.get_name() for t in self.tasks],
        )

        # Wait for all tasks
        try:
            await asyncio.gather(*self.tasks)
        except asyncio.CancelledError:
            logger.info("Tasks cancelled")

    async def stop(self) -> None:
        """Stop all processor components gracefully."""
        logger.info("Stopping processor service")
        self.running = False

        # Stop all components
        await asyncio.gather(
            self.worker.stop(),
            self.scheduler.stop(),
            self.health_server.stop(),
        )

        # Cancel any remaining tasks
        for task in self.tasks:
            if not task.done():
                task.cancel()

        logger.info("Processor service stopped")


async def main() -> None:
    """Main entry point."""
    service = ProcessorService()

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def shutdown_handler():
        logger.info("Shutdown signal received")
        asyncio.create_task(service.stop())

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown_handler)

    try:
        await service.start()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        await service.stop()
    except QueueNotReadyError as e:
        logger.error("Queue not ready, refusing to start", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.error("Processor service error", error=str(e), exc_info=True)
        await service.stop()
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
