"""HTTP server for processor health checks and queue operations."""

import asyncio
from typing import Any, Callable, Optional

from aiohttp import web
import structlog

from hiring_processor.config import settings
from hiring_processor.maintenance import QueueMaintenanceService


def envelope(success: bool, message: Optional[str] = None, data: Any = None, status: int = 200) -> web.Response:
    body = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return web.json_response(body, status=status)


class HealthServer:
    """Lightweight HTTP server for health checks and queue management.

    Routes:
        GET  /health        liveness plus worker status
        GET  /queue/stats   job counts per state
        POST /queue/cleanup run the cleanup sweep now
        POST /queue/pause   stop claiming new jobs
        POST /queue/resume  resume claiming
    """

    def __init__(
        self,
        maintenance: QueueMaintenanceService,
        status_callback: Optional[Callable[[], dict]] = None,
        port: Optional[int] = None,
        logger=None,
    ):
        self.maintenance = maintenance
        self.status_callback = status_callback
        self.port = port if port is not None else settings.HEALTH_PORT
        self.logger = logger or structlog.get_logger().bind(component="health_server")
        self.app = self.create_app()
        self.runner = None
        self.running = False

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.health_handler)
        app.router.add_get("/queue/stats", self.stats_handler)
        app.router.add_post("/queue/cleanup", self.cleanup_handler)
        app.router.add_post("/queue/pause", self.pause_handler)
        app.router.add_post("/queue/resume", self.resume_handler)
        return app

    async def health_handler(self, request):
        """Handle health check requests."""
        status = {"status": "ok"}
        if self.status_callback:
            try:
                status["details"] = await asyncio.to_thread(self.status_callback)
            except Exception as e:
                self.logger.warning("Failed to get status details", error=str(e))
        return web.json_response(status)

    async def stats_handler(self, request):
        try:
            stats = await asyncio.to_thread(self.maintenance.get_stats)
        except Exception as e:
            self.logger.error("Failed to get queue stats", error=str(e))
            return envelope(False, message=f"Failed to get queue stats: {e}", status=500)
        return envelope(True, data=stats)

    async def cleanup_handler(self, request):
        try:
            result = await asyncio.to_thread(self.maintenance.cleanup_problematic_jobs)
        except Exception as e:
            self.logger.error("Queue cleanup failed", error=str(e))
            return envelope(False, message=f"Queue cleanup failed: {e}", status=500)
        return envelope(True, message="Queue cleanup completed", data=result.to_dict())

    async def pause_handler(self, request):
        try:
            await asyncio.to_thread(self.maintenance.pause)
        except Exception as e:
            self.logger.error("Failed to pause queue", error=str(e))
            return envelope(False, message=f"Failed to pause queue: {e}", status=500)
        return envelope(True, message="Queue paused")

    async def resume_handler(self, request):
        try:
            await asyncio.to_thread(self.maintenance.resume)
        except Exception as e:
            self.logger.error("Failed to resume queue", error=str(e))
            return envelope(False, message=f"Failed to resume queue: {e}", status=500)
        return envelope(True, message="Queue resumed")

    async def run(self):
        """Start the health server."""
        self.running = True
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, "0.0.0.0", self.port)
        await site.start()
        self.logger.info("Health server started", port=self.port)

        # Keep running until stopped
        while self.running:
            await asyncio.sleep(1)

    async def stop(self):
        """Stop the health server."""
        self.running = False
        if self.runner:
            await self.runner.cleanup()
            self.logger.info("Health server stopped")
