"""Tests for the processor's operational HTTP server."""

import pytest
from aiohttp.test_utils import TestClient, TestServer

from hiring_api.models import JOB_WAITING
from hiring_processor.health_server import HealthServer
from hiring_processor.maintenance import QueueMaintenanceService


class BrokenMaintenance:
    def get_stats(self):
        raise RuntimeError("database is down")

    def cleanup_problematic_jobs(self):
        raise RuntimeError("database is down")

    def pause(self):
        raise RuntimeError("database is down")

    def resume(self):
        raise RuntimeError("database is down")


@pytest.fixture
def maintenance(session_factory, events, processor_settings):
    return QueueMaintenanceService(session_factory, events=events, settings=processor_settings)


async def make_client(maintenance, status_callback=None):
    server = HealthServer(maintenance, status_callback=status_callback, port=0)
    client = TestClient(TestServer(server.app))
    await client.start_server()
    return client


async def test_health_includes_worker_status(maintenance):
    client = await make_client(maintenance, status_callback=lambda: {"running": True, "active_jobs": 0})
    try:
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok", "details": {"running": True, "active_jobs": 0}}
    finally:
        await client.close()


async def test_health_survives_a_failing_status_callback(maintenance):
    def broken():
        raise RuntimeError("no status")

    client = await make_client(maintenance, status_callback=broken)
    try:
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok"}
    finally:
        await client.close()


async def test_stats_report_counts(maintenance, queue):
    queue.enqueue("analyze", {"applicationId": 1})
    client = await make_client(maintenance)
    try:
        resp = await client.get("/queue/stats")
        body = await resp.json()
        assert resp.status == 200
        assert body["success"] is True
        assert body["data"]["counts"][JOB_WAITING] == 1
        assert body["data"]["paused"] is False
    finally:
        await client.close()


async def test_cleanup_returns_counters(maintenance, queue):
    queue.enqueue("analyze", {"applicationId": 999})
    client = await make_client(maintenance)
    try:
        resp = await client.post("/queue/cleanup")
        body = await resp.json()
        assert resp.status == 200
        assert body["success"] is True
        assert body["message"] == "Queue cleanup completed"
        assert body["data"]["cleaned"] == 1
        assert body["data"]["errors"] == []
    finally:
        await client.close()


async def test_pause_and_resume(maintenance, queue):
    client = await make_client(maintenance)
    try:
        resp = await client.post("/queue/pause")
        assert (await resp.json()) == {"success": True, "message": "Queue paused"}
        assert queue.is_paused() is True

        resp = await client.post("/queue/resume")
        assert (await resp.json()) == {"success": True, "message": "Queue resumed"}
        assert queue.is_paused() is False
    finally:
        await client.close()


@pytest.mark.parametrize(
    "method,path",
    [("get", "/queue/stats"), ("post", "/queue/cleanup"), ("post", "/queue/pause"), ("post", "/queue/resume")],
)
async def test_operation_errors_return_500(method, path):
    client = await make_client(BrokenMaintenance())
    try:
        resp = await getattr(client, method)(path)
        body = await resp.json()
        assert resp.status == 500
        assert body["success"] is False
        assert "database is down" in body["message"]
    finally:
        await client.close()
