from datetime import timedelta

import pytest
from fastmcp import Client

from hrvsense.app import create_app
from hrvsense.app.api import MCP_MOUNT
from hrvsense.biometrics import Error, NotAvailable, PermissionDenied, Success
from hrvsense.companion import LoopbackTransport
from hrvsense.config import Settings
from hrvsense.health import READ_HEART_RATE, REQUIRED_PERMISSIONS, HealthStoreGateway, InMemoryHealthStore
from hrvsense.health.gateway import utc_now
from hrvsense.tools.hrv import create_hrv_server, describe, heart_rate_samples_summary, hrv_metrics_summary
from tests.conftest import heart_rate_record


@pytest.fixture
def live_gateway(store):
    now = utc_now()
    store.insert(heart_rate_record("src", (60, now - timedelta(minutes=20)), (100, now - timedelta(minutes=10))))
    return HealthStoreGateway(store)


async def call(server, name, **arguments):
    async with Client(server) as client:
        result = await client.call_tool(name, arguments)
    return result.structured_content


class TestDescribe:
    def test_variants(self):
        assert describe(Success(1)) == {"available": True, "data": 1}
        assert describe(PermissionDenied())["reason"] == "permission_denied"
        assert describe(NotAvailable())["reason"] == "not_available"
        assert describe(Error("boom")) == {"available": False, "reason": "error", "message": "boom"}


class TestSummaries:
    async def test_metrics(self, live_gateway):
        summary = await hrv_metrics_summary(live_gateway, hours_back=1)
        assert summary["available"] is True
        assert summary["data"]["rmssd"] == pytest.approx(400.0)
        assert summary["data"]["sample_count"] == 2
        assert isinstance(summary["data"]["timestamp"], str)

    async def test_samples(self, live_gateway):
        summary = await heart_rate_samples_summary(live_gateway, hours_back=1)
        assert [s["bpm"] for s in summary["data"]] == [60, 100]

    async def test_permission_denied(self, live_gateway, store):
        store.revoke(READ_HEART_RATE)
        summary = await hrv_metrics_summary(live_gateway)
        assert summary == {
            "available": False,
            "reason": "permission_denied",
            "message": "Health store read access not granted.",
        }


class TestTools:
    async def test_get_hrv_metrics(self, live_gateway):
        body = await call(create_hrv_server(lambda: live_gateway), "get_hrv_metrics", hours_back=1)
        assert body["available"] is True
        assert body["data"]["rmssd"] == pytest.approx(400.0)

    async def test_get_heart_rate_samples(self, live_gateway):
        body = await call(create_hrv_server(lambda: live_gateway), "get_heart_rate_samples", hours_back=1)
        assert [s["bpm"] for s in body["data"]] == [60, 100]

    async def test_app_tools_read_the_api_store(self):
        store = InMemoryHealthStore(granted=REQUIRED_PERMISSIONS)
        app = create_app(settings=Settings(), store=store, transport=LoopbackTransport())
        now = utc_now()
        store.insert(heart_rate_record("watch", (75, now - timedelta(minutes=2)), (80, now - timedelta(minutes=1))))

        body = await call(app.state.mcp, "get_hrv_metrics", hours_back=1)
        assert body["available"] is True
        assert body["data"]["rmssd"] == pytest.approx(50.0)
        assert body["data"]["sample_count"] == 2

    def test_app_mounts_mcp(self):
        app = create_app(settings=Settings(), store=InMemoryHealthStore(), transport=LoopbackTransport())
        assert MCP_MOUNT in {getattr(route, "path", None) for route in app.routes}
