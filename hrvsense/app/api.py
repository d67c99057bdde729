"""Application factory wiring the health monitor, routers and MCP tools together."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from hrvsense.app.dev_api import router as dev_router
from hrvsense.app.heart_api import router as heart_router
from hrvsense.app.monitor import HealthMonitor
from hrvsense.companion import (
    CAPABILITY_HEART_RATE,
    CompanionChannel,
    CompanionTransport,
    LoopbackTransport,
    get_companion_transport,
)
from hrvsense.config import Settings, load_settings
from hrvsense.health import HealthStore, HealthStoreGateway, get_health_store
from hrvsense.tools.hrv import create_hrv_server

MCP_MOUNT = "/tools"


def build_monitor(settings: Settings, gateway: HealthStoreGateway, transport: CompanionTransport) -> HealthMonitor:
    if isinstance(transport, LoopbackTransport):
        for node_id in settings.companion_nodes:
            transport.add_node(node_id, CAPABILITY_HEART_RATE)
    return HealthMonitor(
        gateway,
        CompanionChannel(transport),
        hours_back=settings.hours_back,
        poll_interval_minutes=settings.stream_interval_minutes,
    )


def create_app(
    settings: Settings | None = None,
    store: HealthStore | None = None,
    transport: CompanionTransport | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    store = store or get_health_store(settings.health_store)
    transport = transport or get_companion_transport(settings.companion_transport)
    gateway = HealthStoreGateway(store)
    monitor = build_monitor(settings, gateway, transport)

    # MCP tools read the same store as the HTTP routes; served at /tools/mcp.
    mcp = create_hrv_server(lambda: gateway)
    mcp_app = mcp.http_app(path="/mcp")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with mcp_app.router.lifespan_context(app):
            try:
                yield
            finally:
                await monitor.aclose()

    app = FastAPI(title="HRVSense API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.transport = transport
    app.state.monitor = monitor
    app.state.mcp = mcp
    app.include_router(heart_router)
    app.include_router(dev_router)
    app.mount(MCP_MOUNT, mcp_app)
    return app


__all__ = ["MCP_MOUNT", "build_monitor", "create_app"]
