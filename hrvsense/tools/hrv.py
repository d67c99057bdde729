"""Expose HRV metrics and recent heart-rate samples as MCP tools via fastmcp.

`create_hrv_server` binds the tools to a gateway. The HTTP app mounts one over
its own store so tools and API read the same data; the module-level `server`
is the stdio entry point over the configured backend.
"""

from datetime import timedelta
from typing import Any, Callable, Dict

from fastmcp import FastMCP

from hrvsense.biometrics import Error, NotAvailable, OperationResult, PermissionDenied, Success
from hrvsense.config import load_settings
from hrvsense.health import HealthStoreGateway, get_health_store
from hrvsense.health.gateway import utc_now

_gateway: HealthStoreGateway | None = None


def get_gateway() -> HealthStoreGateway:
    global _gateway
    if _gateway is None:
        _gateway = HealthStoreGateway(get_health_store(load_settings().health_store))
    return _gateway


def describe(result: OperationResult[Any]) -> Dict[str, Any]:
    if isinstance(result, Success):
        return {"available": True, "data": result.value}
    if isinstance(result, PermissionDenied):
        return {"available": False, "reason": "permission_denied", "message": "Health store read access not granted."}
    if isinstance(result, NotAvailable):
        return {"available": False, "reason": "not_available", "message": "Health store is not available."}
    if isinstance(result, Error):
        return {"available": False, "reason": "error", "message": result.message}
    raise TypeError(f"Unexpected result: {result!r}")


async def hrv_metrics_summary(gateway: HealthStoreGateway, hours_back: float = 24.0) -> Dict[str, Any]:
    result = await gateway.get_recent_hrv_metrics(hours_back)
    if isinstance(result, Success):
        return describe(Success(result.value.to_dto().model_dump(mode="json")))
    return describe(result)


async def heart_rate_samples_summary(gateway: HealthStoreGateway, hours_back: float = 1.0) -> Dict[str, Any]:
    end = utc_now()
    result = await gateway.read_heart_rate_data(end - timedelta(hours=hours_back), end)
    if isinstance(result, Success):
        return describe(Success([sample.to_dto().model_dump(mode="json") for sample in result.value]))
    return describe(result)


def create_hrv_server(gateway: Callable[[], HealthStoreGateway] = get_gateway) -> FastMCP:
    """Build the `hrv` MCP server; `gateway` is resolved on every tool call."""

    hrv = FastMCP(
        name="hrv",
        instructions="Provide heart-rate variability metrics and recent heart-rate samples from the health store.",
    )

    @hrv.tool(
        name="get_hrv_metrics",
        description="Compute RMSSD, SDNN and PNN50 over the last `hours_back` hours of heart-rate data.",
    )
    async def tool_get_hrv_metrics(hours_back: float = 24.0) -> Dict[str, Any]:
        return await hrv_metrics_summary(gateway(), hours_back)

    @hrv.tool(
        name="get_heart_rate_samples",
        description="Fetch heart-rate samples (ascending by time) from the last `hours_back` hours.",
    )
    async def tool_get_heart_rate_samples(hours_back: float = 1.0) -> Dict[str, Any]:
        return await heart_rate_samples_summary(gateway(), hours_back)

    return hrv


server = create_hrv_server()


def run() -> None:
    """Run the MCP server. Defaults to stdio transport."""

    server.run(transport="stdio")


if __name__ == "__main__":
    run()
