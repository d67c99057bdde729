"""Development router: seed the in-memory store and simulate companion pushes."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import AwareDatetime, BaseModel, Field

from hrvsense.companion import KEY_BPM, KEY_TIMESTAMP, PATH_HEART_RATE, DataEvent, LoopbackTransport
from hrvsense.health import (
    REQUIRED_PERMISSIONS,
    HeartRateRecord,
    InMemoryHealthStore,
    RecordSample,
)
from hrvsense.health.gateway import utc_now


router = APIRouter(prefix="/dev", tags=["dev"])


class SampleIngestRequest(BaseModel):
    bpm: int = Field(..., gt=0, description="Heart rate in BPM")
    timestamp: AwareDatetime | None = Field(None, description="Sample time with a UTC offset; defaults to now.")
    source: str = Field("manual", description="Origin label stored with the record.")


class PermissionsRequest(BaseModel):
    granted: bool = Field(True, description="Grant (true) or revoke (false) every required permission.")
    available: bool | None = Field(None, description="Optionally flip store availability.")


class CompanionPushRequest(BaseModel):
    bpm: int | None = Field(None, description="Heart rate pushed by the device (omit to simulate a bad payload).")
    timestamp_ms: int | None = Field(None, description="Epoch milliseconds; defaults to now.")


class CompanionNodeRequest(BaseModel):
    node_id: str
    capabilities: list[str] = Field(default_factory=lambda: ["heart_rate_monitoring"])


def _now_millis() -> int:
    return int(utc_now().timestamp() * 1000)


def _memory_store(request: Request) -> InMemoryHealthStore:
    store = request.app.state.store
    if not isinstance(store, InMemoryHealthStore):
        raise HTTPException(status_code=404, detail="Store seeding is only available for the in-memory store.")
    return store


def _loopback(request: Request) -> LoopbackTransport:
    transport = request.app.state.transport
    if not isinstance(transport, LoopbackTransport):
        raise HTTPException(status_code=404, detail="Companion simulation needs the loopback transport.")
    return transport


@router.post("/store/samples")
async def ingest_sample(body: SampleIngestRequest, request: Request):
    """Add one heart-rate record to the in-memory store."""

    store = _memory_store(request)
    sample = RecordSample(bpm=body.bpm, time=body.timestamp or utc_now())
    store.insert(HeartRateRecord(origin=body.source, samples=[sample]))
    return {"status": "ok", "bpm": sample.bpm, "timestamp": sample.time}


@router.post("/store/permissions")
async def set_permissions(body: PermissionsRequest, request: Request):
    store = _memory_store(request)
    if body.granted:
        store.grant(*REQUIRED_PERMISSIONS)
    else:
        store.revoke(*REQUIRED_PERMISSIONS)
    if body.available is not None:
        store.available = body.available
    return {"status": "ok", "granted": body.granted, "available": store.available}


@router.post("/companion/nodes")
async def add_companion_node(body: CompanionNodeRequest, request: Request):
    _loopback(request).add_node(body.node_id, *body.capabilities)
    return {"status": "ok", "node_id": body.node_id}


@router.post("/companion/push")
async def push_from_companion(body: CompanionPushRequest, request: Request):
    """Deliver a heart-rate data item as if the wearable had synced it."""

    data: dict[str, int] = {KEY_TIMESTAMP: _now_millis() if body.timestamp_ms is None else body.timestamp_ms}
    if body.bpm is not None:
        data[KEY_BPM] = body.bpm
    _loopback(request).deliver(DataEvent(path=PATH_HEART_RATE, data=data))
    return {"status": "ok", "data": data}


__all__ = ["router"]
