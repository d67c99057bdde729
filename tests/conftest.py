import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from hrvsense.companion import CAPABILITY_HEART_RATE, CompanionChannel, LoopbackTransport
from hrvsense.health import (
    REQUIRED_PERMISSIONS,
    HealthStoreGateway,
    HeartRateRecord,
    InMemoryHealthStore,
    RecordSample,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingStore(InMemoryHealthStore):
    """In-memory store that counts reads and can be told to fail."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.read_calls = 0
        self.fail_reads: Exception | None = None
        self.fail_availability: Exception | None = None
        self.fail_permissions: Exception | None = None

    async def check_availability(self) -> bool:
        if self.fail_availability:
            raise self.fail_availability
        return await super().check_availability()

    async def granted_permissions(self) -> set[str]:
        if self.fail_permissions:
            raise self.fail_permissions
        return await super().granted_permissions()

    async def read_records(self, record_type, time_range):
        self.read_calls += 1
        if self.fail_reads:
            raise self.fail_reads
        return await super().read_records(record_type, time_range)


class RecordingTransport(LoopbackTransport):
    """Loopback transport that counts listener removals and can fail sends."""

    def __init__(self) -> None:
        super().__init__()
        self.remove_calls = 0
        self.failing_nodes: set[str] = set()
        self.fail_put: Exception | None = None
        self.fail_add_listener: Exception | None = None
        self.fail_find: Exception | None = None

    async def find_nodes(self, capability: str) -> set[str]:
        if self.fail_find:
            raise self.fail_find
        return await super().find_nodes(capability)

    async def send_message(self, node_id: str, path: str, payload: bytes) -> None:
        if node_id in self.failing_nodes:
            raise ConnectionError(f"send to {node_id} failed")
        await super().send_message(node_id, path, payload)

    async def put_data(self, path, data) -> None:
        if self.fail_put:
            raise self.fail_put
        await super().put_data(path, data)

    def add_data_listener(self, listener) -> None:
        if self.fail_add_listener:
            raise self.fail_add_listener
        super().add_data_listener(listener)

    def remove_data_listener(self, listener) -> None:
        self.remove_calls += 1
        super().remove_data_listener(listener)


def heart_rate_record(origin: str, *points: tuple[int, datetime]) -> HeartRateRecord:
    return HeartRateRecord(origin=origin, samples=[RecordSample(bpm=bpm, time=time) for bpm, time in points])


async def next_item(subscription, timeout: float = 1.0):
    return await asyncio.wait_for(subscription.__anext__(), timeout)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore(available=True, granted=REQUIRED_PERMISSIONS)


@pytest.fixture
def gateway(store: RecordingStore, clock: Clock) -> HealthStoreGateway:
    return HealthStoreGateway(store, clock=clock)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def paired_transport(transport: RecordingTransport) -> RecordingTransport:
    transport.add_node("watch-1", CAPABILITY_HEART_RATE)
    return transport


@pytest.fixture
def channel(transport: RecordingTransport, clock: Clock) -> CompanionChannel:
    return CompanionChannel(transport, clock=clock)
