"""Companion-device transport abstraction with an in-process loopback.

Real deployments bind `CompanionTransport` to the platform's wearable data
layer; the loopback keeps the channel runnable and testable without a device.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

CHANGED = "changed"
DELETED = "deleted"


@dataclass(frozen=True)
class DataEvent:
    path: str
    data: Mapping[str, Any] = field(default_factory=dict)
    kind: str = CHANGED


DataListener = Callable[[list[DataEvent]], None]


@dataclass(frozen=True)
class SentMessage:
    node_id: str
    path: str
    payload: bytes


@runtime_checkable
class CompanionTransport(Protocol):
    """What the channel needs from the wearable message/data layer."""

    async def find_nodes(self, capability: str) -> set[str]: ...

    async def send_message(self, node_id: str, path: str, payload: bytes) -> None: ...

    async def put_data(self, path: str, data: Mapping[str, Any]) -> None: ...

    def add_data_listener(self, listener: DataListener) -> None: ...

    def remove_data_listener(self, listener: DataListener) -> None: ...


class LoopbackTransport:
    """In-process transport: nodes are registered by hand, data is delivered
    synchronously to listeners, and `put_data` echoes back like a synced item."""

    def __init__(self) -> None:
        self._nodes: dict[str, set[str]] = {}
        self._listeners: list[DataListener] = []
        self.sent: list[SentMessage] = []

    def add_node(self, node_id: str, *capabilities: str) -> None:
        self._nodes.setdefault(node_id, set()).update(capabilities)

    def remove_node(self, node_id: str) -> None:
        self._nodes.pop(node_id, None)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def find_nodes(self, capability: str) -> set[str]:
        return {node_id for node_id, caps in self._nodes.items() if capability in caps}

    async def send_message(self, node_id: str, path: str, payload: bytes) -> None:
        if node_id not in self._nodes:
            raise ConnectionError(f"Node {node_id} is not reachable")
        self.sent.append(SentMessage(node_id=node_id, path=path, payload=bytes(payload)))

    async def put_data(self, path: str, data: Mapping[str, Any]) -> None:
        self.deliver(DataEvent(path=path, data=dict(data)))

    def add_data_listener(self, listener: DataListener) -> None:
        self._listeners.append(listener)

    def remove_data_listener(self, listener: DataListener) -> None:
        self._listeners.remove(listener)

    def deliver(self, *events: DataEvent) -> None:
        batch = list(events)
        for listener in list(self._listeners):
            listener(batch)


_transport: CompanionTransport | None = None


def _default_transport_name() -> str:
    return os.getenv("HRVSENSE_COMPANION_TRANSPORT", "loopback").lower()


def get_companion_transport(name: str | None = None) -> CompanionTransport:
    global _transport
    if _transport is not None:
        return _transport

    transport_name = (name or _default_transport_name()).lower()
    if transport_name == "loopback":
        _transport = LoopbackTransport()
        return _transport

    raise ValueError(f"Unsupported companion transport: {transport_name}")


__all__ = [
    "CHANGED",
    "DELETED",
    "CompanionTransport",
    "DataEvent",
    "DataListener",
    "LoopbackTransport",
    "SentMessage",
    "get_companion_transport",
]
