"""Companion wearable channel and its transport contract."""

from .channel import (
    CAPABILITY_HEART_RATE,
    COMPANION_SOURCE,
    KEY_BPM,
    KEY_TIMESTAMP,
    PATH_HEART_RATE,
    PATH_START_MONITORING,
    PATH_STOP_MONITORING,
    CompanionChannel,
    parse_heart_rate_payload,
)
from .transport import (
    CompanionTransport,
    DataEvent,
    LoopbackTransport,
    SentMessage,
    get_companion_transport,
)

__all__ = [
    "CAPABILITY_HEART_RATE",
    "COMPANION_SOURCE",
    "CompanionChannel",
    "CompanionTransport",
    "DataEvent",
    "KEY_BPM",
    "KEY_TIMESTAMP",
    "LoopbackTransport",
    "PATH_HEART_RATE",
    "PATH_START_MONITORING",
    "PATH_STOP_MONITORING",
    "SentMessage",
    "get_companion_transport",
    "parse_heart_rate_payload",
]
