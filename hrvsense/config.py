"""Runtime settings: optional YAML file, overridden by environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Union

import yaml
from dotenv import load_dotenv

load_dotenv()

_ENV_KEYS = {
    "host": "HOST",
    "port": "PORT",
    "log_level": "LOG_LEVEL",
    "health_store": "HRVSENSE_HEALTH_STORE",
    "companion_transport": "HRVSENSE_COMPANION_TRANSPORT",
    "companion_nodes": "HRVSENSE_COMPANION_NODES",
    "hours_back": "HRVSENSE_HOURS_BACK",
    "stream_interval_minutes": "HRVSENSE_STREAM_INTERVAL_MINUTES",
}


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 8765
    log_level: str = "info"
    health_store: str = "memory"
    companion_transport: str = "loopback"
    # Node ids pre-registered on the loopback transport.
    companion_nodes: list[str] = field(default_factory=list)
    hours_back: float = 24.0
    stream_interval_minutes: float = 5.0

    def __post_init__(self) -> None:
        self.port = _coerce(int, "port", self.port)
        self.hours_back = _coerce(float, "hours_back", self.hours_back)
        self.stream_interval_minutes = _coerce(float, "stream_interval_minutes", self.stream_interval_minutes)
        if isinstance(self.companion_nodes, str):
            self.companion_nodes = [node.strip() for node in self.companion_nodes.split(",") if node.strip()]
        else:
            self.companion_nodes = [str(node) for node in self.companion_nodes or []]
        self.log_level = str(self.log_level).lower()
        if self.hours_back <= 0:
            raise ValueError("hours_back must be positive")
        if self.stream_interval_minutes <= 0:
            raise ValueError("stream_interval_minutes must be positive")


def _coerce(kind: type, key: str, raw: Any) -> Any:
    try:
        return kind(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {key}: {raw!r}") from exc


def _load_file(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    known = {f.name for f in fields(Settings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")
    return data


def load_settings(
    path: Union[str, Path, None] = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    config_path = path or environ.get("HRVSENSE_CONFIG")
    if config_path:
        values.update(_load_file(Path(config_path)))

    for name, env_key in _ENV_KEYS.items():
        if env_key in environ:
            values[name] = environ[env_key]

    return Settings(**values)


__all__ = ["Settings", "load_settings"]
