"""Application package: health monitor and HTTP routers."""

from .api import build_monitor, create_app
from .monitor import HealthMonitor, MonitorSnapshot

__all__ = [
    "HealthMonitor",
    "MonitorSnapshot",
    "build_monitor",
    "create_app",
]
