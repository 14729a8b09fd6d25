"""Plain data records shared by the collector, the web layer and the templates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ServiceStatus:
    """State of one monitored service as shown on the dashboard."""

    name: str
    status: str
    healthy: bool = False
    last_change: str = ""
    uptime: str = ""
    details: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; ``details`` is left out when empty."""
        data: dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "healthy": self.healthy,
            "last_change": self.last_change,
            "uptime": self.uptime,
        }
        if self.details:
            data["details"] = self.details
        return data


@dataclass
class SystemMetrics:
    """A snapshot of host and dependency health.

    ``uptime`` is the host uptime in seconds; byte counts are plain integers
    and network figures are rates in bytes per second.
    """

    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    memory_used: int = 0
    memory_total: int = 0
    disk_percent: float = 0.0
    disk_used: int = 0
    disk_total: int = 0
    network_in: float = 0.0
    network_out: float = 0.0
    uptime: float = 0.0
    database_size: int = 0
    database_connected: bool = False
    haproxy_connected: bool = False
    docker_connected: bool = False
    pi5_connected: bool = False
    pi52_connected: bool = False