"""View data for the dashboard page and the helpers that format it."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hubstatus.models import ServiceStatus

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_UNITS = "KMGTPE"


@dataclass
class SystemStatus:
    """System figures prepared for display; ``uptime`` is already formatted."""

    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    memory_used: int = 0
    memory_total: int = 0
    disk_percent: float = 0.0
    disk_used: int = 0
    disk_total: int = 0
    network_in: float = 0.0
    network_out: float = 0.0
    uptime: str = ""
    database_size: int = 0
    database_connected: bool = False
    haproxy_connected: bool = False
    docker_connected: bool = False
    pi5_connected: bool = False
    pi52_connected: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form used by the status API."""
        return dataclasses.asdict(self)


@dataclass
class DashboardData:
    """Everything the dashboard page shows."""

    services: list[ServiceStatus] = field(default_factory=list)
    system: SystemStatus = field(default_factory=SystemStatus)
    last_updated: datetime = field(default_factory=datetime.now)


def format_bytes(value: float) -> str:
    """Render a byte count with binary units, e.g. ``1.5 KB``."""
    if value < 1024:
        return f"{value:.0f} B"
    divisor, exponent = 1024, 0
    scaled = value / 1024
    while scaled >= 1024 and exponent < len(_UNITS) - 1:
        divisor *= 1024
        exponent += 1
        scaled /= 1024
    return f"{value / divisor:.1f} {_UNITS[exponent]}B"


def progress_bar_color(percent: float) -> str:
    """Colour class for a usage bar: green below 50, yellow below 80, else red."""
    if percent < 50:
        return "bg-green-500"
    if percent < 80:
        return "bg-yellow-500"
    return "bg-red-500"


def status_indicator_class(healthy: bool) -> str:
    """Classes for the round health indicator of a service card."""
    return "bg-green-500 glow-green" if healthy else "bg-red-500 glow-red"


def build_signals(data: DashboardData) -> dict[str, Any]:
    """The client-side signal values that mirror the rendered page."""
    system = data.system
    signals: dict[str, Any] = {
        "cpuPercent": f"{system.cpu_percent:.1f}",
        "memoryPercent": f"{system.memory_percent:.1f}",
        "memoryUsed": format_bytes(system.memory_used),
        "memoryTotal": format_bytes(system.memory_total),
        "diskPercent": f"{system.disk_percent:.1f}",
        "diskUsed": format_bytes(system.disk_used),
        "diskTotal": format_bytes(system.disk_total),
        "networkIn": format_bytes(system.network_in),
        "networkOut": format_bytes(system.network_out),
        "uptime": system.uptime,
        "databaseSize": format_bytes(system.database_size),
        "databaseConnected": system.database_connected,
        "haproxyConnected": system.haproxy_connected,
        "dockerConnected": system.docker_connected,
        "pi5Connected": system.pi5_connected,
        "pi52Connected": system.pi52_connected,
        "lastUpdated": data.last_updated.strftime(TIME_FORMAT),
    }
    for index, service in enumerate(data.services):
        signals[f"service{index}_status"] = service.status
        signals[f"service{index}_healthy"] = service.healthy
        signals[f"service{index}_details"] = service.details
        signals[f"service{index}_uptime"] = service.uptime
    return signals