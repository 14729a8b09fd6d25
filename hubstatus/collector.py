"""Periodic collection of host, database, HAProxy and Docker health."""

from __future__ import annotations

import dataclasses
import http.client
import json
import logging
import os
import re
import socket
import subprocess
import threading
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol
from urllib.parse import quote, urlsplit

import psutil

from hubstatus.haproxy import HAProxyClient, HAProxyError
from hubstatus.models import ServiceStatus, SystemMetrics
from hubstatus.storage import Database, ServiceStatusRecord, StorageError, SystemMetric

log = logging.getLogger(__name__)

PI5_HOST = "192.168.2.136"
PI52_HOST = "192.168.2.135"
DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"
DEFAULT_INTERVAL = 5.0

_RFC3339 = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<zone>Z|z|[+-]\d{2}:\d{2})$"
)


def format_duration(seconds: float) -> str:
    """Render a non-negative duration as ``Xd Yh Zm``, ``Yh Zm`` or ``Zm``."""
    total_hours = int(seconds / 3600)
    days = total_hours // 24
    hours = total_hours % 24
    minutes = int(seconds / 60) % 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def network_rate(current: float, previous: float, elapsed: float) -> float:
    """Bytes per second between two counter readings; never negative."""
    if elapsed <= 0:
        return 0.0
    return max(0.0, (current - previous) / elapsed)


def ping_host(host: str) -> bool:
    """Send one ICMP echo with a two second wait; True if it was answered."""
    command = ["ping", "-c", "1", "-W", "2", host]
    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        log.warning("Ping to %s failed: %s", host, exc)
        return False
    if result.returncode != 0:
        output = (result.stdout or b"").decode("utf-8", errors="replace")
        log.warning("Ping to %s failed: exit status %d, output: %s", host, result.returncode, output)
        return False
    return True


def _parse_rfc3339(text: str) -> datetime | None:
    match = _RFC3339.match(text)
    if match is None:
        return None
    fraction = (match["fraction"] or "0")[:6].ljust(6, "0")
    zone = match["zone"]
    zone = "+00:00" if zone in ("Z", "z") else zone
    try:
        return datetime.fromisoformat(f"{match['base']}.{fraction}{zone}")
    except ValueError:
        return None


class DockerError(Exception):
    """Raised when the Docker Engine API cannot be reached or answers with an error."""


class _UnixHTTPConnection(http.client.HTTPConnection):
    def __init__(self, path: str, timeout: float) -> None:
        super().__init__("localhost", timeout=timeout)
        self._socket_path = path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(self._socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


class DockerClient:
    """Minimal read-only client for the Docker Engine HTTP API."""

    def __init__(self, host: str = DEFAULT_DOCKER_HOST, timeout: float = 10.0) -> None:
        parts = urlsplit(host)
        self.timeout = timeout
        self._socket_path: str | None = None
        self._address: tuple[str, int] | None = None
        if parts.scheme == "unix" and parts.path:
            self._socket_path = parts.path
        elif parts.scheme in ("tcp", "http") and parts.hostname:
            self._address = (parts.hostname, parts.port or 2375)
        else:
            raise DockerError(f"unsupported Docker host: {host!r}")

    @classmethod
    def from_env(cls) -> DockerClient:
        """Build a client from ``DOCKER_HOST``, falling back to the local socket."""
        return cls(os.environ.get("DOCKER_HOST") or DEFAULT_DOCKER_HOST)

    def _connection(self) -> http.client.HTTPConnection:
        if self._socket_path is not None:
            return _UnixHTTPConnection(self._socket_path, self.timeout)
        assert self._address is not None
        host, port = self._address
        return http.client.HTTPConnection(host, port, timeout=self.timeout)

    def _get(self, path: str) -> Any:
        connection = self._connection()
        try:
            connection.request("GET", path, headers={"Accept": "application/json"})
            response = connection.getresponse()
            body = response.read()
        except (OSError, http.client.HTTPException) as exc:
            raise DockerError(f"request {path} failed: {exc}") from exc
        finally:
            connection.close()
        if response.status >= 300:
            message = body.decode("utf-8", errors="replace").strip()
            raise DockerError(f"request {path} returned {response.status}: {message}")
        try:
            return json.loads(body)
        except ValueError as exc:
            raise DockerError(f"invalid JSON from {path}: {exc}") from exc

    def list_containers(self, all: bool = False) -> list[dict[str, Any]]:
        """Containers known to the engine; stopped ones too when ``all`` is set."""
        path = "/containers/json" + ("?all=1" if all else "")
        return self._get(path)

    def inspect_container(self, container_id: str) -> dict[str, Any]:
        """Low-level details of one container."""
        return self._get(f"/containers/{quote(container_id, safe='')}/json")


class _Waitable(Protocol):
    def wait(self, timeout: float | None = None) -> bool: ...


_UNSET: Any = object()


class Collector:
    """Gathers a metrics snapshot periodically and records it in the database."""

    def __init__(
        self,
        db: Database,
        haproxy: HAProxyClient,
        docker: DockerClient | None = _UNSET,
        *,
        ping: Callable[[str], bool] = ping_host,
        interval: float = DEFAULT_INTERVAL,
        cpu_interval: float | None = 1.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if docker is _UNSET:
            try:
                docker = DockerClient.from_env()
            except DockerError as exc:
                log.warning("Failed to create Docker client: %s. Docker monitoring disabled.", exc)
                docker = None
        self._db = db
        self._haproxy = haproxy
        self._docker = docker
        self._ping = ping
        self._interval = interval
        self._cpu_interval = cpu_interval
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        self._current = SystemMetrics()
        self._docker_status: list[ServiceStatus] = []
        self._last_network_in = 0.0
        self._last_network_out = 0.0
        self._last_collect: float | None = None

    def start(self, stop_event: _Waitable) -> None:
        """Collect now and then every interval until ``stop_event`` is set."""
        self.collect()
        while not stop_event.wait(self._interval):
            self.collect()

    def collect(self) -> SystemMetrics:
        """Take one snapshot, publish it and store it; return the snapshot."""
        metrics = SystemMetrics()
        samples: list[SystemMetric] = []
        statuses: list[ServiceStatusRecord] = []

        def sample(kind: str, value: float) -> None:
            samples.append(SystemMetric(metric_type=kind, value=float(value)))

        try:
            metrics.cpu_percent = float(psutil.cpu_percent(interval=self._cpu_interval))
            sample("cpu", metrics.cpu_percent)
        except (psutil.Error, OSError) as exc:
            log.error("Error getting CPU stats: %s", exc)

        try:
            memory = psutil.virtual_memory()
            metrics.memory_percent = float(memory.percent)
            metrics.memory_used = int(memory.used)
            metrics.memory_total = int(memory.total)
            sample("memory", metrics.memory_percent)
            sample("memory_used", metrics.memory_used)
            sample("memory_total", metrics.memory_total)
        except (psutil.Error, OSError) as exc:
            log.error("Error getting memory stats: %s", exc)

        try:
            disk = psutil.disk_usage("/")
            metrics.disk_percent = float(disk.percent)
            metrics.disk_used = int(disk.used)
            metrics.disk_total = int(disk.total)
            sample("disk", metrics.disk_percent)
            sample("disk_used", metrics.disk_used)
            sample("disk_total", metrics.disk_total)
        except (psutil.Error, OSError) as exc:
            log.error("Error getting disk stats: %s", exc)

        self._collect_network(metrics, sample)

        try:
            metrics.uptime = float(int(time.time() - psutil.boot_time()))
        except (psutil.Error, OSError) as exc:
            log.error("Error getting uptime: %s", exc)

        self._collect_database(metrics, sample)
        self._collect_haproxy(metrics, statuses)

        if self._docker is not None:
            self._collect_docker(statuses)
            metrics.docker_connected = True

        metrics.pi5_connected = self._ping(PI5_HOST)
        metrics.pi52_connected = self._ping(PI52_HOST)

        with self._lock:
            self._current = metrics
            self._last_collect = self._clock()

        try:
            self._db.bulk_insert(samples, statuses)
        except StorageError as exc:
            log.error("Failed to perform bulk insert: %s", exc)
        return dataclasses.replace(metrics)

    def _collect_network(self, metrics: SystemMetrics, sample: Callable[[str, float], None]) -> None:
        try:
            counters = psutil.net_io_counters()
        except (psutil.Error, OSError) as exc:
            log.error("Error getting network stats: %s", exc)
            return
        if counters is None:
            return
        current_in = float(counters.bytes_recv)
        current_out = float(counters.bytes_sent)
        with self._lock:
            last_collect = self._last_collect
            previous_in, previous_out = self._last_network_in, self._last_network_out
            self._last_network_in, self._last_network_out = current_in, current_out
        if last_collect is not None:
            elapsed = self._clock() - last_collect
            metrics.network_in = network_rate(current_in, previous_in, elapsed)
            metrics.network_out = network_rate(current_out, previous_out, elapsed)
        sample("network_in_rate", metrics.network_in)
        sample("network_out_rate", metrics.network_out)

    def _collect_database(self, metrics: SystemMetrics, sample: Callable[[str, float], None]) -> None:
        try:
            size = self._db.database_size()
        except StorageError as exc:
            log.error("Error getting database size: %s", exc)
            try:
                self._db.ping()
            except StorageError:
                metrics.database_connected = False
            else:
                metrics.database_connected = True
            return
        metrics.database_size = size
        metrics.database_connected = True
        sample("database_size", size)

    def _collect_haproxy(self, metrics: SystemMetrics, statuses: list[ServiceStatusRecord]) -> None:
        try:
            stats = self._haproxy.get_stats()
        except HAProxyError as exc:
            metrics.haproxy_connected = False
            log.error("Error getting HAProxy stats: %s", exc)
            return
        metrics.haproxy_connected = True
        for backend in stats.backends:
            statuses.append(
                ServiceStatusRecord(
                    service=f"haproxy_{backend.name}",
                    status="UP" if backend.active else "DOWN",
                    details="",
                )
            )

    def _collect_docker(self, statuses: list[ServiceStatusRecord]) -> None:
        assert self._docker is not None
        try:
            containers = self._docker.list_containers(all=True)
        except DockerError as exc:
            log.error("Failed to list containers: %s", exc)
            return

        found: list[ServiceStatus] = []
        for container in containers:
            names = container.get("Names") or [""]
            name = names[0].removeprefix("/")
            state = container.get("State", "")
            status = ServiceStatus(name=name, status=state, healthy=state == "running")

            try:
                details = self._docker.inspect_container(container.get("Id", ""))
            except DockerError:
                details = None
            if details is not None:
                self._apply_inspection(status, details.get("State") or {})

            found.append(status)
            statuses.append(
                ServiceStatusRecord(
                    service=f"docker_{name}",
                    status="UP" if status.healthy else "DOWN",
                    details=status.details,
                )
            )

        with self._lock:
            self._docker_status = found

    def _apply_inspection(self, status: ServiceStatus, state: dict[str, Any]) -> None:
        health = state.get("Health")
        if health:
            health_status = health.get("Status", "")
            status.healthy = health_status == "healthy"
            if health_status != "healthy":
                status.details = health_status
        started_at = state.get("StartedAt") or ""
        if started_at:
            started = _parse_rfc3339(started_at)
            if started is not None:
                elapsed: timedelta = self._wall_clock() - started
                status.uptime = format_duration(max(elapsed.total_seconds(), 0.0))

    def current_metrics(self) -> SystemMetrics:
        """A copy of the latest snapshot."""
        with self._lock:
            return dataclasses.replace(self._current)

    def docker_status(self) -> list[ServiceStatus]:
        """Copies of the latest container states."""
        with self._lock:
            return [dataclasses.replace(status) for status in self._docker_status]