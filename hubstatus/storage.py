"""Persistent history of system metrics and service states."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from os import PathLike
from typing import Protocol

log = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
DEFAULT_RETENTION = timedelta(days=7)
DEFAULT_CLEANUP_INTERVAL = timedelta(hours=24)

_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS service_status (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        service VARCHAR(255) NOT NULL,
        status VARCHAR(50) NOT NULL,
        timestamp TEXT NOT NULL,
        details TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS system_metrics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        metric_type VARCHAR(50) NOT NULL,
        value DOUBLE PRECISION NOT NULL,
        timestamp TEXT NOT NULL
    )""",
    "CREATE INDEX IF NOT EXISTS idx_service_status_timestamp ON service_status(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_service_status_service ON service_status(service, timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_system_metrics_timestamp ON system_metrics(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_system_metrics_type ON system_metrics(metric_type, timestamp)",
)

_INSERT_METRIC = "INSERT INTO system_metrics (metric_type, value, timestamp) VALUES (?, ?, ?)"
_INSERT_STATUS = "INSERT INTO service_status (service, status, details, timestamp) VALUES (?, ?, ?, ?)"


class StorageError(Exception):
    """Raised when a database operation fails."""


class _Waitable(Protocol):
    def wait(self, timeout: float | None = None) -> bool: ...


@dataclass
class ServiceStatusRecord:
    """One stored service state."""

    service: str
    status: str
    details: str = ""
    id: int = 0
    timestamp: datetime | None = None


@dataclass
class SystemMetric:
    """One stored metric sample."""

    metric_type: str
    value: float
    id: int = 0
    timestamp: datetime | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _encode(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(_TIMESTAMP_FORMAT)


def _decode(text: str) -> datetime:
    return datetime.strptime(text, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _status_from_row(row: tuple) -> ServiceStatusRecord:
    record_id, service, status, stamp, details = row
    return ServiceStatusRecord(
        service=service, status=status, details=details or "", id=record_id, timestamp=_decode(stamp)
    )


class Database:
    """SQLite-backed store; safe to share between threads."""

    def __init__(self, path: str | PathLike[str], clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"failed to open database: {exc}") from exc
        try:
            with self._conn:
                for statement in _SCHEMA:
                    self._conn.execute(statement)
        except sqlite3.Error as exc:
            self._conn.close()
            raise StorageError(f"failed to create tables: {exc}") from exc

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _translate(self, message: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise StorageError(f"{message}: {exc}") from exc

    def _now(self) -> str:
        return _encode(self._clock())

    def insert_service_status(self, service: str, status: str, details: str) -> None:
        """Store a single service state."""
        with self._lock, self._translate("failed to insert status"), self._conn:
            self._conn.execute(_INSERT_STATUS, (service, status, details, self._now()))

    def insert_system_metric(self, metric_type: str, value: float) -> None:
        """Store a single metric sample."""
        with self._lock, self._translate("failed to insert metric"), self._conn:
            self._conn.execute(_INSERT_METRIC, (metric_type, value, self._now()))

    def bulk_insert(
        self, metrics: Iterable[SystemMetric], statuses: Iterable[ServiceStatusRecord]
    ) -> None:
        """Store metrics and statuses in one transaction; nothing is kept on failure."""
        with self._lock, self._translate("failed to commit transaction"), self._conn:
            now = self._now()
            with self._translate("failed to insert metric"):
                self._conn.executemany(
                    _INSERT_METRIC, [(m.metric_type, m.value, now) for m in metrics]
                )
            with self._translate("failed to insert status"):
                self._conn.executemany(
                    _INSERT_STATUS, [(s.service, s.status, s.details, now) for s in statuses]
                )

    def service_status_history(self, service: str, duration: timedelta) -> list[ServiceStatusRecord]:
        """States of ``service`` within ``duration``, newest first."""
        since = _encode(self._clock() - duration)
        with self._lock, self._translate("failed to query service status"):
            rows = self._conn.execute(
                "SELECT id, service, status, timestamp, details FROM service_status "
                "WHERE service = ? AND timestamp >= ? ORDER BY timestamp DESC, id DESC",
                (service, since),
            ).fetchall()
        return [_status_from_row(row) for row in rows]

    def system_metrics_history(self, metric_type: str, duration: timedelta) -> list[SystemMetric]:
        """Samples of ``metric_type`` within ``duration``, oldest first."""
        since = _encode(self._clock() - duration)
        with self._lock, self._translate("failed to query system metrics"):
            rows = self._conn.execute(
                "SELECT id, metric_type, value, timestamp FROM system_metrics "
                "WHERE metric_type = ? AND timestamp >= ? ORDER BY timestamp ASC, id ASC",
                (metric_type, since),
            ).fetchall()
        return [
            SystemMetric(metric_type=kind, value=value, id=record_id, timestamp=_decode(stamp))
            for record_id, kind, value, stamp in rows
        ]

    def latest_service_statuses(self) -> dict[str, ServiceStatusRecord]:
        """The most recent state of every service, keyed by service name."""
        query = """
            WITH latest AS (
                SELECT service, MAX(timestamp) AS max_timestamp
                FROM service_status
                GROUP BY service
            )
            SELECT s.id, s.service, s.status, s.timestamp, s.details
            FROM service_status s
            INNER JOIN latest l ON s.service = l.service AND s.timestamp = l.max_timestamp
            ORDER BY s.id
        """
        with self._lock, self._translate("failed to query latest statuses"):
            rows = self._conn.execute(query).fetchall()
        return {record.service: record for record in map(_status_from_row, rows)}

    def cleanup_old_data(self, retention: timedelta = DEFAULT_RETENTION) -> int:
        """Delete rows older than ``retention``; return how many were removed."""
        cutoff = _encode(self._clock() - retention)
        removed = 0
        with self._lock, self._translate("cleanup failed"), self._conn:
            for table in ("service_status", "system_metrics"):
                cursor = self._conn.execute(f"DELETE FROM {table} WHERE timestamp < ?", (cutoff,))
                removed += cursor.rowcount
        return removed

    def run_cleanup_loop(
        self, stop_event: _Waitable, interval: timedelta = DEFAULT_CLEANUP_INTERVAL
    ) -> None:
        """Run :meth:`cleanup_old_data` every ``interval`` until ``stop_event`` is set."""
        while not stop_event.wait(interval.total_seconds()):
            try:
                self.cleanup_old_data()
            except StorageError as exc:
                log.error("cleanup error: %s", exc)

    def ping(self) -> None:
        """Raise :class:`StorageError` unless the database answers."""
        with self._lock, self._translate("ping failed"):
            self._conn.execute("SELECT 1").fetchone()

    def database_size(self) -> int:
        """Size of the database in bytes."""
        with self._lock, self._translate("failed to get database size"):
            (page_count,) = self._conn.execute("PRAGMA page_count").fetchone()
            (page_size,) = self._conn.execute("PRAGMA page_size").fetchone()
        return page_count * page_size

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self._conn.close()