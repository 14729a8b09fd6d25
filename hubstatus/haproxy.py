"""Reading backend statistics from the HAProxy admin socket."""

from __future__ import annotations

import csv
import socket
from dataclasses import dataclass, field

_INT_COLUMNS = {
    "check_code": "check_code",
    "check_duration": "check_duration",
    "lastchg": "last_change",
    "downtime": "downtime",
    "rate": "conn_rate",
    "rate_max": "conn_rate_max",
    "stot": "session_rate",
    "scur": "session_cur",
    "smax": "session_max",
    "bin": "bytes_in",
    "bout": "bytes_out",
}


class HAProxyError(Exception):
    """Raised when the statistics cannot be fetched or parsed."""


@dataclass
class Backend:
    """One ``BACKEND`` row of ``show stat``."""

    name: str
    status: str
    active: bool = False
    check_status: str = ""
    check_code: int = 0
    check_duration: int = 0
    last_change: int = 0
    downtime: int = 0
    conn_rate: int = 0
    conn_rate_max: int = 0
    session_rate: int = 0
    session_cur: int = 0
    session_max: int = 0
    bytes_in: int = 0
    bytes_out: int = 0


@dataclass
class Stats:
    """All backends reported by HAProxy."""

    backends: list[Backend] = field(default_factory=list)


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _data_lines(text: str) -> tuple[str | None, list[str]]:
    """Split output into the header line and the data lines.

    HAProxy prefixes its header with ``#``; any later line starting with
    ``#`` is a comment. Blank lines are ignored.
    """
    header: str | None = None
    rows: list[str] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        if header is None:
            header = line[1:] if line.startswith("#") else line
        elif not line.startswith("#"):
            rows.append(line)
    return header, rows


def parse_stats(text: str) -> Stats:
    """Parse the CSV output of ``show stat`` into backend records."""
    header_line, row_lines = _data_lines(text)
    if header_line is None:
        raise HAProxyError("failed to read header: no data")

    header = next(csv.reader([header_line]))
    columns = {name.strip(): position for position, name in enumerate(header)}
    width = len(header)

    stats = Stats()
    for number, record in enumerate(csv.reader(row_lines), start=1):
        if len(record) != width:
            raise HAProxyError(
                f"failed to read row {number}: wrong number of fields ({len(record)} != {width})"
            )

        def column(name: str) -> str:
            position = columns.get(name)
            return record[position] if position is not None else ""

        if column("svname") != "BACKEND":
            continue

        status = column("status")
        backend = Backend(name=column("pxname"), status=status, active=status == "UP")
        backend.check_status = column("check_status")
        for source, attribute in _INT_COLUMNS.items():
            value = column(source)
            if value:
                setattr(backend, attribute, _to_int(value))
        stats.backends.append(backend)
    return stats


class HAProxyClient:
    """Client for the HAProxy admin Unix socket."""

    def __init__(self, socket_path: str, timeout: float = 5.0) -> None:
        self.socket_path = socket_path
        self.timeout = timeout

    def get_stats(self) -> Stats:
        """Send ``show stat`` and parse the reply."""
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(self.timeout)
            try:
                sock.connect(self.socket_path)
            except OSError as exc:
                raise HAProxyError(f"failed to connect to HAProxy socket: {exc}") from exc
            try:
                sock.sendall(b"show stat\n")
            except OSError as exc:
                raise HAProxyError(f"failed to send command: {exc}") from exc
            chunks = []
            try:
                while chunk := sock.recv(65536):
                    chunks.append(chunk)
            except OSError as exc:
                raise HAProxyError(f"failed to read response: {exc}") from exc
        return parse_stats(b"".join(chunks).decode("utf-8", errors="replace"))

    def is_healthy(self) -> bool:
        """True when the socket answers and no backend is down."""
        try:
            stats = self.get_stats()
        except HAProxyError:
            return False
        return all(backend.active for backend in stats.backends)