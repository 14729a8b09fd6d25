# hubstatus

A library for watching the health of a small home IoT hub. It collects:

- CPU, memory and disk usage, network throughput and system uptime (via `psutil`)
- the state of every HAProxy backend, read from the HAProxy admin socket
- the state and health of Docker containers, via the Docker Engine HTTP API
- whether the two known hosts on the local network (`192.168.2.136` and
  `192.168.2.135`) answer a ping
- whether the metrics database answers, and its size

Samples are stored in a local SQLite database, and the package can render
the HTML fragments of a status dashboard from a snapshot.

## Installation

```
pip install .
```

## Modules

- `hubstatus.models` — `ServiceStatus` (with `to_dict()`, which leaves out
  empty `details`) and `SystemMetrics`, the snapshot record.
- `hubstatus.haproxy` — `parse_stats(text)` turns the CSV output of
  HAProxy's `show stat` command into a `Stats` object holding one `Backend`
  per `BACKEND` row. `HAProxyClient(socket_path)` sends `show stat` over the
  Unix socket (`get_stats()`), and `is_healthy()` is true when the socket
  answers and every backend is `UP`. Failures raise `HAProxyError`.
- `hubstatus.storage` — `Database(path)` keeps `system_metrics` and
  `service_status` tables. It offers `insert_system_metric`,
  `insert_service_status`, `bulk_insert` (one transaction),
  `system_metrics_history` (oldest first), `service_status_history`
  (newest first), `latest_service_statuses`, `cleanup_old_data`
  (default retention seven days), `run_cleanup_loop(stop_event)` (every
  24 hours by default), `ping`, `database_size` and `close`. It is a
  context manager. Failures raise `StorageError`.
- `hubstatus.collector` — `Collector(db, haproxy)` takes a snapshot with
  `collect()`, records it in the database and keeps the latest one for
  `current_metrics()` and `docker_status()`. `start(stop_event)` collects
  every five seconds until the event is set. Also `DockerClient`
  (`list_containers`, `inspect_container`; `DockerClient.from_env()` reads
  `DOCKER_HOST`), `ping_host`, `network_rate` and `format_duration`.
- `hubstatus.dashboard` — `SystemStatus`, `DashboardData`, `format_bytes`,
  `progress_bar_color`, `status_indicator_class` and `build_signals`, which
  produces the client-side signal values for a dashboard.
- `hubstatus.cards` — `render_system_stats_cards(system)` and
  `render_connection_cards(system)` return HTML fragments.
- `hubstatus.service_cards` — `render_services_cards(services)` returns one
  HTML card per service.

## Example

```python
import threading

from hubstatus.collector import Collector
from hubstatus.dashboard import format_bytes
from hubstatus.haproxy import HAProxyClient
from hubstatus.storage import Database

haproxy = HAProxyClient("/var/run/haproxy/admin.sock")
with Database("statuspage.db") as db:
    collector = Collector(db, haproxy)
    snapshot = collector.collect()
    print(snapshot.cpu_percent, format_bytes(snapshot.memory_used))

    stop = threading.Event()
    threading.Thread(target=collector.start, args=(stop,), daemon=True).start()
```

`format_bytes(1536)` returns `"1.5 KB"`.

## What this package does not do

It has no command to run and no web server: there are no HTTP endpoints,
no JSON status API, no live event stream and no health-check route. It
renders the card fragments of a dashboard but not a complete HTML page.
Wiring the collector, the database and the fragments into a served
dashboard is left to the caller.

## Tests

```
pip install ".[test]"
pytest
```