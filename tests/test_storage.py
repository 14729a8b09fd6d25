from datetime import datetime, timedelta, timezone

import pytest

from hubstatus.storage import Database, ServiceStatusRecord, StorageError, SystemMetric


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class StopAfter:
    def __init__(self, rounds):
        self.rounds = rounds
        self.calls = 0
        self.timeouts = []

    def wait(self, timeout=None):
        self.calls += 1
        self.timeouts.append(timeout)
        return self.calls > self.rounds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db(clock, tmp_path):
    database = Database(tmp_path / "status.db", clock=clock)
    yield database
    database.close()


def test_metrics_history_is_oldest_first(db, clock):
    db.bulk_insert([SystemMetric("cpu", 10.0)], [])
    clock.advance(seconds=5)
    db.bulk_insert([SystemMetric("cpu", 20.0), SystemMetric("memory", 50.0)], [])
    history = db.system_metrics_history("cpu", timedelta(hours=1))
    assert [m.value for m in history] == [10.0, 20.0]
    assert history[0].timestamp < history[1].timestamp
    assert all(m.metric_type == "cpu" for m in history)


def test_history_respects_duration(db, clock):
    db.insert_system_metric("cpu", 1.0)
    clock.advance(hours=2)
    db.insert_system_metric("cpu", 2.0)
    assert [m.value for m in db.system_metrics_history("cpu", timedelta(hours=1))] == [2.0]


def test_service_history_is_newest_first(db, clock):
    db.insert_service_status("docker_web", "UP", "")
    clock.advance(seconds=5)
    db.insert_service_status("docker_web", "DOWN", "unhealthy")
    db.insert_service_status("docker_api", "UP", "")
    history = db.service_status_history("docker_web", timedelta(hours=1))
    assert [(s.status, s.details) for s in history] == [("DOWN", "unhealthy"), ("UP", "")]
    assert history[0].timestamp == clock.now


def test_latest_service_statuses(db, clock):
    db.bulk_insert([], [ServiceStatusRecord("haproxy_web", "UP"), ServiceStatusRecord("docker_db", "UP")])
    clock.advance(seconds=5)
    db.bulk_insert([], [ServiceStatusRecord("haproxy_web", "DOWN")])
    latest = db.latest_service_statuses()
    assert set(latest) == {"haproxy_web", "docker_db"}
    assert latest["haproxy_web"].status == "DOWN"
    assert latest["docker_db"].status == "UP"


def test_bulk_insert_rolls_back_on_failure(db):
    with pytest.raises(StorageError, match="failed to insert status"):
        db.bulk_insert([SystemMetric("cpu", 5.0)], [ServiceStatusRecord("svc", None)])
    assert db.system_metrics_history("cpu", timedelta(hours=1)) == []
    assert db.latest_service_statuses() == {}


def test_cleanup_removes_only_old_rows(db, clock):
    db.insert_system_metric("cpu", 1.0)
    db.insert_service_status("svc", "UP", "")
    clock.advance(days=8)
    db.insert_system_metric("cpu", 2.0)
    assert db.cleanup_old_data(timedelta(days=7)) == 2
    assert [m.value for m in db.system_metrics_history("cpu", timedelta(days=30))] == [2.0]
    assert db.service_status_history("svc", timedelta(days=30)) == []


def test_cleanup_loop_runs_until_stopped(db, clock):
    db.insert_system_metric("cpu", 1.0)
    clock.advance(days=8)
    stop = StopAfter(rounds=2)
    db.run_cleanup_loop(stop, timedelta(seconds=30))
    assert stop.calls == 3
    assert stop.timeouts == [30.0, 30.0, 30.0]
    assert db.system_metrics_history("cpu", timedelta(days=30)) == []


def test_cleanup_loop_returns_at_once_when_stopped(db, clock):
    db.insert_system_metric("cpu", 1.0)
    clock.advance(days=8)
    db.run_cleanup_loop(StopAfter(rounds=0), timedelta(seconds=30))
    assert len(db.system_metrics_history("cpu", timedelta(days=30))) == 1


def test_size_and_ping(db):
    db.ping()
    size = db.database_size()
    assert size > 0
    db.bulk_insert([SystemMetric("cpu", float(n)) for n in range(2000)], [])
    assert db.database_size() >= size


def test_closed_database_raises(clock):
    database = Database(":memory:", clock=clock)
    database.close()
    with pytest.raises(StorageError):
        database.ping()
    with pytest.raises(StorageError):
        database.database_size()


def test_data_survives_reopen(tmp_path, clock):
    path = tmp_path / "persist.db"
    with Database(path, clock=clock) as first:
        first.insert_service_status("svc", "UP", "fine")
    with Database(path, clock=clock) as second:
        latest = second.latest_service_statuses()
    assert latest["svc"].details == "fine"
    assert latest["svc"].timestamp == clock.now


def test_open_failure_raises(tmp_path):
    with pytest.raises(StorageError):
        Database(tmp_path / "missing" / "dir" / "x.db")