"""Tests for idlewatch data models."""

import dataclasses

import pytest

from conftest import make_metrics, make_record

from idlewatch.models import ActivityMetrics, InstanceStatus, MonitorSnapshot, ProcessRecord, StatusTransition


def test_activity_metrics_creation():
    """Test ActivityMetrics dataclass creation."""
    metrics = ActivityMetrics(
        cpu_time=1200,
        read_bytes=5000,
        write_bytes=6000,
        active_connections=3,
        timestamp=10.0,
    )

    assert metrics.cpu_time == 1200
    assert metrics.read_bytes == 5000
    assert metrics.write_bytes == 6000
    assert metrics.active_connections == 3
    assert metrics.timestamp == 10.0
    assert metrics.cpu_percent is None
    assert metrics.memory_rss is None


def test_activity_metrics_is_frozen():
    """Test that ActivityMetrics is immutable (frozen)."""
    metrics = make_metrics(cpu_time=1)

    with pytest.raises(dataclasses.FrozenInstanceError):
        metrics.cpu_time = 999


def test_activity_metrics_zero():
    """A zero sample carries only the timestamp."""
    assert ActivityMetrics.zero(5.0) == make_metrics(timestamp=5.0)


def test_models_use_slots():
    """Test that models use __slots__ for memory efficiency."""
    assert not hasattr(make_metrics(), "__dict__")
    assert not hasattr(make_record(1), "__dict__")


def test_process_record_defaults():
    """A record starts Idle."""
    record = ProcessRecord(pid=1, tty="/dev/pts/0", cwd="/", start_time=0.0)

    assert record.status is InstanceStatus.IDLE
    assert record.metrics.cpu_time == 0


def test_status_values():
    """Test InstanceStatus enum has expected values."""
    assert InstanceStatus.ACTIVE.value == "active"
    assert InstanceStatus.IDLE.value == "idle"
    assert len(list(InstanceStatus)) == 2


def test_snapshot_counts():
    """Snapshot counts active and idle records."""
    records = [
        make_record(1, status=InstanceStatus.ACTIVE),
        make_record(2),
        make_record(3),
    ]
    snapshot = MonitorSnapshot(
        timestamp=0.0,
        records=records,
        transitions=[StatusTransition(InstanceStatus.IDLE, InstanceStatus.ACTIVE, records[0])],
    )

    assert snapshot.active_count == 1
    assert snapshot.idle_count == 2
