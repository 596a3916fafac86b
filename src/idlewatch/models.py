"""Data models for idlewatch."""

from dataclasses import dataclass, field
from enum import Enum


class InstanceStatus(Enum):
    """Activity classification of a monitored process."""

    ACTIVE = "active"
    IDLE = "idle"


@dataclass(slots=True, frozen=True)
class ActivityMetrics:
    """Immutable point-in-time sample of a process's resource counters."""

    cpu_time: int  # Cumulative user + system ticks
    read_bytes: int  # rchar
    write_bytes: int  # wchar
    active_connections: int
    timestamp: float  # POSIX seconds
    cpu_percent: float | None = None  # Ticks per second over the last interval
    memory_rss: int | None = None  # Bytes

    @classmethod
    def zero(cls, timestamp: float) -> "ActivityMetrics":
        """Return an empty sample used for freshly discovered processes."""
        return cls(
            cpu_time=0,
            read_bytes=0,
            write_bytes=0,
            active_connections=0,
            timestamp=timestamp,
        )


@dataclass(slots=True)
class ProcessRecord:
    """Identity and current classification of one monitored process."""

    pid: int
    tty: str
    cwd: str
    start_time: float
    status: InstanceStatus = InstanceStatus.IDLE
    last_status_change: float = 0.0
    metrics: ActivityMetrics = field(default_factory=lambda: ActivityMetrics.zero(0.0))


@dataclass(slots=True, frozen=True)
class StatusTransition:
    """A status flip observed between two consecutive refresh cycles."""

    old_status: InstanceStatus
    new_status: InstanceStatus
    record: ProcessRecord


@dataclass(slots=True)
class MonitorSnapshot:
    """Result of one refresh cycle."""

    timestamp: float
    records: list[ProcessRecord]
    transitions: list[StatusTransition] = field(default_factory=list)

    @property
    def active_count(self) -> int:
        return sum(1 for r in self.records if r.status is InstanceStatus.ACTIVE)

    @property
    def idle_count(self) -> int:
        return sum(1 for r in self.records if r.status is InstanceStatus.IDLE)
