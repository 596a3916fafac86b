"""Shared test fixtures for idlewatch."""

import pytest

from idlewatch.commands import CommandResult
from idlewatch.models import ActivityMetrics, ProcessRecord


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Notifier that remembers which pids it was asked about."""

    def __init__(self, fail: bool = False) -> None:
        self.pids: list[int] = []
        self.fail = fail

    def notify(self, record: ProcessRecord) -> None:
        self.pids.append(record.pid)
        if self.fail:
            raise RuntimeError("delivery failed")


class FakeRunner:
    """Command runner returning canned results and recording invocations."""

    def __init__(self, installed: set[str] | None = None, results: dict | None = None) -> None:
        self.installed = installed or set()
        self.results = results or {}
        self.calls: list[tuple[str, list[str], float]] = []

    def invoke(self, command: str, args: list[str], timeout: float) -> CommandResult:
        self.calls.append((command, list(args), timeout))
        return self.results.get((command, tuple(args)), CommandResult())

    def available(self, command: str) -> bool:
        return command in self.installed


def make_metrics(cpu_time=0, read_bytes=0, write_bytes=0, timestamp=0.0, **kwargs) -> ActivityMetrics:
    return ActivityMetrics(
        cpu_time=cpu_time,
        read_bytes=read_bytes,
        write_bytes=write_bytes,
        active_connections=kwargs.pop("active_connections", 0),
        timestamp=timestamp,
        **kwargs,
    )


def make_record(pid: int, cwd: str = "/home/user/project", **kwargs) -> ProcessRecord:
    tty = kwargs.pop("tty", "/dev/pts/1")
    start_time = kwargs.pop("start_time", 0.0)
    return ProcessRecord(pid=pid, tty=tty, cwd=cwd, start_time=start_time, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
