"""Process discovery and tracked-set management."""

import logging
import os
import time
from collections.abc import Callable

import psutil

from idlewatch.models import ActivityMetrics, InstanceStatus, ProcessRecord
from idlewatch.sampler import UNAVAILABLE_ERRORS

log = logging.getLogger(__name__)

FULL_SCAN_INTERVAL = 10.0


class ProcessDiscoverer:
    """
    Finds processes whose command name contains the target program name.

    A candidate is reported only when its controlling terminal and working
    directory both resolve. Failures on one candidate never stop enumeration
    of the others.
    """

    def __init__(self, target_name: str, clock: Callable[[], float] = time.time) -> None:
        self._target_name = target_name
        self._clock = clock

    @property
    def target_name(self) -> str:
        return self._target_name

    def matches(self, name: str | None) -> bool:
        return bool(name) and self._target_name in name.strip()

    def scan(self) -> list[ProcessRecord]:
        """Enumerate every process and return records for matching ones."""
        records: list[ProcessRecord] = []
        try:
            for proc in psutil.process_iter(attrs=["pid", "name"]):
                try:
                    if not self.matches(proc.info.get("name")):
                        continue
                    record = self._build_record(proc)
                except UNAVAILABLE_ERRORS:
                    continue
                if record is not None:
                    records.append(record)
        except (OSError, psutil.Error) as exc:
            log.warning("Process enumeration failed: %s", exc)
            return []
        return records

    def inspect(self, pid: int) -> ProcessRecord | None:
        """Re-read identity for a single known pid."""
        try:
            proc = psutil.Process(pid)
            if not self.matches(proc.name()):
                return None
            return self._build_record(proc)
        except UNAVAILABLE_ERRORS:
            return None

    @staticmethod
    def exists(pid: int) -> bool:
        return psutil.pid_exists(pid)

    def _build_record(self, proc: psutil.Process) -> ProcessRecord | None:
        tty = proc.terminal()
        cwd = self._resolve_cwd(proc)
        if not tty or not cwd:
            return None

        now = self._clock()
        return ProcessRecord(
            pid=proc.pid,
            tty=tty,
            cwd=cwd,
            start_time=proc.create_time(),
            status=InstanceStatus.IDLE,
            last_status_change=now,
            metrics=ActivityMetrics.zero(now),
        )

    @staticmethod
    def _resolve_cwd(proc: psutil.Process) -> str | None:
        cwd = proc.cwd()
        if not cwd:
            return None
        try:
            return os.path.realpath(cwd, strict=True)
        except OSError:
            return cwd


class ProcessTracker:
    """
    Maintains the set of known pids across refresh cycles.

    A full scan runs when at least ``full_scan_interval`` seconds have
    passed since the previous one and replaces the known set. Otherwise
    known pids are pruned with a cheap existence probe and only the
    survivors are re-inspected.
    """

    def __init__(
        self,
        discoverer: ProcessDiscoverer,
        full_scan_interval: float = FULL_SCAN_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._discoverer = discoverer
        self._full_scan_interval = full_scan_interval
        self._clock = clock
        self._known_pids: set[int] = set()
        self._last_full_scan: float | None = None

    @property
    def known_pids(self) -> frozenset[int]:
        return frozenset(self._known_pids)

    @property
    def last_full_scan(self) -> float | None:
        return self._last_full_scan

    def needs_full_scan(self, now: float) -> bool:
        if self._last_full_scan is None:
            return True
        return now - self._last_full_scan >= self._full_scan_interval

    def update(self) -> list[ProcessRecord]:
        """Return the current records, choosing full or incremental mode."""
        now = self._clock()
        if self.needs_full_scan(now):
            return self._full_scan(now)
        return self._incremental_scan()

    def _full_scan(self, now: float) -> list[ProcessRecord]:
        self._last_full_scan = now
        records = self._discoverer.scan()
        self._known_pids = {record.pid for record in records}
        log.debug("Full scan found %d matching processes", len(records))
        return records

    def _incremental_scan(self) -> list[ProcessRecord]:
        alive = {pid for pid in self._known_pids if self._discoverer.exists(pid)}
        exited = self._known_pids - alive
        if exited:
            log.debug("Pruned exited pids: %s", sorted(exited))
        self._known_pids = alive

        records: list[ProcessRecord] = []
        for pid in sorted(alive):
            record = self._discoverer.inspect(pid)
            if record is not None:
                records.append(record)
        return records
