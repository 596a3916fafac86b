"""Per-process metric sampling."""

import logging
import os
import time
from collections.abc import Callable

import psutil

from idlewatch.models import ActivityMetrics

log = logging.getLogger(__name__)

CLOCK_TICKS = 100

# Errors that mean "skip this process this cycle"
UNAVAILABLE_ERRORS = (psutil.Error, OSError, ValueError)


class MetricSampler:
    """
    Reads raw activity counters for a single process.

    CPU ticks and I/O character counters are mandatory; if either cannot be
    read the whole sample is unavailable. Resident memory and the socket
    count degrade independently.
    """

    def __init__(
        self,
        procfs_path: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the MetricSampler.

        Args:
            procfs_path: Root of the process-information filesystem used for
                descriptor inspection. Defaults to psutil's PROCFS_PATH.
            clock: Source of sample timestamps.
        """
        self._procfs_path = procfs_path or getattr(psutil, "PROCFS_PATH", "/proc")
        self._clock = clock

    def sample(self, pid: int) -> ActivityMetrics | None:
        """Take a sample for ``pid``, or return None if it is unavailable."""
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                cpu_time = self._read_cpu_time(proc)
                read_bytes, write_bytes = self._read_io_counters(proc)
                memory_rss = self._read_memory_rss(proc)
        except UNAVAILABLE_ERRORS as exc:
            log.debug("Sample for pid %d unavailable: %s", pid, exc)
            return None

        return ActivityMetrics(
            cpu_time=cpu_time,
            read_bytes=read_bytes,
            write_bytes=write_bytes,
            active_connections=self.count_sockets(pid),
            timestamp=self._clock(),
            memory_rss=memory_rss,
        )

    @staticmethod
    def _read_cpu_time(proc: psutil.Process) -> int:
        times = proc.cpu_times()
        return round((times.user + times.system) * CLOCK_TICKS)

    @staticmethod
    def _read_io_counters(proc: psutil.Process) -> tuple[int, int]:
        # read_chars/write_chars are rchar/wchar: all character I/O including
        # sockets and pipes. read_bytes/write_bytes only count physical disk.
        io = proc.io_counters()
        return int(io.read_chars), int(io.write_chars)

    @staticmethod
    def _read_memory_rss(proc: psutil.Process) -> int | None:
        try:
            return int(proc.memory_info().rss)
        except UNAVAILABLE_ERRORS:
            return None

    def count_sockets(self, pid: int) -> int:
        """Count open descriptors of ``pid`` that point at sockets."""
        fd_dir = os.path.join(self._procfs_path, str(pid), "fd")
        try:
            entries = list(os.scandir(fd_dir))
        except OSError:
            return 0

        count = 0
        for entry in entries:
            try:
                target = os.readlink(entry.path)
            except OSError:
                continue
            if target.startswith("socket:"):
                count += 1
        return count
