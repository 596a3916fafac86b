"""Active/idle classification from consecutive metric samples."""

from idlewatch.models import ActivityMetrics, InstanceStatus

# Calibrated against an idle instance (~57 B/s rchar, ~114 B/s wchar,
# ~2 ticks/s) and an active one (~700 KB/s rchar, ~42 KB/s wchar, ~96 ticks/s).
CPU_THRESHOLD = 50  # Ticks per interval
IO_THRESHOLD = 16384  # Bytes per interval
DEBOUNCE_SECONDS = 5.0


class ActivityClassifier:
    """
    Decides whether a process is Active or Idle.

    Holds the previous sample and the last burst instant for every pid it
    has seen. Callers must call ``forget`` when a pid leaves the tracked
    set so a recycled pid starts with no history.
    """

    def __init__(
        self,
        cpu_threshold: int = CPU_THRESHOLD,
        io_threshold: int = IO_THRESHOLD,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ) -> None:
        self._cpu_threshold = cpu_threshold
        self._io_threshold = io_threshold
        self._debounce_seconds = debounce_seconds
        self._previous: dict[int, ActivityMetrics] = {}
        self._last_activity: dict[int, float] = {}

    def observe(self, pid: int, current: ActivityMetrics) -> tuple[InstanceStatus, float | None]:
        """
        Classify ``current`` against the stored sample for ``pid``.

        The current sample always replaces the stored one. A pid with no
        stored sample is Idle and has no CPU rate yet.
        """
        previous = self._previous.get(pid)
        self._previous[pid] = current
        if previous is None:
            return InstanceStatus.IDLE, None
        return self.classify(pid, previous, current)

    def classify(
        self,
        pid: int,
        previous: ActivityMetrics,
        current: ActivityMetrics,
    ) -> tuple[InstanceStatus, float]:
        """Return the status and CPU tick rate between two samples."""
        elapsed = current.timestamp - previous.timestamp
        if elapsed <= 0:
            return InstanceStatus.IDLE, 0.0

        # Counters can go backwards on wrap or pid reuse; never count that as work.
        cpu_delta = max(0, current.cpu_time - previous.cpu_time)
        read_delta = max(0, current.read_bytes - previous.read_bytes)
        write_delta = max(0, current.write_bytes - previous.write_bytes)

        cpu_percent = cpu_delta / elapsed

        has_activity = (
            cpu_delta > self._cpu_threshold
            or read_delta > self._io_threshold
            or write_delta > self._io_threshold
        )

        now = current.timestamp
        if has_activity:
            self._last_activity[pid] = now
            return InstanceStatus.ACTIVE, cpu_percent

        last_activity = self._last_activity.get(pid)
        if last_activity is not None and now - last_activity < self._debounce_seconds:
            return InstanceStatus.ACTIVE, cpu_percent

        return InstanceStatus.IDLE, cpu_percent

    def last_activity(self, pid: int) -> float | None:
        return self._last_activity.get(pid)

    def forget(self, pid: int) -> None:
        """Discard all history for ``pid``."""
        self._previous.pop(pid, None)
        self._last_activity.pop(pid, None)
