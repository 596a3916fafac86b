"""Refresh-cycle engine for idlewatch."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from queue import Queue

from idlewatch.classifier import ActivityClassifier
from idlewatch.config import MonitorConfig
from idlewatch.discovery import ProcessDiscoverer, ProcessTracker
from idlewatch.models import MonitorSnapshot, ProcessRecord, StatusTransition
from idlewatch.notifications import IdleNotificationThrottle, Notifier
from idlewatch.sampler import MetricSampler

log = logging.getLogger(__name__)


class InstanceMonitor:
    """
    Discovers, samples and classifies matching processes once per cycle.

    Can be driven directly through ``refresh()`` or run in a daemon thread
    that pushes a ``MonitorSnapshot`` to a thread-safe Queue every
    ``poll_rate`` seconds. At most one cycle runs at a time; a ``refresh()``
    issued while another is in flight is skipped.
    """

    def __init__(
        self,
        update_queue: Queue[MonitorSnapshot],
        tracker: ProcessTracker,
        sampler: MetricSampler,
        classifier: ActivityClassifier,
        throttle: IdleNotificationThrottle,
        poll_rate: float = 1.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the InstanceMonitor.

        Args:
            update_queue: Thread-safe queue to push snapshots to.
            tracker: Source of the current process records.
            sampler: Reads metrics for each record.
            classifier: Turns consecutive samples into a status.
            throttle: Decides when idle notifications fire.
            poll_rate: Seconds between background cycles. Default 1.0s.
            clock: Source of the cycle timestamp.
        """
        self._queue = update_queue
        self._tracker = tracker
        self._sampler = sampler
        self._classifier = classifier
        self._throttle = throttle
        self._poll_rate = poll_rate
        self._clock = clock
        self._records: dict[int, ProcessRecord] = {}
        self._tracked: frozenset[int] = frozenset()
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def from_config(
        cls,
        update_queue: Queue[MonitorSnapshot],
        config: MonitorConfig,
        notifier: Notifier,
    ) -> "InstanceMonitor":
        """Build a monitor with every collaborator configured from ``config``."""
        discoverer = ProcessDiscoverer(config.target_name)
        return cls(
            update_queue,
            tracker=ProcessTracker(discoverer, full_scan_interval=config.full_scan_interval),
            sampler=MetricSampler(),
            classifier=ActivityClassifier(
                cpu_threshold=config.cpu_threshold,
                io_threshold=config.io_threshold,
                debounce_seconds=config.debounce_seconds,
            ),
            throttle=IdleNotificationThrottle(
                notifier,
                enabled=config.notify,
                idle_delay=config.idle_notify_delay,
                cooldown=config.notify_cooldown,
            ),
            poll_rate=config.refresh_interval,
        )

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def update_queue(self) -> Queue[MonitorSnapshot]:
        return self._queue

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def notifications_enabled(self) -> bool:
        return self._throttle.enabled

    @notifications_enabled.setter
    def notifications_enabled(self, value: bool) -> None:
        self._throttle.enabled = value

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="InstanceMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        self._wake_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def request_refresh(self) -> None:
        """Run the next background cycle now instead of waiting for the timer."""
        self._wake_event.set()

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                snapshot = self.refresh()
                if snapshot is not None:
                    self._queue.put(snapshot)
            except Exception:
                log.exception("Refresh cycle failed")

            self._wake_event.wait(timeout=self._poll_rate)
            self._wake_event.clear()

    def refresh(self) -> MonitorSnapshot | None:
        """Run one refresh cycle, or return None if one is already running."""
        if not self._cycle_lock.acquire(blocking=False):
            log.debug("Refresh skipped: cycle already in progress")
            return None
        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> MonitorSnapshot:
        discovered = self._tracker.update()
        now = self._clock()

        tracked = self._tracker.known_pids
        for pid in self._tracked - tracked:
            self._discard(pid)
        self._tracked = tracked

        records: list[ProcessRecord] = []
        transitions: list[StatusTransition] = []
        for fresh in discovered:
            record, transition = self._update_record(fresh, now)
            records.append(record)
            if transition is not None:
                transitions.append(transition)

        records.sort(key=lambda r: r.pid)
        self._throttle.observe(records, now)
        return MonitorSnapshot(timestamp=now, records=records, transitions=transitions)

    def _update_record(
        self, fresh: ProcessRecord, now: float
    ) -> tuple[ProcessRecord, StatusTransition | None]:
        record = self._records.get(fresh.pid)
        if record is None:
            record = fresh
            self._records[fresh.pid] = record
            previous_status = None
        else:
            record.tty = fresh.tty
            record.cwd = fresh.cwd
            previous_status = record.status

        metrics = self._sampler.sample(record.pid)
        if metrics is None:
            return record, None

        status, cpu_percent = self._classifier.observe(record.pid, metrics)
        record.metrics = replace(metrics, cpu_percent=cpu_percent)
        record.status = status

        if previous_status is None or previous_status is status:
            return record, None

        record.last_status_change = now
        log.debug("pid %d: %s -> %s", record.pid, previous_status.value, status.value)
        return record, StatusTransition(previous_status, status, record)

    def _discard(self, pid: int) -> None:
        log.debug("Discarding state for pid %d", pid)
        self._records.pop(pid, None)
        self._classifier.forget(pid)
        self._throttle.forget(pid)
