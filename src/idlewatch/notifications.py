"""Idle notifications: sustained-idle throttle and desktop delivery."""

import logging
from dataclasses import dataclass, replace
from typing import Protocol

from idlewatch.commands import CommandRunner
from idlewatch.formatting import abbreviate_path
from idlewatch.models import InstanceStatus, ProcessRecord

log = logging.getLogger(__name__)

IDLE_NOTIFY_DELAY = 5.0
NOTIFY_COOLDOWN = 30.0
NOTIFY_TIMEOUT = 2.0
NOTIFY_COMMAND = "notify-send"


class Notifier(Protocol):
    def notify(self, record: ProcessRecord) -> None:
        ...


@dataclass(slots=True, frozen=True)
class NotifyState:
    """Whether notifications are on, and why they might not be possible."""

    enabled: bool
    available: bool
    error: str | None = None


def init_notify(runner: CommandRunner, auto_enable: bool = False) -> NotifyState:
    if not runner.available(NOTIFY_COMMAND):
        return NotifyState(enabled=False, available=False, error=f"{NOTIFY_COMMAND} not installed")
    return NotifyState(enabled=auto_enable, available=True)


def toggle_notify(state: NotifyState) -> NotifyState:
    if not state.available:
        return state
    return replace(state, enabled=not state.enabled)


class DesktopNotifier:
    """Sends a desktop notification through ``notify-send``."""

    def __init__(self, runner: CommandRunner, app_name: str = "idlewatch") -> None:
        self._runner = runner
        self._app_name = app_name

    def notify(self, record: ProcessRecord) -> None:
        summary = "Instance idle"
        body = f"PID {record.pid} in {abbreviate_path(record.cwd)} is waiting"
        result = self._runner.invoke(
            NOTIFY_COMMAND,
            ["-a", self._app_name, "-u", "normal", summary, body],
            NOTIFY_TIMEOUT,
        )
        if not result.ok:
            log.warning("Notification for pid %d not delivered: %s", record.pid, result.error)


class IdleNotificationThrottle:
    """
    Fires one notification per process once it has been idle long enough.

    Idle-since instants are tracked on every cycle, even while disabled,
    so that enabling notifications later respects the real idle duration.
    After firing, a pid is silenced for ``cooldown`` seconds even if it
    stays idle. All state for a pid is dropped when it disappears.
    """

    def __init__(
        self,
        notifier: Notifier,
        enabled: bool = False,
        idle_delay: float = IDLE_NOTIFY_DELAY,
        cooldown: float = NOTIFY_COOLDOWN,
    ) -> None:
        self._notifier = notifier
        self._enabled = enabled
        self._idle_delay = idle_delay
        self._cooldown = cooldown
        self._idle_since: dict[int, float] = {}
        self._last_notified: dict[int, float] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    def idle_since(self, pid: int) -> float | None:
        return self._idle_since.get(pid)

    def last_notified(self, pid: int) -> float | None:
        return self._last_notified.get(pid)

    def track(self, records: list[ProcessRecord], now: float) -> None:
        """
        Update idle-since state from the current cycle's records.

        Pids missing from ``records`` keep their state; it is dropped through
        forget() once the pid leaves the tracked set.
        """
        for record in records:
            if record.status is InstanceStatus.IDLE:
                self._idle_since.setdefault(record.pid, now)
            else:
                self._idle_since.pop(record.pid, None)

    def evaluate(self, records: list[ProcessRecord], now: float) -> list[ProcessRecord]:
        """Notify for every record that qualifies and return those records."""
        if not self._enabled:
            return []

        fired: list[ProcessRecord] = []
        for record in records:
            if record.status is not InstanceStatus.IDLE:
                continue
            idle_start = self._idle_since.get(record.pid)
            if idle_start is None or now - idle_start < self._idle_delay:
                continue
            last_sent = self._last_notified.get(record.pid)
            if last_sent is not None and now - last_sent < self._cooldown:
                continue

            self._last_notified[record.pid] = now
            self._deliver(record)
            fired.append(record)
        return fired

    def observe(self, records: list[ProcessRecord], now: float) -> list[ProcessRecord]:
        self.track(records, now)
        return self.evaluate(records, now)

    def forget(self, pid: int) -> None:
        self._idle_since.pop(pid, None)
        self._last_notified.pop(pid, None)

    def _deliver(self, record: ProcessRecord) -> None:
        try:
            self._notifier.notify(record)
        except Exception:
            log.exception("Notifier failed for pid %d", record.pid)
