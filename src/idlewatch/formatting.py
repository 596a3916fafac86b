"""Presentation helpers: grouping, colours and human-readable values."""

import hashlib
import os
import time
from dataclasses import dataclass

from idlewatch.models import InstanceStatus, ProcessRecord

GROUP_COLORS = ["blue", "magenta", "cyan", "dodger_blue1", "orchid", "turquoise2"]


@dataclass(slots=True)
class ProjectGroup:
    """Processes sharing a working directory."""

    path: str
    display_path: str
    color: str
    records: list[ProcessRecord]


def status_label(status: InstanceStatus) -> str:
    return "ACTV" if status is InstanceStatus.ACTIVE else "IDLE"


def status_color(status: InstanceStatus) -> str:
    return "green" if status is InstanceStatus.ACTIVE else "yellow"


def abbreviate_path(path: str, home: str | None = None) -> str:
    """Replace the home directory prefix with ``~``."""
    home = home if home is not None else os.path.expanduser("~")
    if home and (path == home or path.startswith(home.rstrip("/") + "/")):
        return "~" + path[len(home.rstrip("/")):]
    return path


def path_to_color(path: str) -> str:
    """Pick a stable colour for a directory."""
    digest = hashlib.md5(path.encode("utf-8"), usedforsecurity=False).hexdigest()
    return GROUP_COLORS[int(digest[:8], 16) % len(GROUP_COLORS)]


def group_by_directory(records: list[ProcessRecord], home: str | None = None) -> list[ProjectGroup]:
    """Group records by working directory, sorted by displayed path then pid."""
    by_cwd: dict[str, list[ProcessRecord]] = {}
    for record in records:
        by_cwd.setdefault(record.cwd, []).append(record)

    groups = [
        ProjectGroup(
            path=cwd,
            display_path=abbreviate_path(cwd, home),
            color=path_to_color(cwd),
            records=sorted(members, key=lambda r: r.pid),
        )
        for cwd, members in by_cwd.items()
    ]
    return sorted(groups, key=lambda g: g.display_path)


def extract_tty_name(tty: str) -> str:
    return tty[len("/dev/"):] if tty.startswith("/dev/") else tty


def format_duration(since: float, now: float | None = None) -> str:
    """Format elapsed time since ``since`` as ``Ns``, ``Nm`` or ``Nh``."""
    now = time.time() if now is None else now
    secs = max(0, int(now - since))
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        return f"{secs // 60}m"
    return f"{secs // 3600}h"


def format_cpu_percent(cpu_percent: float | None) -> str:
    """
    Format a CPU tick rate.

    At 100 ticks per second, one tick per second is one percent of a core,
    so the rate reads directly as a percentage.
    """
    if cpu_percent is None:
        return "-"
    return f"{cpu_percent:.1f}%"


def format_memory(size: int | None) -> str:
    """Format bytes as human-readable string."""
    if size is None:
        return "-"
    value = float(size)
    for unit in ["B", "K", "M", "G"]:
        if value < 1024:
            return f"{int(value)}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value = value / 1024
    return f"{value:.1f}T"
