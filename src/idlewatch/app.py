"""idlewatch - Main Textual application."""

import argparse
import logging
import sys
from functools import partial
from pathlib import Path
from queue import Empty, Queue

from pydantic import ValidationError
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from idlewatch.commands import CommandRunner, SubprocessRunner
from idlewatch.config import ConfigError, ConfigStore, MonitorConfig
from idlewatch.formatting import (
    extract_tty_name,
    format_cpu_percent,
    format_duration,
    format_memory,
    group_by_directory,
    status_color,
    status_label,
)
from idlewatch.logging_ import setup_logging
from idlewatch.models import MonitorSnapshot
from idlewatch.monitor import InstanceMonitor
from idlewatch.notifications import DesktopNotifier, NotifyState, init_notify, toggle_notify
from idlewatch.sticky import DisplayServer, StickyController, StickyState

log = logging.getLogger(__name__)


def notify_tag(state: NotifyState) -> str:
    if state.error:
        return f"[red]\\[Notify: {state.error}][/red]"
    if state.enabled:
        return "[green]\\[Notify: ON][/green]"
    return "[dim]\\[Notify: OFF][/dim]"


def sticky_tag(state: StickyState) -> str:
    if state.error:
        if state.display_server is DisplayServer.WAYLAND:
            return f"[yellow]\\[{state.error}][/yellow]"
        return f"[red]\\[Sticky: {state.error}][/red]"
    if state.enabled:
        return "[green]\\[Sticky: ON][/green]"
    return "[dim]\\[Sticky: OFF][/dim]"


class SummaryHeader(Static):
    """Header line with instance counts and toggle states."""

    DEFAULT_CSS = """
    SummaryHeader {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, target_name: str, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._target_name = target_name
        self._active = 0
        self._idle = 0
        self._tags: list[str] = []

    def update_counts(self, snapshot: MonitorSnapshot) -> None:
        self._active = snapshot.active_count
        self._idle = snapshot.idle_count
        self.update(self.render_text())

    def update_tags(self, tags: list[str]) -> None:
        self._tags = tags
        self.update(self.render_text())

    def render_text(self) -> str:
        total = self._active + self._idle
        text = (
            f"[b]{self._target_name}[/b] instances: {total}  "
            f"[green]active {self._active}[/green]  [yellow]idle {self._idle}[/yellow]"
        )
        if self._tags:
            text += "  " + "  ".join(self._tags)
        return text


class InstanceTable(Container):
    """Container for the instance data table, grouped by project directory."""

    DEFAULT_CSS = """
    InstanceTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        yield DataTable(id="instance-table")

    def on_mount(self) -> None:
        table = self.query_one("#instance-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Project", key="project")
        table.add_column("PID", key="pid", width=8)
        table.add_column("TTY", key="tty", width=8)
        table.add_column("Status", key="status", width=8)
        table.add_column("For", key="for", width=5)
        table.add_column("CPU", key="cpu", width=8)
        table.add_column("MEM", key="mem", width=8)

    def update_instances(self, snapshot: MonitorSnapshot) -> None:
        """Rebuild the table from a snapshot."""
        table = self.query_one("#instance-table", DataTable)
        table.clear()

        groups = group_by_directory(snapshot.records)
        if not groups:
            table.add_row("[dim]No instances found[/dim]", "", "", "", "", "", "", key="empty")
            return

        for group in groups:
            for index, record in enumerate(group.records):
                project = f"[{group.color}]{group.display_path}[/{group.color}]" if index == 0 else ""
                color = status_color(record.status)
                table.add_row(
                    project,
                    str(record.pid),
                    extract_tty_name(record.tty),
                    f"[{color}]{status_label(record.status)}[/{color}]",
                    format_duration(record.last_status_change, snapshot.timestamp),
                    format_cpu_percent(record.metrics.cpu_percent),
                    format_memory(record.metrics.memory_rss),
                    key=str(record.pid),
                )


class IdlewatchApp(App):
    """Main idlewatch application."""

    TITLE = "idlewatch"
    SUB_TITLE = "Instance Activity Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #summary {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh_now", "Refresh"),
        ("s", "toggle_sticky", "Sticky"),
        ("n", "toggle_notify", "Notify"),
    ]

    def __init__(
        self,
        config: MonitorConfig | None = None,
        runner: CommandRunner | None = None,
        monitor: InstanceMonitor | None = None,
        sticky: StickyController | None = None,
    ) -> None:
        super().__init__()
        self._config = config or MonitorConfig()
        self._runner = runner or SubprocessRunner()
        if monitor is None:
            update_queue: Queue[MonitorSnapshot] = Queue()
            monitor = InstanceMonitor.from_config(update_queue, self._config, DesktopNotifier(self._runner))
        self._monitor = monitor
        self._update_queue = monitor.update_queue
        self._notify_state = init_notify(self._runner, self._config.notify)
        self._monitor.notifications_enabled = self._notify_state.enabled
        self._sticky = sticky or StickyController(self._runner)
        self._sticky_state = StickyState(DisplayServer.UNKNOWN)
        self._last_snapshot: MonitorSnapshot | None = None

    @property
    def notify_state(self) -> NotifyState:
        return self._notify_state

    @property
    def sticky_state(self) -> StickyState:
        return self._sticky_state

    @property
    def last_snapshot(self) -> MonitorSnapshot | None:
        return self._last_snapshot

    def compose(self) -> ComposeResult:
        yield SummaryHeader(self._config.target_name, id="summary")
        yield InstanceTable()
        yield Footer()

    def on_mount(self) -> None:
        self._refresh_tags()
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)
        # Let the first frame render before asking the window manager anything
        self.set_timer(0.5, self._init_sticky)

    def _init_sticky(self) -> None:
        self.run_worker(self._sticky_init_worker, thread=True, group="sticky", exit_on_error=False)

    def _sticky_init_worker(self) -> None:
        state = self._sticky.init(self._config.sticky)
        self.call_from_thread(self._set_sticky_state, state)

    def _sticky_toggle_worker(self, current: StickyState) -> None:
        state = self._sticky.toggle(current)
        self.call_from_thread(self._set_sticky_state, state)

    def _set_sticky_state(self, state: StickyState) -> None:
        self._sticky_state = state
        self._refresh_tags()

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self._update_ui(snapshot)

    def _update_ui(self, snapshot: MonitorSnapshot) -> None:
        self._last_snapshot = snapshot
        try:
            self.query_one("#summary", SummaryHeader).update_counts(snapshot)
            self.query_one(InstanceTable).update_instances(snapshot)
        except Exception:
            log.exception("Failed to render snapshot")

    def _refresh_tags(self) -> None:
        tags = [notify_tag(self._notify_state)]
        if self._sticky_state.display_server is not DisplayServer.UNKNOWN or self._sticky_state.error:
            tags.insert(0, sticky_tag(self._sticky_state))
        try:
            self.query_one("#summary", SummaryHeader).update_tags(tags)
        except Exception:
            log.exception("Failed to render status tags")

    def action_refresh_now(self) -> None:
        self._monitor.request_refresh()

    def action_toggle_notify(self) -> None:
        self._notify_state = toggle_notify(self._notify_state)
        self._monitor.notifications_enabled = self._notify_state.enabled
        self._refresh_tags()

    def action_toggle_sticky(self) -> None:
        # wmctrl can take a second per call
        self.run_worker(
            partial(self._sticky_toggle_worker, self._sticky_state),
            thread=True,
            group="sticky",
            exit_on_error=False,
        )

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idlewatch",
        description="Watch running instances of a program and show whether each is working or idle.",
    )
    parser.add_argument("--target", help="Substring of the command name to watch (default: claude).")
    parser.add_argument("--interval", type=float, help="Seconds between refreshes (default: 1.0).")
    parser.add_argument("--notify", action="store_true", default=None, help="Start with idle notifications on.")
    parser.add_argument("--sticky", action="store_true", default=None, help="Pin the terminal window on start (X11).")
    parser.add_argument("--config", type=Path, help="Path to a JSON config file.")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def load_config(args: argparse.Namespace) -> MonitorConfig:
    """Load the config file and apply command-line overrides."""
    config = ConfigStore(args.config).load()
    overrides = {
        "target_name": args.target,
        "refresh_interval": args.interval,
        "notify": args.notify,
        "sticky": args.sticky,
        "log_level": args.log_level,
    }
    updates = {key: value for key, value in overrides.items() if value is not None}
    return MonitorConfig.model_validate({**config.model_dump(), **updates})


def main(argv: list[str] | None = None) -> None:
    """Entry point for idlewatch application."""
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args)
    except (ConfigError, ValidationError) as exc:
        print(f"idlewatch: {exc}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config.log_level)
    log.info("Watching for '%s' every %.1fs", config.target_name, config.refresh_interval)
    app = IdlewatchApp(config)
    app.run()


if __name__ == "__main__":
    main()
