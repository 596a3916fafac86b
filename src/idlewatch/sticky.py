"""Pin the monitor's terminal window to all desktops (X11 via wmctrl)."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum

from idlewatch.commands import CommandRunner

log = logging.getLogger(__name__)

WMCTRL = "wmctrl"
WMCTRL_TIMEOUT = 1.0
WINDOW_TITLE = "idlewatch"

WAYLAND_INSTRUCTIONS = "\n".join(
    [
        "Wayland detected -- sticky mode requires manual config:",
        "",
        "GNOME: pin the window from the overview or use an extension",
        "KDE Plasma: Right-click title bar > More Actions > On All Desktops",
        'Sway: Add "sticky enable" to your sway config for this window',
        'Hyprland: Add a "pin" window rule or use hyprctl dispatch pin',
    ]
)


class DisplayServer(Enum):
    X11 = "x11"
    WAYLAND = "wayland"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class StickyState:
    display_server: DisplayServer
    window_id: str | None = None
    enabled: bool = False
    error: str | None = None


def detect_display_server(env: Mapping[str, str] | None = None) -> DisplayServer:
    env = os.environ if env is None else env
    session_type = env.get("XDG_SESSION_TYPE", "").lower()
    if session_type == "wayland":
        return DisplayServer.WAYLAND
    if session_type == "x11":
        return DisplayServer.X11
    if env.get("WAYLAND_DISPLAY"):
        return DisplayServer.WAYLAND
    if env.get("DISPLAY"):
        return DisplayServer.X11
    return DisplayServer.UNKNOWN


class StickyController:
    """Finds the terminal window and toggles its sticky flag."""

    def __init__(
        self,
        runner: CommandRunner,
        env: Mapping[str, str] | None = None,
        parent_pid: int | None = None,
    ) -> None:
        self._runner = runner
        self._env = os.environ if env is None else env
        self._parent_pid = os.getppid() if parent_pid is None else parent_pid

    def find_window_id(self) -> str | None:
        window_id = self._env.get("WINDOWID")
        if window_id:
            return window_id

        result = self._runner.invoke(WMCTRL, ["-lp"], WMCTRL_TIMEOUT)
        if result.ok:
            for line in result.output.splitlines():
                parts = line.split()
                if len(parts) >= 3 and parts[2] == str(self._parent_pid):
                    return parts[0]

        result = self._runner.invoke(WMCTRL, ["-l"], WMCTRL_TIMEOUT)
        if result.ok:
            for line in result.output.splitlines():
                if WINDOW_TITLE in line:
                    parts = line.split()
                    if parts:
                        return parts[0]
        return None

    def set_sticky(self, window_id: str, enable: bool) -> StickyState:
        action = "add" if enable else "remove"
        result = self._runner.invoke(
            WMCTRL, ["-i", "-r", window_id, "-b", f"{action},sticky"], WMCTRL_TIMEOUT
        )
        if not result.ok:
            return StickyState(DisplayServer.X11, window_id, enabled=False, error="wmctrl command failed")
        return StickyState(DisplayServer.X11, window_id, enabled=enable)

    def init(self, auto_enable: bool = False) -> StickyState:
        display_server = detect_display_server(self._env)
        if display_server is DisplayServer.WAYLAND:
            return StickyState(display_server, error="Wayland: manual config needed")
        if display_server is DisplayServer.UNKNOWN:
            return StickyState(display_server, error="No display server detected")
        if not self._runner.available(WMCTRL):
            return StickyState(display_server, error="wmctrl not installed")

        window_id = self.find_window_id()
        if window_id is None:
            return StickyState(display_server, error="Window ID not found")
        if auto_enable:
            return self.set_sticky(window_id, True)
        return StickyState(display_server, window_id)

    def toggle(self, state: StickyState) -> StickyState:
        if state.display_server is DisplayServer.WAYLAND:
            return state

        window_id = state.window_id or self.find_window_id()
        if window_id is None:
            return replace(state, error="Window ID not found")

        new_state = self.set_sticky(window_id, not state.enabled)
        log.info("Sticky %s for window %s", "on" if new_state.enabled else "off", window_id)
        return replace(new_state, display_server=state.display_server)
