"""External command invocation for the notification and window helpers."""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Protocol

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CommandResult:
    """Output of an external command, or the reason it failed."""

    output: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CommandRunner(Protocol):
    def invoke(self, command: str, args: list[str], timeout: float) -> CommandResult:
        ...

    def available(self, command: str) -> bool:
        ...


class SubprocessRunner:
    """Runs commands with ``subprocess.run``; failures become results, not exceptions."""

    def invoke(self, command: str, args: list[str], timeout: float) -> CommandResult:
        try:
            completed = subprocess.run(
                [command, *args],
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            log.warning("%s timed out after %.1fs", command, timeout)
            return CommandResult(error=f"{command} timed out")
        except OSError as exc:
            log.warning("%s could not be started: %s", command, exc)
            return CommandResult(error=f"{command} failed to start")

        if completed.returncode != 0:
            stderr = completed.stderr.strip()
            log.debug("%s exited with %d: %s", command, completed.returncode, stderr)
            error = stderr or f"{command} exited with {completed.returncode}"
            return CommandResult(output=completed.stdout, error=error)
        return CommandResult(output=completed.stdout)

    def available(self, command: str) -> bool:
        return shutil.which(command) is not None
