"""Launch primitive for desktop entries.

``attempt_launch(app_id)`` answers "was a launch entry point available", the
only thing the catalog needs to know before counting a launch.
"""

from __future__ import annotations

import logging
import re
import shlex
import shutil
import subprocess
from typing import Protocol

from appindex.discovery.desktop import DesktopEntryReader
from appindex.errors import LaunchUnavailable

logger = logging.getLogger(__name__)

# Exec field codes: file/url arguments are dropped, %% is a literal percent.
_FIELD_CODE_RE = re.compile(r"%(%|[fFuUdDnNickvm])")


class Launcher(Protocol):
    """Platform launch facility consumed by the catalog."""

    def attempt_launch(self, app_id: str) -> bool:
        ...


def command_from_exec(exec_line: str) -> list[str]:
    """Split an ``Exec`` value into argv with field codes removed."""
    stripped = _FIELD_CODE_RE.sub(lambda m: "%" if m.group(1) == "%" else "", exec_line)
    return [arg for arg in shlex.split(stripped) if arg]


class DesktopLauncher:
    """Start applications described by desktop entries, detached from us."""

    def __init__(self, reader: DesktopEntryReader, *, terminal: str | None = None) -> None:
        self.reader = reader
        self.terminal = terminal

    def resolve_command(self, app_id: str) -> list[str]:
        """Return the argv that launches *app_id*.

        Raises:
            LaunchUnavailable: No entry, no Exec line, or TryExec not installed.
        """
        entry = self.reader.find(app_id)
        if entry is None or not entry.is_application:
            raise LaunchUnavailable(app_id, "no desktop entry")
        if not entry.exec_line:
            raise LaunchUnavailable(app_id, "entry has no Exec line")
        if entry.try_exec and shutil.which(entry.try_exec) is None:
            raise LaunchUnavailable(app_id, f"TryExec '{entry.try_exec}' not found")
        try:
            argv = command_from_exec(entry.exec_line)
        except ValueError as exc:
            raise LaunchUnavailable(app_id, f"malformed Exec line: {exc}") from exc
        if not argv:
            raise LaunchUnavailable(app_id, "empty Exec line")
        if entry.terminal:
            terminal = self.terminal or shutil.which("x-terminal-emulator") or "xterm"
            argv = [terminal, "-e", *argv]
        return argv

    def attempt_launch(self, app_id: str) -> bool:
        try:
            argv = self.resolve_command(app_id)
        except LaunchUnavailable as exc:
            logger.info("Launch unavailable: %s", exc)
            return False
        try:
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            logger.info("Launch of %s failed: %s", app_id, exc)
            return False
        return True
