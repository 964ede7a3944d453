"""Tests for the desktop-entry launcher."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from appindex.discovery.desktop import DesktopEntryReader
from appindex.discovery.launcher import DesktopLauncher, command_from_exec
from appindex.errors import LaunchUnavailable


def _write(directory: Path, app_id: str, body: str) -> None:
    (directory / f"{app_id}.desktop").write_text(
        "[Desktop Entry]\nType=Application\nName=" + app_id + "\n" + body, encoding="utf-8"
    )


@pytest.fixture
def apps(tmp_path: Path) -> Path:
    d = tmp_path / "applications"
    d.mkdir()
    return d


@pytest.fixture
def launcher(apps: Path) -> DesktopLauncher:
    return DesktopLauncher(DesktopEntryReader([apps]), terminal="my-term")


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def __call__(self, argv, **kwargs):
        self.calls.append(list(argv))
        assert kwargs["start_new_session"] is True
        return object()


# ------------------------------------------------------------------
# Exec parsing
# ------------------------------------------------------------------

def test_command_from_exec_strips_field_codes():
    assert command_from_exec("gimp-2.10 %U") == ["gimp-2.10"]
    assert command_from_exec('"/opt/My App/run" --name %c -f %f') == ["/opt/My App/run", "--name", "-f"]
    assert command_from_exec("printf 100%%") == ["printf", "100%"]


def test_command_from_exec_escaped_percent_is_literal():
    assert command_from_exec("echo %%f") == ["echo", "%f"]
    assert command_from_exec("date +%%d%%m %u") == ["date", "+%d%m"]


# ------------------------------------------------------------------
# resolve_command
# ------------------------------------------------------------------

def test_resolve_unknown_id(launcher):
    with pytest.raises(LaunchUnavailable):
        launcher.resolve_command("nope")


def test_resolve_entry_without_exec(apps, launcher):
    _write(apps, "noexec", "")
    with pytest.raises(LaunchUnavailable, match="no Exec"):
        launcher.resolve_command("noexec")


def test_resolve_missing_tryexec(apps, launcher):
    _write(apps, "ghost", "Exec=ghost\nTryExec=definitely-not-installed-binary-xyz\n")
    with pytest.raises(LaunchUnavailable, match="TryExec"):
        launcher.resolve_command("ghost")


def test_resolve_terminal_app_wraps_in_terminal(apps, launcher):
    _write(apps, "htop", "Exec=htop\nTerminal=true\n")
    assert launcher.resolve_command("htop") == ["my-term", "-e", "htop"]


# ------------------------------------------------------------------
# attempt_launch
# ------------------------------------------------------------------

def test_attempt_launch_spawns_detached(apps, launcher, monkeypatch):
    _write(apps, "calc", "Exec=gnome-calculator %U\n")
    recorder = _Recorder()
    monkeypatch.setattr(subprocess, "Popen", recorder)

    assert launcher.attempt_launch("calc") is True
    assert recorder.calls == [["gnome-calculator"]]


def test_attempt_launch_unknown_id_returns_false(launcher, monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(subprocess, "Popen", recorder)
    assert launcher.attempt_launch("nope") is False
    assert recorder.calls == []


def test_attempt_launch_spawn_failure_returns_false(apps, launcher, monkeypatch):
    _write(apps, "calc", "Exec=calc\n")

    def _boom(*args, **kwargs):
        raise FileNotFoundError("calc")

    monkeypatch.setattr(subprocess, "Popen", _boom)
    assert launcher.attempt_launch("calc") is False
