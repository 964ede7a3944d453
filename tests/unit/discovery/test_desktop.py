"""Tests for desktop-entry parsing and the three discovery strategies."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from appindex.db.models import Category
from appindex.discovery.desktop import (
    DesktopEntryReader,
    DirectoryListingStrategy,
    KnownIdentifierStrategy,
    MimeHandlerStrategy,
    category_for,
    desktop_id,
)
from appindex.errors import PartialResult, PermissionDenied


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entry(directory: Path, rel: str, **keys: str) -> Path:
    fields = {"Type": "Application", "Name": rel.split("/")[-1], "Exec": "true"}
    fields.update(keys)
    body = "[Desktop Entry]\n" + "".join(f"{k}={v}\n" for k, v in fields.items())
    path = directory / f"{rel}.desktop"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


@pytest.fixture
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    user = tmp_path / "user" / "applications"
    system = tmp_path / "system" / "applications"
    user.mkdir(parents=True)
    system.mkdir(parents=True)
    return user, system


@pytest.fixture
def reader(dirs) -> DesktopEntryReader:
    return DesktopEntryReader(list(dirs))


_needs_unprivileged = pytest.mark.skipif(
    hasattr(os, "geteuid") and os.geteuid() == 0,
    reason="root ignores directory permissions",
)


# ---------------------------------------------------------------------------
# Ids + parsing
# ---------------------------------------------------------------------------


def test_desktop_id_replaces_subdirs():
    assert desktop_id(Path("org.gnome.Calculator.desktop")) == "org.gnome.Calculator"
    assert desktop_id(Path("kde4/kate.desktop")) == "kde4-kate"


def test_read_maps_fields(dirs, reader):
    user, system = dirs
    path = _entry(
        system,
        "org.example.Calc",
        Name="Calculator",
        GenericName="Arithmetic",
        Comment="Do sums",
        Categories="Utility;Calculator;",
        Icon="accessories-calculator",
        **{"X-AppVersion": "42"},
    )
    entry = reader.read(path, "org.example.Calc")
    assert entry.name == "Calculator"
    assert entry.categories == ("Utility", "Calculator")
    assert entry.icon == "accessories-calculator"

    d = reader.to_descriptor(entry)
    assert d.id == "org.example.Calc"
    assert d.secondary_name == "Arithmetic"
    assert d.version_label == "42"
    assert d.version_ordinal == 42
    assert d.category is Category.PRODUCTIVITY
    assert d.is_system_component is True
    assert d.enabled is True
    assert d.updated_at is not None


def test_exec_with_equals_sign_is_kept(dirs, reader):
    _, system = dirs
    path = _entry(system, "env-app", Exec="env FOO=bar app %U")
    assert reader.read(path).exec_line == "env FOO=bar app %U"


def test_user_entries_are_not_system_components(dirs, reader):
    user, _ = dirs
    path = _entry(user, "my-tool", Comment="Mine")
    d = reader.to_descriptor(reader.read(path, "my-tool"))
    assert d.is_system_component is False
    assert d.secondary_name == "Mine"


def test_nodisplay_maps_to_disabled(dirs, reader):
    _, system = dirs
    path = _entry(system, "helper", NoDisplay="true")
    assert reader.to_descriptor(reader.read(path)).enabled is False


def test_malformed_file_is_skipped(dirs, reader):
    _, system = dirs
    bad = system / "bad.desktop"
    bad.write_text("this is not an ini file\n", encoding="utf-8")
    assert reader.read(bad) is None


def test_category_mapping():
    assert category_for(["Game", "ArcadeGame"]) is Category.GAME
    assert category_for(["AudioVideo", "Audio", "Player"]) is Category.AUDIO
    assert category_for(["AudioVideo", "Video"]) is Category.VIDEO
    assert category_for(["Network", "InstantMessaging"]) is Category.SOCIAL
    assert category_for(["Development", "IDE"]) is Category.PRODUCTIVITY
    assert category_for(["Settings"]) is Category.OTHER


def test_find_handles_vendor_subdirectory(dirs, reader):
    _, system = dirs
    _entry(system, "kde4/kate", Name="Kate")
    entry = reader.find("kde4-kate")
    assert entry is not None
    assert entry.name == "Kate"


# ---------------------------------------------------------------------------
# DirectoryListingStrategy
# ---------------------------------------------------------------------------


def test_listing_finds_applications_only(dirs, reader):
    _, system = dirs
    _entry(system, "calc", Name="Calculator")
    _entry(system, "link", Type="Link")
    _entry(system, "gone", Hidden="true")
    ids = {d.id for d in DirectoryListingStrategy(reader).enumerate()}
    assert ids == {"calc"}


def test_user_copy_shadows_system_entry(dirs, reader):
    user, system = dirs
    _entry(system, "calc", Name="System Calc")
    _entry(user, "calc", Name="My Calc")
    _entry(system, "removed", Name="Removed")
    _entry(user, "removed", Hidden="true")

    found = {d.id: d for d in DirectoryListingStrategy(reader).enumerate()}
    assert found["calc"].display_name == "My Calc"
    assert "removed" not in found


def test_missing_directory_is_not_a_failure(tmp_path):
    reader = DesktopEntryReader([tmp_path / "nope"])
    assert DirectoryListingStrategy(reader).enumerate() == []


@_needs_unprivileged
def test_unlistable_directory_gives_partial_result(dirs, reader):
    user, system = dirs
    _entry(user, "mine")
    _entry(system, "calc")
    system.chmod(0o300)
    try:
        with pytest.raises(PartialResult) as info:
            DirectoryListingStrategy(reader).enumerate()
    finally:
        system.chmod(0o755)
    assert [d.id for d in info.value.descriptors] == ["mine"]


@_needs_unprivileged
def test_all_directories_unlistable_is_permission_denied(dirs, reader):
    for d in dirs:
        d.chmod(0o300)
    try:
        with pytest.raises(PermissionDenied):
            DirectoryListingStrategy(reader).enumerate()
    finally:
        for d in dirs:
            d.chmod(0o755)


@_needs_unprivileged
def test_unreadable_subdirectory_gives_partial_result(dirs, reader):
    _, system = dirs
    _entry(system, "calc")
    _entry(system, "vendor/editor")
    vendor = system / "vendor"
    vendor.chmod(0o000)
    try:
        with pytest.raises(PartialResult) as info:
            DirectoryListingStrategy(reader).enumerate()
    finally:
        vendor.chmod(0o755)
    assert [d.id for d in info.value.descriptors] == ["calc"]
    assert "vendor" in info.value.reason


@_needs_unprivileged
def test_unreadable_entry_file_gives_partial_result(dirs, reader):
    _, system = dirs
    _entry(system, "calc")
    locked = _entry(system, "editor")
    locked.chmod(0o000)
    try:
        with pytest.raises(PartialResult) as info:
            DirectoryListingStrategy(reader).enumerate()
    finally:
        locked.chmod(0o644)
    assert [d.id for d in info.value.descriptors] == ["calc"]
    assert "editor.desktop" in info.value.reason


# ---------------------------------------------------------------------------
# MimeHandlerStrategy + KnownIdentifierStrategy
# ---------------------------------------------------------------------------


def test_mime_handlers_resolve_registered_ids(dirs, reader, tmp_path):
    _, system = dirs
    _entry(system, "org.example.Viewer", Name="Viewer")
    _entry(system, "org.example.Player", Name="Player")
    _entry(system, "unregistered")
    (system / "mimeinfo.cache").write_text(
        "[MIME Cache]\n"
        "image/png=org.example.Viewer.desktop;\n"
        "audio/ogg=org.example.Player.desktop;org.example.Missing.desktop;\n",
        encoding="utf-8",
    )
    config = tmp_path / "config"
    config.mkdir()
    (config / "mimeapps.list").write_text(
        "[Default Applications]\nimage/jpeg=org.example.Viewer.desktop\n", encoding="utf-8"
    )

    strategy = MimeHandlerStrategy(reader, config_dirs=[config])
    ids, read, denied = strategy.registered_ids()
    assert ids == ["org.example.Viewer", "org.example.Player", "org.example.Missing"]
    assert (read, denied) == (2, 0)
    assert {d.id for d in strategy.enumerate()} == {"org.example.Viewer", "org.example.Player"}


@_needs_unprivileged
def test_mime_handlers_work_inside_unlistable_directory(dirs, reader):
    _, system = dirs
    _entry(system, "org.example.Viewer")
    (system / "mimeinfo.cache").write_text(
        "[MIME Cache]\nimage/png=org.example.Viewer.desktop;\n", encoding="utf-8"
    )
    system.chmod(0o100)
    try:
        found = MimeHandlerStrategy(reader, config_dirs=[]).enumerate()
    finally:
        system.chmod(0o755)
    assert [d.id for d in found] == ["org.example.Viewer"]


def test_known_identifiers_probe_by_path(dirs, reader):
    _, system = dirs
    _entry(system, "firefox", Name="Firefox")
    strategy = KnownIdentifierStrategy(reader, ["firefox", "thunderbird", "firefox"])
    assert [d.id for d in strategy.enumerate()] == ["firefox"]
