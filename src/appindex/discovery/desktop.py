"""freedesktop.org Desktop Entry platform: the installed-application source on Linux.

Each ``*.desktop`` file of ``Type=Application`` under an XDG ``applications``
directory is one installed application. Its desktop-file id (path relative to
the ``applications`` directory, ``/`` replaced by ``-``, without the suffix)
is the stable application id. Directories earlier in the search list shadow
later ones, so a user copy in ``~/.local/share/applications`` overrides the
system entry with the same id.

Three strategies with different completeness guarantees:

  DirectoryListingStrategy  lists every directory (authoritative)
  MimeHandlerStrategy       resolves ids registered as MIME handlers
  KnownIdentifierStrategy   probes a fixed list of ids

The two probing strategies open files by exact path, which still works inside
directories that deny listing.
"""

from __future__ import annotations

import configparser
import logging
import os
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from appindex.db.models import Category
from appindex.discovery.base import DiscoveryStrategy, RawApplicationDescriptor
from appindex.errors import PartialResult, PermissionDenied

logger = logging.getLogger(__name__)

_ENTRY_GROUP = "Desktop Entry"
_SUFFIX = ".desktop"

# First match wins; checked against the entry's Categories list.
_CATEGORY_MAP: tuple[tuple[frozenset[str], Category], ...] = (
    (frozenset({"Game"}), Category.GAME),
    (frozenset({"Video"}), Category.VIDEO),
    (frozenset({"Audio", "Music"}), Category.AUDIO),
    (frozenset({"AudioVideo"}), Category.VIDEO),
    (frozenset({"Chat", "InstantMessaging", "Email", "IRCClient", "Network"}), Category.SOCIAL),
    (frozenset({"Office", "Development", "Utility", "TextEditor"}), Category.PRODUCTIVITY),
)

_MIME_CACHE_FILES = ("mimeinfo.cache", "mimeapps.list")
_MIME_GROUPS = ("MIME Cache", "Default Applications", "Added Associations")


# ---------------------------------------------------------------------------
# XDG locations
# ---------------------------------------------------------------------------


def _data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")


def _data_dirs() -> list[Path]:
    raw = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    return [Path(p) for p in raw.split(":") if p]


def default_application_dirs() -> list[Path]:
    """XDG applications directories, highest precedence first."""
    return [_data_home() / "applications"] + [d / "applications" for d in _data_dirs()]


def default_config_dirs() -> list[Path]:
    """XDG config directories that may hold a ``mimeapps.list``."""
    home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    raw = os.environ.get("XDG_CONFIG_DIRS") or "/etc/xdg"
    return [home] + [Path(p) for p in raw.split(":") if p]


# ---------------------------------------------------------------------------
# Entry model + reader
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DesktopEntry:
    """The parts of a parsed desktop entry appindex cares about."""

    app_id: str
    path: Path
    name: str
    generic_name: str | None
    comment: str | None
    exec_line: str | None
    try_exec: str | None
    icon: str | None
    categories: tuple[str, ...]
    version: str | None
    no_display: bool
    hidden: bool
    entry_type: str
    terminal: bool

    @property
    def is_application(self) -> bool:
        return self.entry_type == "Application" and not self.hidden


def _parse_bool(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def desktop_id(relative: Path) -> str:
    """Desktop-file id for a path relative to an ``applications`` directory."""
    name = relative.as_posix()
    if name.endswith(_SUFFIX):
        name = name[: -len(_SUFFIX)]
    return name.replace("/", "-")


class DesktopEntryReader:
    """Locate and parse desktop entries across the application directories.

    Args:
        application_dirs: Directories in precedence order. Defaults to XDG.
        user_dir: Directory whose entries are user-installed; everything else
            is reported as a system component. Defaults to the first directory.
    """

    def __init__(
        self,
        application_dirs: Sequence[Path] | None = None,
        *,
        user_dir: Path | None = None,
    ) -> None:
        dirs = list(application_dirs) if application_dirs else default_application_dirs()
        self.application_dirs = dirs
        self.user_dir = user_dir if user_dir is not None else (dirs[0] if dirs else None)

    # -- lookup ---------------------------------------------------------

    def candidate_paths(self, app_id: str) -> Iterator[Path]:
        """Paths an id may live at, in precedence order.

        ``vendor-app`` may be ``vendor-app.desktop`` or ``vendor/app.desktop``.
        """
        stem = app_id[: -len(_SUFFIX)] if app_id.endswith(_SUFFIX) else app_id
        parts = stem.split("-")
        for directory in self.application_dirs:
            yield directory / f"{stem}{_SUFFIX}"
            for i in range(1, len(parts)):
                yield directory / "/".join(parts[:i]) / f"{'-'.join(parts[i:])}{_SUFFIX}"

    def find(self, app_id: str) -> DesktopEntry | None:
        """Resolve *app_id* by direct path lookup (no directory listing needed)."""
        for path in self.candidate_paths(app_id):
            try:
                if not path.is_file():
                    continue
            except OSError:
                continue
            entry = self.read(path, app_id)
            if entry is not None:
                return entry
        return None

    def iter_directory(
        self, directory: Path, errors: list[OSError] | None = None
    ) -> Iterator[tuple[str, Path]]:
        """Yield (id, path) for every ``*.desktop`` file under *directory*.

        Unreadable subdirectories are skipped; their errors are appended to
        *errors* when given, otherwise logged.

        Raises:
            PermissionError: When *directory* itself cannot be listed.
        """
        if not directory.is_dir():
            return
        os.listdir(directory)
        onerror = errors.append if errors is not None else _log_walk_error
        for root, _dirs, files in os.walk(directory, onerror=onerror):
            for filename in sorted(files):
                if filename.endswith(_SUFFIX):
                    path = Path(root) / filename
                    yield desktop_id(path.relative_to(directory)), path

    # -- parsing --------------------------------------------------------

    def read(self, path: Path, app_id: str | None = None) -> DesktopEntry | None:
        """Parse *path*; returns None for unreadable or malformed files."""
        try:
            return self.load(path, app_id)
        except OSError as exc:
            logger.debug("Skipping unreadable desktop entry %s: %s", path, exc)
            return None

    def load(self, path: Path, app_id: str | None = None) -> DesktopEntry | None:
        """Parse *path*; returns None for malformed files.

        Raises:
            OSError: When *path* cannot be opened or read.
        """
        parser = configparser.ConfigParser(interpolation=None, strict=False, delimiters=("=",))
        parser.optionxform = str  # keys are case-sensitive
        with path.open(encoding="utf-8", errors="replace") as fh:
            try:
                parser.read_file(fh)
            except configparser.Error as exc:
                logger.debug("Skipping malformed desktop entry %s: %s", path, exc)
                return None
        if not parser.has_section(_ENTRY_GROUP):
            return None

        group = parser[_ENTRY_GROUP]
        name = (group.get("Name") or "").strip()
        return DesktopEntry(
            app_id=app_id or desktop_id(Path(path.name)),
            path=path,
            name=name,
            generic_name=group.get("GenericName") or None,
            comment=group.get("Comment") or None,
            exec_line=group.get("Exec") or None,
            try_exec=group.get("TryExec") or None,
            icon=group.get("Icon") or None,
            categories=tuple(c for c in (group.get("Categories") or "").split(";") if c),
            version=group.get("X-AppVersion") or None,
            no_display=_parse_bool(group.get("NoDisplay")),
            hidden=_parse_bool(group.get("Hidden")),
            entry_type=(group.get("Type") or "").strip(),
            terminal=_parse_bool(group.get("Terminal")),
        )

    def to_descriptor(self, entry: DesktopEntry) -> RawApplicationDescriptor:
        """Map a parsed entry onto the platform-neutral descriptor."""
        try:
            stat = entry.path.stat()
            installed_at = datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc)
            updated_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        except OSError:
            installed_at = updated_at = None

        version_ordinal = 0
        if entry.version and entry.version.isdigit():
            version_ordinal = int(entry.version)

        return RawApplicationDescriptor(
            id=entry.app_id,
            display_name=entry.name,
            secondary_name=entry.generic_name or entry.comment,
            version_label=entry.version,
            version_ordinal=version_ordinal,
            is_system_component=not self._is_user_entry(entry.path),
            installed_at=installed_at,
            updated_at=updated_at,
            category=category_for(entry.categories),
            enabled=not entry.no_display,
        )

    def _is_user_entry(self, path: Path) -> bool:
        if self.user_dir is None:
            return False
        try:
            path.relative_to(self.user_dir)
        except ValueError:
            return False
        return True


def category_for(categories: Iterable[str]) -> Category:
    """Coarse category for a desktop entry's ``Categories`` list."""
    present = set(categories)
    for keys, category in _CATEGORY_MAP:
        if present & keys:
            return category
    return Category.OTHER


def _log_walk_error(exc: OSError) -> None:
    logger.debug("Skipping unreadable applications subdirectory: %s", exc)


def _describe(exc: OSError, path: Path | None = None) -> str:
    where = path if path is not None else exc.filename
    return f"{where}: {exc.strerror or exc}"


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class DirectoryListingStrategy(DiscoveryStrategy):
    """Full listing of every applications directory."""

    name = "directory-listing"
    authoritative = True

    def __init__(self, reader: DesktopEntryReader) -> None:
        self.reader = reader

    def enumerate(self) -> list[RawApplicationDescriptor]:
        found: dict[str, RawApplicationDescriptor] = {}
        shadowed: set[str] = set()
        denied: list[str] = []
        listed = 0

        for directory in self.reader.application_dirs:
            walk_errors: list[OSError] = []
            try:
                entries = list(self.reader.iter_directory(directory, walk_errors))
            except PermissionError as exc:
                denied.append(f"{directory}: {exc.strerror or exc}")
                continue
            listed += 1
            denied.extend(_describe(e) for e in walk_errors)
            for app_id, path in entries:
                if app_id in found or app_id in shadowed:
                    continue
                try:
                    entry = self.reader.load(path, app_id)
                except OSError as exc:
                    denied.append(_describe(exc, path))
                    continue
                if entry is None:
                    continue
                if not entry.is_application:
                    # A Hidden=true user copy deletes the system entry too.
                    shadowed.add(app_id)
                    continue
                found[app_id] = self.reader.to_descriptor(entry)

        descriptors = list(found.values())
        if denied and listed == 0:
            raise PermissionDenied(self.name, "; ".join(denied))
        if denied:
            raise PartialResult(self.name, descriptors, "; ".join(denied))
        return descriptors


class MimeHandlerStrategy(DiscoveryStrategy):
    """Resolve every id registered as a MIME handler.

    Reads ``mimeinfo.cache`` and ``mimeapps.list`` in the application and
    config directories, then opens each referenced entry by exact path.
    """

    name = "mime-handlers"

    def __init__(
        self,
        reader: DesktopEntryReader,
        config_dirs: Sequence[Path] | None = None,
    ) -> None:
        self.reader = reader
        self.config_dirs = list(config_dirs) if config_dirs is not None else default_config_dirs()

    def registered_ids(self) -> tuple[list[str], int, int]:
        """Return (ids, files_read, files_denied) from every handler registry."""
        ids: list[str] = []
        read = denied = 0
        for directory in [*self.reader.application_dirs, *self.config_dirs]:
            for filename in _MIME_CACHE_FILES:
                path = directory / filename
                try:
                    text = path.read_text(encoding="utf-8", errors="replace")
                except FileNotFoundError:
                    continue
                except PermissionError:
                    denied += 1
                    continue
                except OSError:
                    continue
                read += 1
                ids.extend(_handler_ids(text))
        return list(dict.fromkeys(ids)), read, denied

    def enumerate(self) -> list[RawApplicationDescriptor]:
        ids, read, denied = self.registered_ids()
        if read == 0 and denied:
            raise PermissionDenied(self.name, f"{denied} handler registry file(s) unreadable")

        descriptors: list[RawApplicationDescriptor] = []
        for app_id in ids:
            entry = self.reader.find(app_id)
            if entry is not None and entry.is_application:
                descriptors.append(self.reader.to_descriptor(entry))
        return descriptors


class KnownIdentifierStrategy(DiscoveryStrategy):
    """Probe a fixed list of well-known ids one by one."""

    name = "known-identifiers"

    def __init__(self, reader: DesktopEntryReader, known_ids: Iterable[str]) -> None:
        self.reader = reader
        self.known_ids = list(dict.fromkeys(known_ids))

    def enumerate(self) -> list[RawApplicationDescriptor]:
        descriptors: list[RawApplicationDescriptor] = []
        for app_id in self.known_ids:
            entry = self.reader.find(app_id)
            if entry is not None and entry.is_application:
                descriptors.append(self.reader.to_descriptor(entry))
        return descriptors


def _handler_ids(text: str) -> Iterator[str]:
    """Desktop ids listed in a mimeinfo.cache / mimeapps.list body."""
    parser = configparser.ConfigParser(interpolation=None, strict=False, delimiters=("=",))
    parser.optionxform = str
    try:
        parser.read_string(text)
    except configparser.Error as exc:
        logger.debug("Skipping malformed MIME handler registry: %s", exc)
        return
    for group in _MIME_GROUPS:
        if not parser.has_section(group):
            continue
        for value in parser[group].values():
            for item in value.split(";"):
                item = item.strip()
                if item.endswith(_SUFFIX):
                    yield item[: -len(_SUFFIX)]
