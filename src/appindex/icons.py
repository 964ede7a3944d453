"""Icon cache and the desktop-entry icon resolver.

The cache maps application id → ``IconHandle``. A lookup either returns the
cached handle or resolves, caches and returns it. There is no LRU: once the
cache holds CAPACITY entries, inserting another one clears it first.
Unresolvable ids are not cached.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from appindex.discovery.desktop import DesktopEntryReader

logger = logging.getLogger(__name__)

CAPACITY = 100

_SIZES = ("scalable", "512x512", "256x256", "128x128", "96x96", "64x64", "48x48", "32x32")


@dataclass(frozen=True)
class IconHandle:
    """A loaded icon: where it came from and its raw bytes."""

    app_id: str
    path: Path
    data: bytes = b""

    @property
    def format(self) -> str:
        return self.path.suffix.lstrip(".").lower()


IconResolver = Callable[[str], "IconHandle | None"]


class IconCache:
    """Bounded id → icon mapping, fully cleared at capacity."""

    def __init__(self, resolver: IconResolver, *, capacity: int = CAPACITY) -> None:
        self._resolver = resolver
        self.capacity = capacity
        self._icons: dict[str, IconHandle] = {}
        self._lock = threading.Lock()

    def get(self, app_id: str) -> IconHandle | None:
        with self._lock:
            cached = self._icons.get(app_id)
        if cached is not None:
            return cached

        try:
            handle = self._resolver(app_id)
        except OSError as exc:
            logger.debug("Icon for %s could not be loaded: %s", app_id, exc)
            return None
        if handle is None:
            return None

        with self._lock:
            if app_id not in self._icons and len(self._icons) >= self.capacity:
                logger.debug("Icon cache reached %d entries; clearing", len(self._icons))
                self._icons.clear()
            self._icons[app_id] = handle
        return handle

    def trim(self) -> bool:
        """Clear the cache if it is at or over capacity. Returns True if cleared."""
        with self._lock:
            if len(self._icons) < self.capacity:
                return False
            self._icons.clear()
            return True

    def clear(self) -> None:
        with self._lock:
            self._icons.clear()

    def __contains__(self, app_id: object) -> bool:
        return app_id in self._icons

    def __len__(self) -> int:
        return len(self._icons)


def default_icon_dirs() -> list[Path]:
    """XDG icon theme bases plus pixmaps, highest precedence first."""
    data_home = Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")
    data_dirs = [
        Path(p)
        for p in (os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share").split(":")
        if p
    ]
    bases = [Path.home() / ".icons", data_home / "icons"] + [d / "icons" for d in data_dirs]
    return bases + [Path("/usr/share/pixmaps")]


class DesktopIconResolver:
    """Resolve an entry's ``Icon`` key to a file and load it.

    Absolute ``Icon`` values are used as-is. Names are looked up in the
    ``hicolor`` theme of every base directory (largest size first), then
    directly in each base directory (pixmaps style).
    """

    def __init__(
        self,
        reader: DesktopEntryReader,
        *,
        icon_dirs: Sequence[Path] | None = None,
        extensions: Sequence[str] = ("png", "svg", "xpm"),
    ) -> None:
        self.reader = reader
        self.icon_dirs = list(icon_dirs) if icon_dirs else default_icon_dirs()
        self.extensions = [e.lstrip(".") for e in extensions]

    def __call__(self, app_id: str) -> IconHandle | None:
        entry = self.reader.find(app_id)
        if entry is None or not entry.icon:
            return None
        path = self.locate(entry.icon)
        if path is None:
            return None
        return IconHandle(app_id=app_id, path=path, data=path.read_bytes())

    def locate(self, icon: str) -> Path | None:
        candidate = Path(icon)
        if candidate.is_absolute():
            return candidate if candidate.is_file() else None

        for base in self.icon_dirs:
            for size in _SIZES:
                for ext in self.extensions:
                    path = base / "hicolor" / size / "apps" / f"{icon}.{ext}"
                    if path.is_file():
                        return path
            for ext in self.extensions:
                path = base / f"{icon}.{ext}"
                if path.is_file():
                    return path
        return None
