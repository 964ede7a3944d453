"""Domain models for the catalog database layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Vendor prefixes whose system components are normally suppressed by consumers.
_SYSTEM_PREFIXES: tuple[str, ...] = ("org.gnome.", "org.kde.", "org.freedesktop.")
_SYSTEM_MARKERS: tuple[str, ...] = ("packagekit", "wallpaper")


class Category(str, Enum):
    """Coarse classification derived at discovery time."""

    GAME = "game"
    AUDIO = "audio"
    VIDEO = "video"
    SOCIAL = "social"
    PRODUCTIVITY = "productivity"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> Category:
        """Return the member for *value*, falling back to OTHER for unknown text."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.OTHER


@dataclass
class ApplicationRecord:
    """One indexed application, keyed by its stable platform id.

    ``launch_count``, ``last_launched_at`` and ``is_favorite`` are owned by the
    catalog store and survive every discovery cycle. ``transient_score`` is
    set per query evaluation only and is never persisted.
    """

    id: str
    display_name: str
    secondary_name: str | None = None
    version_label: str | None = None
    version_ordinal: int = 0
    is_system_component: bool = False
    installed_at: datetime | None = None
    updated_at: datetime | None = None
    category: Category = Category.OTHER
    enabled: bool = True
    launch_count: int = 0
    last_launched_at: datetime | None = None
    is_favorite: bool = False
    transient_score: float | None = field(default=None, compare=False, repr=False)

    @property
    def label(self) -> str:
        """Name to show: display name, else the raw platform label, else the id."""
        return self.display_name or self.secondary_name or self.id

    @property
    def should_hide(self) -> bool:
        lowered = self.id.lower()
        return self.is_system_component and (
            lowered.startswith(_SYSTEM_PREFIXES)
            or any(marker in lowered for marker in _SYSTEM_MARKERS)
        )


# ------------------------------------------------------------------
# Timestamp helpers: ISO-8601 UTC text, second precision
# ------------------------------------------------------------------


def to_db_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)
