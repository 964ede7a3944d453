"""appindex discovery — strategies, composite source and the desktop-entry platform."""

from appindex.discovery.base import (
    DiscoveryResult,
    DiscoverySource,
    DiscoveryStrategy,
    RawApplicationDescriptor,
)
from appindex.discovery.desktop import (
    DesktopEntryReader,
    DirectoryListingStrategy,
    KnownIdentifierStrategy,
    MimeHandlerStrategy,
)
from appindex.discovery.launcher import DesktopLauncher, Launcher

__all__ = [
    "DesktopEntryReader",
    "DesktopLauncher",
    "DirectoryListingStrategy",
    "DiscoveryResult",
    "DiscoverySource",
    "DiscoveryStrategy",
    "KnownIdentifierStrategy",
    "Launcher",
    "MimeHandlerStrategy",
    "RawApplicationDescriptor",
]
