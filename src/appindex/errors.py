"""Error taxonomy for discovery, persistence and launching.

Discovery errors are absorbed by the composite source and the catalog; only
``NoApplicationsDiscovered`` (every strategy came back empty) is surfaced as a
"no applications found" state. ``StoreIOError`` reaches the caller of the
specific store operation. ``LaunchUnavailable`` is converted to ``False`` by
the public launch path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from appindex.discovery.base import RawApplicationDescriptor


class AppIndexError(Exception):
    """Base class for every appindex error."""


class DiscoveryError(AppIndexError):
    """A discovery strategy could not deliver a complete enumeration."""

    def __init__(self, strategy: str, reason: str = "") -> None:
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"{strategy}: {reason}" if reason else strategy)


class PermissionDenied(DiscoveryError):
    """The strategy lacks platform authorization to enumerate applications."""


class PartialResult(DiscoveryError):
    """The strategy succeeded but knows its result is incomplete.

    Attributes:
        descriptors: Whatever the strategy managed to enumerate.
    """

    def __init__(
        self,
        strategy: str,
        descriptors: list[RawApplicationDescriptor],
        reason: str = "",
    ) -> None:
        self.descriptors = list(descriptors)
        super().__init__(strategy, reason)


class NoApplicationsDiscovered(AppIndexError):
    """Every discovery strategy came back empty or failed."""

    def __init__(self, failures: list[DiscoveryError] | None = None) -> None:
        self.failures = list(failures or [])
        detail = "; ".join(str(f) for f in self.failures)
        message = "could not discover any applications"
        super().__init__(f"{message} ({detail})" if detail else message)


class StoreIOError(AppIndexError):
    """A persistence operation failed; the store is left unchanged."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}" if cause else f"{operation} failed")


class LaunchUnavailable(AppIndexError):
    """No launch entry point exists for *app_id*."""

    def __init__(self, app_id: str, reason: str = "") -> None:
        self.app_id = app_id
        self.reason = reason
        super().__init__(f"cannot launch '{app_id}'" + (f": {reason}" if reason else ""))
