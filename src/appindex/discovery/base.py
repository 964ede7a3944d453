"""Discovery source — best-effort enumeration of installed applications.

A ``DiscoverySource`` runs several ``DiscoveryStrategy`` implementations in
order and merges whatever they return, first report wins per id. A strategy
signals trouble with ``PermissionDenied`` (nothing visible) or
``PartialResult`` (something visible, known incomplete); neither is fatal.
Only when the merged enumeration is empty does the source raise
``NoApplicationsDiscovered``.

The merged result is *complete* only when an authoritative strategy (one that
lists everything it can see, as opposed to probing) finished cleanly. Callers
use that flag to decide whether absent ids may be deleted.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from appindex.db.models import ApplicationRecord, Category
from appindex.errors import (
    DiscoveryError,
    NoApplicationsDiscovered,
    PartialResult,
    PermissionDenied,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawApplicationDescriptor:
    """What the platform reports about one installed application."""

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

    def to_record(self) -> ApplicationRecord:
        """A fresh record with zero usage statistics."""
        return ApplicationRecord(
            id=self.id,
            display_name=self.display_name,
            secondary_name=self.secondary_name,
            version_label=self.version_label,
            version_ordinal=self.version_ordinal,
            is_system_component=self.is_system_component,
            installed_at=self.installed_at,
            updated_at=self.updated_at,
            category=self.category,
            enabled=self.enabled,
        )


class DiscoveryStrategy(ABC):
    """One way of asking the platform which applications are installed.

    Subclasses set ``name`` and, if they list everything visible rather than
    probing for specific ids, ``authoritative = True``.
    """

    name: str = "strategy"
    authoritative: bool = False

    @abstractmethod
    def enumerate(self) -> list[RawApplicationDescriptor]:
        """Return the applications this strategy can see.

        Raises:
            PermissionDenied: The strategy is not authorised to look.
            PartialResult: Some applications were found but the strategy knows
                it could not see everything.
        """


@dataclass
class DiscoveryResult:
    """Merged output of one discovery pass.

    Attributes:
        descriptors: De-duplicated descriptors, in strategy order.
        complete: True when an authoritative strategy finished cleanly.
        failures: Every PermissionDenied / PartialResult / other strategy error.
        sources: Per-strategy count of descriptors contributed.
    """

    descriptors: list[RawApplicationDescriptor] = field(default_factory=list)
    complete: bool = False
    failures: list[DiscoveryError] = field(default_factory=list)
    sources: dict[str, int] = field(default_factory=dict)

    @property
    def ids(self) -> set[str]:
        return {d.id for d in self.descriptors}

    def __len__(self) -> int:
        return len(self.descriptors)


class DiscoverySource:
    """Aggregate of strategies: try each in order, merge what succeeds.

    Args:
        strategies: Strategies in preference order; earlier ones win ties.
        hidden_ids: Id fragments that are never reported (substring match).
        self_id: The caller's own id, never reported.
    """

    def __init__(
        self,
        strategies: Sequence[DiscoveryStrategy],
        *,
        hidden_ids: Iterable[str] = (),
        self_id: str | None = None,
    ) -> None:
        self.strategies = list(strategies)
        self.hidden_ids = tuple(h for h in hidden_ids if h)
        self.self_id = self_id

    def enumerate(self) -> DiscoveryResult:
        """Run every strategy and merge the successes.

        Raises:
            NoApplicationsDiscovered: When no strategy produced any application.
        """
        result = DiscoveryResult()
        seen: set[str] = set()

        for strategy in self.strategies:
            found, clean = self._run(strategy, result.failures)
            added = 0
            for descriptor in found:
                if descriptor.id in seen or self._is_hidden(descriptor.id):
                    continue
                seen.add(descriptor.id)
                result.descriptors.append(descriptor)
                added += 1
            result.sources[strategy.name] = added
            if clean and strategy.authoritative:
                result.complete = True

        if not result.descriptors:
            logger.warning("No applications discovered by %d strategies", len(self.strategies))
            raise NoApplicationsDiscovered(result.failures)

        logger.info(
            "Discovered %d application(s) (%s)%s",
            len(result.descriptors),
            ", ".join(f"{k}={v}" for k, v in result.sources.items()),
            "" if result.complete else "; enumeration incomplete",
        )
        return result

    def _run(
        self, strategy: DiscoveryStrategy, failures: list[DiscoveryError]
    ) -> tuple[list[RawApplicationDescriptor], bool]:
        """Run one strategy; returns (descriptors, finished_cleanly)."""
        try:
            return strategy.enumerate(), True
        except PermissionDenied as exc:
            logger.info("Discovery strategy %s not permitted: %s", strategy.name, exc.reason)
            failures.append(exc)
        except PartialResult as exc:
            logger.info(
                "Discovery strategy %s returned a partial result (%d found): %s",
                strategy.name,
                len(exc.descriptors),
                exc.reason,
            )
            failures.append(exc)
            return exc.descriptors, False
        except DiscoveryError as exc:
            logger.info("Discovery strategy %s failed: %s", strategy.name, exc)
            failures.append(exc)
        except PermissionError as exc:
            logger.info("Discovery strategy %s not permitted: %s", strategy.name, exc)
            failures.append(PermissionDenied(strategy.name, str(exc)))
        except OSError as exc:
            logger.info("Discovery strategy %s failed: %s", strategy.name, exc)
            failures.append(DiscoveryError(strategy.name, str(exc)))
        except Exception as exc:
            logger.warning(
                "Discovery strategy %s raised unexpectedly: %s", strategy.name, exc, exc_info=True
            )
            failures.append(DiscoveryError(strategy.name, str(exc)))
        return [], False

    def _is_hidden(self, app_id: str) -> bool:
        if self.self_id and app_id == self.self_id:
            return True
        return any(hidden in app_id for hidden in self.hidden_ids)
