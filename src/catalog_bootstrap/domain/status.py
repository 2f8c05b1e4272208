"""Immutable per-area status snapshots.

Every update builds a fresh ``Status``; unchanged ``AreaStatus`` values are
shared between snapshots. A consumer holding an older snapshot never observes
a later change.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


class Area(StrEnum):
    LANGUAGES = "languages"
    PRICE_VARIANTS = "priceVariants"
    STOCK_LOCATIONS = "stockLocations"
    SUBSCRIPTION_PLANS = "subscriptionPlans"
    VAT_TYPES = "vatTypes"
    SHAPES = "shapes"
    TOPIC_MAPS = "topicMaps"
    GRIDS = "grids"
    ITEMS = "items"
    CUSTOMERS = "customers"
    ORDERS = "orders"


@dataclass(frozen=True, slots=True)
class AreaWarning:
    message: str
    cause: str | None = None


@dataclass(frozen=True, slots=True)
class AreaUpdate:
    """One report from a reconciler.

    Message-only updates are informational and leave the status untouched.
    """

    message: str | None = None
    progress: float | None = None
    warning: AreaWarning | None = None

    def __post_init__(self) -> None:
        if self.progress is not None and not 0.0 <= self.progress <= 1.0:
            raise ValueError(f"progress must be within [0, 1], got {self.progress}")

    @property
    def changes_status(self) -> bool:
        return self.progress is not None or self.warning is not None


@dataclass(frozen=True, slots=True)
class AreaStatus:
    progress: float = 0.0
    warnings: tuple[AreaWarning, ...] = ()

    def apply(self, update: AreaUpdate) -> AreaStatus:
        updated = self
        if update.progress is not None:
            updated = replace(updated, progress=update.progress)
        if update.warning is not None:
            updated = replace(updated, warnings=(*updated.warnings, update.warning))
        return updated


def _initial_areas() -> Mapping[Area, AreaStatus]:
    empty = AreaStatus()
    return MappingProxyType(dict.fromkeys(Area, empty))


@dataclass(frozen=True, slots=True)
class Status:
    areas: Mapping[Area, AreaStatus] = field(default_factory=_initial_areas)

    def __getitem__(self, area: Area) -> AreaStatus:
        return self.areas[area]

    def __iter__(self) -> Iterator[Area]:
        return iter(self.areas)

    def with_area(self, area: Area, status: AreaStatus) -> Status:
        areas = dict(self.areas)
        areas[area] = status
        return Status(areas=MappingProxyType(areas))

    @property
    def warnings(self) -> dict[Area, tuple[AreaWarning, ...]]:
        return {area: status.warnings for area, status in self.areas.items() if status.warnings}


class StatusAggregator:
    """Hold the latest ``Status`` and derive successors from ``AreaUpdate`` reports."""

    def __init__(self) -> None:
        self._status = Status()

    @property
    def snapshot(self) -> Status:
        return self._status

    def apply(self, area: Area, update: AreaUpdate) -> Status | None:
        """Return the new snapshot, or ``None`` when ``update`` carries nothing to record."""

        if not update.changes_status:
            return None
        self._status = self._status.with_area(area, self._status[area].apply(update))
        return self._status
