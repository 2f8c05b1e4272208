"""Fetch existing, diff by identity key, create what is missing.

Every flat area (languages, price variants, vat types, ...) runs through
``AreaReconciler``. Creation calls for one area are dispatched concurrently;
the worker limit lives in the transport, not here. A failed creation becomes a
warning on the area and never stops the rest of the batch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import BootstrapError
from .status import AreaUpdate, AreaWarning

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse

log = getLogger(__name__)

type UpdateSink = Callable[[AreaUpdate], None]


@dataclass(frozen=True, slots=True)
class CreationOutcome:
    created: bool
    error: str | None = None


async def attempt_creation(
    create: Callable[[], Awaitable[GraphQLResponse]], *, description: str
) -> CreationOutcome:
    """Run one creation call and fold any failure into a ``CreationOutcome``."""

    try:
        response = await create()
    except BootstrapError:
        raise
    except Exception as exc:
        log.exception("Creating %s failed", description)
        return CreationOutcome(created=False, error=f"{type(exc).__name__}: {exc}")
    if not response.ok:
        return CreationOutcome(created=False, error=response.error_text())
    return CreationOutcome(created=True)


class ProgressCounter:
    """Monotonic ``finished / total`` reporter for one batch."""

    def __init__(self, total: int, on_update: UpdateSink) -> None:
        self.total = total
        self.finished = 0
        self._on_update = on_update

    def advance(self, message: str, warning: AreaWarning | None = None) -> None:
        self.finished += 1
        self._on_update(
            AreaUpdate(message=message, progress=self.finished / self.total, warning=warning)
        )

    def complete(self, description: str, outcome: CreationOutcome) -> None:
        if outcome.created:
            self.advance(f"{description}: added")
            return
        self.advance(
            f"{description}: error",
            AreaWarning(message=f"Could not create {description}", cause=outcome.error),
        )


@dataclass(frozen=True, slots=True)
class AreaReconciler[T]:
    """Parameterised reconciliation for one entity area.

    ``refetch`` re-reads the area after creating so server-computed fields
    (ids) are returned instead of the local spec records.
    ``before_complete`` runs after creation and before the final progress
    report; it may return a replacement result list.
    """

    label: str
    fetch_existing: Callable[[], Awaitable[list[T]]]
    create: Callable[[T], Awaitable[GraphQLResponse]]
    identity_key: Callable[[T], Hashable]
    describe: Callable[[T], str]
    refetch: bool = False
    before_complete: Callable[[list[T]], Awaitable[list[T]]] | None = None

    async def reconcile(self, spec_items: Sequence[T] | None, *, on_update: UpdateSink) -> list[T]:
        existing = await self.fetch_existing()

        if spec_items is None:
            on_update(AreaUpdate(progress=1.0))
            return existing

        missing = self.missing(existing, spec_items)
        created: list[T] = []

        if missing:
            on_update(AreaUpdate(message=f"Adding {len(missing)} {self.label}(s)..."))
            counter = ProgressCounter(len(missing), on_update)

            async def create_one(item: T) -> None:
                description = self.describe(item)
                outcome = await attempt_creation(lambda: self.create(item), description=description)
                if outcome.created:
                    created.append(item)
                counter.complete(description, outcome)

            async with asyncio.TaskGroup() as group:
                for item in missing:
                    group.create_task(create_one(item))

        result = [*existing, *created]
        if self.before_complete is not None:
            result = await self.before_complete(result)
        if self.refetch and created:
            result = await self.fetch_existing()

        on_update(AreaUpdate(progress=1.0))
        return result

    def missing(self, existing: Sequence[T], spec_items: Sequence[T]) -> list[T]:
        seen = {self.identity_key(entity) for entity in existing}
        missing: list[T] = []
        for item in spec_items:
            key = self.identity_key(item)
            if key in seen:
                continue
            seen.add(key)
            missing.append(item)
        return missing
