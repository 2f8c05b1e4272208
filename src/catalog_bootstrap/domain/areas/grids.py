"""Grids, keyed by name.

Grid cells point at items. The first pass runs before the items phase, so
cells referring to items created later in the same run cannot resolve yet;
such grids are remembered on the context and ``backfill_grids`` updates them
once items exist.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from catalog_bootstrap.domain.reconcile import AreaReconciler, ProgressCounter, attempt_creation
from catalog_bootstrap.domain.references import ReferenceResolver
from catalog_bootstrap.domain.spec import SpecGrid
from catalog_bootstrap.domain.status import AreaUpdate, AreaWarning

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

GRIDS_QUERY = """
query GET_GRIDS($instanceId: ID!, $language: String!) {
  grid {
    getMany(instanceId: $instanceId, language: $language) {
      id
      name
      rows {
        columns {
          item {
            externalReference
            tree {
              path(language: $language)
            }
          }
          layout {
            rowspan
            colspan
          }
        }
      }
    }
  }
}
"""

CREATE_GRID_MUTATION = """
mutation CREATE_GRID($input: CreateGridInput!, $language: String!) {
  grid {
    create(input: $input, language: $language) {
      id
    }
  }
}
"""

UPDATE_GRID_MUTATION = """
mutation UPDATE_GRID($id: ID!, $input: UpdateGridInput!, $language: String!) {
  grid {
    update(id: $id, input: $input, language: $language) {
      id
    }
  }
}
"""


@dataclass(frozen=True, slots=True)
class PendingGrid:
    grid_id: str
    grid: SpecGrid


@dataclass(frozen=True, slots=True)
class GridRowsInput:
    rows: list[dict[str, Any]]
    unresolved: int


def _remote_grid(row: dict[str, Any]) -> dict[str, Any]:
    rows = []
    for remote_row in row.get("rows") or ():
        columns = []
        for column in remote_row.get("columns") or ():
            item = column.get("item")
            columns.append(
                {
                    "layout": column.get("layout"),
                    "item": None
                    if not item
                    else {
                        "externalReference": item.get("externalReference"),
                        "catalogPath": (item.get("tree") or {}).get("path"),
                    },
                }
            )
        rows.append({"columns": columns})
    return {**row, "rows": rows}


async def get_existing_grids(
    context: BootstrapContext, language: str | None = None
) -> list[SpecGrid]:
    response = await context.call_management(
        GRIDS_QUERY,
        {"instanceId": context.instance_id, "language": language or context.default_language.code},
    )
    rows = response.select("grid", "getMany")
    if isinstance(rows, list):
        rows = [_remote_grid(row) for row in rows]
    return parse_records(SpecGrid, rows, area="grids")


async def build_rows(grid: SpecGrid, context: BootstrapContext) -> GridRowsInput:
    """Resolve every cell's item reference into a grid rows input."""

    resolver = ReferenceResolver(context)
    language = context.default_language.code
    rows: list[dict[str, Any]] = []
    unresolved = 0
    for row in grid.rows:
        columns: list[dict[str, Any]] = []
        for column in row.columns:
            cell: dict[str, Any] = {}
            if column.layout is not None:
                cell["layout"] = column.layout
            if column.item is not None and not column.item.is_empty:
                resolved = await resolver.resolve(
                    external_reference=column.item.external_reference,
                    catalog_path=column.item.catalog_path,
                    language=language,
                )
                if resolved.found:
                    cell["itemId"] = resolved.item_id
                else:
                    unresolved += 1
            columns.append(cell)
        rows.append({"columns": columns})
    return GridRowsInput(rows=rows, unresolved=unresolved)


async def reconcile_grids(
    spec_grids: Sequence[SpecGrid] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecGrid]:
    language = context.default_language.code

    async def fetch_existing() -> list[SpecGrid]:
        return await get_existing_grids(context)

    async def create(grid: SpecGrid) -> GraphQLResponse:
        rows = await build_rows(grid, context)
        response = await context.call_management(
            CREATE_GRID_MUTATION,
            {
                "input": {"instanceId": context.instance_id, "name": grid.name, "rows": rows.rows},
                "language": language,
            },
        )
        grid_id = response.select("grid", "create", "id")
        if response.ok and grid_id and rows.unresolved:
            context.pending_grids[grid.name] = PendingGrid(grid_id=grid_id, grid=grid)
        return response

    reconciler = AreaReconciler[SpecGrid](
        label="grid",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda grid: grid.name,
        describe=lambda grid: grid.name,
    )
    return await reconciler.reconcile(spec_grids, on_update=on_update)


async def backfill_grids(context: BootstrapContext, on_update: UpdateSink) -> int:
    """Update grids created earlier in this run that had unresolved cells.

    Returns the number of grids updated.
    """

    pending = list(context.pending_grids.values())
    if not pending:
        on_update(AreaUpdate(progress=1.0))
        return 0

    on_update(AreaUpdate(message=f"Updating {len(pending)} grid(s) with item references..."))
    counter = ProgressCounter(len(pending), on_update)
    language = context.default_language.code
    updated = 0

    async def update_one(entry: PendingGrid) -> None:
        nonlocal updated
        rows = await build_rows(entry.grid, context)

        async def send() -> GraphQLResponse:
            return await context.call_management(
                UPDATE_GRID_MUTATION,
                {"id": entry.grid_id, "input": {"rows": rows.rows}, "language": language},
            )

        outcome = await attempt_creation(send, description=entry.grid.name)
        if not outcome.created:
            counter.advance(
                f"{entry.grid.name}: error",
                AreaWarning(
                    message=f"Could not update grid {entry.grid.name}", cause=outcome.error
                ),
            )
            return
        updated += 1
        context.pending_grids.pop(entry.grid.name, None)
        if rows.unresolved:
            counter.advance(
                f"{entry.grid.name}: updated",
                AreaWarning(
                    message=f"Grid {entry.grid.name} has {rows.unresolved} unresolved item(s)"
                ),
            )
            return
        counter.advance(f"{entry.grid.name}: updated")

    async with asyncio.TaskGroup() as group:
        for entry in pending:
            group.create_task(update_one(entry))

    on_update(AreaUpdate(progress=1.0))
    return updated
