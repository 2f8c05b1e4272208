"""Stock locations, keyed by identifier."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecStockLocation

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

STOCK_LOCATIONS_QUERY = """
query GET_INSTANCE_STOCK_LOCATIONS($instanceId: ID!) {
  stockLocation {
    getMany(instanceId: $instanceId) {
      identifier
      name
      settings {
        minimum
        unlimited
      }
    }
  }
}
"""

CREATE_STOCK_LOCATION_MUTATION = """
mutation CREATE_STOCK_LOCATION($input: CreateStockLocationInput!) {
  stockLocation {
    create(input: $input) {
      identifier
    }
  }
}
"""


def _from_remote(row: dict[str, Any]) -> dict[str, Any]:
    settings = row.get("settings") or {}
    return {
        "identifier": row.get("identifier"),
        "name": row.get("name"),
        "minimum": settings.get("minimum"),
    }


async def get_existing_stock_locations(context: BootstrapContext) -> list[SpecStockLocation]:
    response = await context.call_management(
        STOCK_LOCATIONS_QUERY, {"instanceId": context.instance_id}
    )
    rows = response.select("stockLocation", "getMany")
    if isinstance(rows, list):
        rows = [_from_remote(row) for row in rows if isinstance(row, dict)]
    return parse_records(SpecStockLocation, rows, area="stock locations")


async def reconcile_stock_locations(
    spec_stock_locations: Sequence[SpecStockLocation] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecStockLocation]:
    async def fetch_existing() -> list[SpecStockLocation]:
        return await get_existing_stock_locations(context)

    async def create(stock_location: SpecStockLocation) -> GraphQLResponse:
        payload: dict[str, Any] = {
            "instanceId": context.instance_id,
            "identifier": stock_location.identifier,
            "name": stock_location.name,
        }
        if stock_location.minimum is not None:
            payload["settings"] = {"minimum": stock_location.minimum}
        return await context.call_management(CREATE_STOCK_LOCATION_MUTATION, {"input": payload})

    reconciler = AreaReconciler[SpecStockLocation](
        label="stock location",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda stock_location: stock_location.identifier,
        describe=lambda stock_location: stock_location.name,
    )
    return await reconciler.reconcile(spec_stock_locations, on_update=on_update)
