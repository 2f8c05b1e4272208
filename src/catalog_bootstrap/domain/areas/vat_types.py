"""VAT types, keyed by name and re-read after creation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecVatType

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

VAT_TYPES_QUERY = """
query GET_INSTANCE_VAT_TYPES($instanceId: ID!) {
  instance {
    get(id: $instanceId) {
      vatTypes {
        id
        instanceId
        name
        percent
      }
    }
  }
}
"""

CREATE_VAT_TYPE_MUTATION = """
mutation CREATE_VAT_TYPE($input: CreateVatTypeInput!) {
  vatType {
    create(input: $input) {
      id
      name
      percent
    }
  }
}
"""


async def get_existing_vat_types(context: BootstrapContext) -> list[SpecVatType]:
    response = await context.call_management(VAT_TYPES_QUERY, {"instanceId": context.instance_id})
    return parse_records(
        SpecVatType, response.select("instance", "get", "vatTypes"), area="vat types"
    )


async def reconcile_vat_types(
    spec_vat_types: Sequence[SpecVatType] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecVatType]:
    async def fetch_existing() -> list[SpecVatType]:
        return await get_existing_vat_types(context)

    async def create(vat_type: SpecVatType) -> GraphQLResponse:
        return await context.call_management(
            CREATE_VAT_TYPE_MUTATION,
            {
                "input": {
                    "instanceId": context.instance_id,
                    "name": vat_type.name,
                    "percent": vat_type.percent,
                }
            },
        )

    reconciler = AreaReconciler[SpecVatType](
        label="vat type",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda vat_type: vat_type.name,
        describe=lambda vat_type: vat_type.name,
        refetch=True,
    )
    return await reconciler.reconcile(spec_vat_types, on_update=on_update)
