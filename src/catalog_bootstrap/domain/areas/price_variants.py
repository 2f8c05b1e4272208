"""Price variants, keyed by identifier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecPriceVariant

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

PRICE_VARIANTS_QUERY = """
query GET_INSTANCE_PRICE_VARIANTS($instanceId: ID!) {
  priceVariant {
    getMany(instanceId: $instanceId) {
      identifier
      name
      currency
    }
  }
}
"""

CREATE_PRICE_VARIANT_MUTATION = """
mutation CREATE_PRICE_VARIANT($input: CreatePriceVariantInput!) {
  priceVariant {
    create(input: $input) {
      identifier
    }
  }
}
"""


async def get_existing_price_variants(context: BootstrapContext) -> list[SpecPriceVariant]:
    response = await context.call_management(
        PRICE_VARIANTS_QUERY, {"instanceId": context.instance_id}
    )
    return parse_records(
        SpecPriceVariant, response.select("priceVariant", "getMany"), area="price variants"
    )


async def reconcile_price_variants(
    spec_price_variants: Sequence[SpecPriceVariant] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecPriceVariant]:
    async def fetch_existing() -> list[SpecPriceVariant]:
        return await get_existing_price_variants(context)

    async def create(price_variant: SpecPriceVariant) -> GraphQLResponse:
        return await context.call_management(
            CREATE_PRICE_VARIANT_MUTATION,
            {
                "input": {
                    "instanceId": context.instance_id,
                    "identifier": price_variant.identifier,
                    "name": price_variant.name,
                    "currency": price_variant.currency,
                }
            },
        )

    reconciler = AreaReconciler[SpecPriceVariant](
        label="price variant",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda price_variant: price_variant.identifier,
        describe=lambda price_variant: price_variant.name,
    )
    return await reconciler.reconcile(spec_price_variants, on_update=on_update)
