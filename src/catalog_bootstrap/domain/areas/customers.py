"""Customers, keyed by identifier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecCustomer

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

CUSTOMERS_QUERY = """
query GET_CUSTOMERS($instanceId: ID!) {
  customer {
    getMany(instanceId: $instanceId) {
      identifier
      firstName
      lastName
      email
    }
  }
}
"""

CREATE_CUSTOMER_MUTATION = """
mutation CREATE_CUSTOMER($input: CreateCustomerInput!) {
  customer {
    create(input: $input) {
      identifier
    }
  }
}
"""


async def reconcile_customers(
    spec_customers: Sequence[SpecCustomer] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecCustomer]:
    async def fetch_existing() -> list[SpecCustomer]:
        response = await context.call_management(
            CUSTOMERS_QUERY, {"instanceId": context.instance_id}
        )
        return parse_records(
            SpecCustomer, response.select("customer", "getMany"), area="customers"
        )

    async def create(customer: SpecCustomer) -> GraphQLResponse:
        return await context.call_management(
            CREATE_CUSTOMER_MUTATION,
            {"input": {"instanceId": context.instance_id, **customer.to_input()}},
        )

    reconciler = AreaReconciler[SpecCustomer](
        label="customer",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda customer: customer.identifier,
        describe=lambda customer: customer.identifier,
    )
    return await reconciler.reconcile(spec_customers, on_update=on_update)
