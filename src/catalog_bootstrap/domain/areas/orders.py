"""Orders, sent to the order-management API.

Orders carry no natural key, so a spec order is matched on its ``reference``,
stored on the remote order as a ``reference`` meta entry. Orders without a
reference are created on every run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecOrder

if TYPE_CHECKING:
    from collections.abc import Hashable, Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

REFERENCE_META_KEY = "reference"

ORDERS_QUERY = """
query GET_ORDERS($first: Int!, $after: String) {
  orders {
    getAll(first: $first, after: $after) {
      pageInfo {
        hasNextPage
        endCursor
      }
      edges {
        node {
          id
          meta {
            key
            value
          }
        }
      }
    }
  }
}
"""

CREATE_ORDER_MUTATION = """
mutation CREATE_ORDER($input: CreateOrderInput!) {
  orders {
    create(input: $input) {
      id
    }
  }
}
"""

_PAGE_SIZE = 100


def _reference_of(node: dict[str, Any]) -> str | None:
    for entry in node.get("meta") or ():
        if entry.get("key") == REFERENCE_META_KEY:
            return entry.get("value")
    return None


async def get_existing_orders(context: BootstrapContext) -> list[SpecOrder]:
    orders: list[SpecOrder] = []
    after: str | None = None
    while True:
        response = await context.call_orders(ORDERS_QUERY, {"first": _PAGE_SIZE, "after": after})
        page = response.select("orders", "getAll") or {}
        for edge in page.get("edges") or ():
            node = edge.get("node") or {}
            orders.append(SpecOrder(reference=_reference_of(node), id=node.get("id")))
        page_info = page.get("pageInfo") or {}
        after = page_info.get("endCursor")
        if not page_info.get("hasNextPage") or not after:
            return orders


def order_key(order: SpecOrder) -> Hashable:
    if order.reference:
        return order.reference
    return ("unreferenced", id(order))


async def reconcile_orders(
    spec_orders: Sequence[SpecOrder] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecOrder]:
    async def fetch_existing() -> list[SpecOrder]:
        return await get_existing_orders(context)

    async def create(order: SpecOrder) -> GraphQLResponse:
        payload = order.to_input(exclude={"reference"})
        if order.reference:
            meta = [
                entry
                for entry in payload.get("meta", [])
                if entry.get("key") != REFERENCE_META_KEY
            ]
            meta.append({"key": REFERENCE_META_KEY, "value": order.reference})
            payload["meta"] = meta
        return await context.call_orders(CREATE_ORDER_MUTATION, {"input": payload})

    reconciler = AreaReconciler[SpecOrder](
        label="order",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=order_key,
        describe=lambda order: f"Order {order.reference}" if order.reference else "Order",
    )
    return await reconciler.reconcile(spec_orders, on_update=on_update)
