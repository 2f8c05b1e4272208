"""Stock locations, subscription plans, vat types and customers."""

from __future__ import annotations

import asyncio
from typing import Any

from catalog_bootstrap.domain.areas.customers import reconcile_customers
from catalog_bootstrap.domain.areas.stock_locations import reconcile_stock_locations
from catalog_bootstrap.domain.areas.subscription_plans import reconcile_subscription_plans
from catalog_bootstrap.domain.areas.vat_types import reconcile_vat_types
from catalog_bootstrap.domain.spec import (
    SpecCustomer,
    SpecStockLocation,
    SpecSubscriptionPlan,
    SpecVatType,
)
from tests.helpers.graphql import FakeGraphQL, make_context


def _ignore(_update: object) -> None:
    return None


def test_stock_location_minimum_is_sent_only_when_set() -> None:
    remote = FakeGraphQL(
        {
            "GET_INSTANCE_STOCK_LOCATIONS": {
                "stockLocation": {
                    "getMany": [
                        {"identifier": "oslo", "name": "Oslo", "settings": {"minimum": 2}}
                    ]
                }
            },
            "CREATE_STOCK_LOCATION": {"stockLocation": {"create": {"identifier": "x"}}},
        }
    )
    spec = [
        SpecStockLocation(identifier="oslo", name="Oslo"),
        SpecStockLocation(identifier="bergen", name="Bergen", minimum=5),
        SpecStockLocation(identifier="tromso", name="Tromso"),
    ]

    result = asyncio.run(reconcile_stock_locations(spec, make_context(remote), _ignore))

    inputs = {
        call["input"]["identifier"]: call["input"]
        for call in remote.named("CREATE_STOCK_LOCATION")
    }
    assert set(inputs) == {"bergen", "tromso"}
    assert inputs["bergen"]["settings"] == {"minimum": 5}
    assert "settings" not in inputs["tromso"]
    assert result[0] == SpecStockLocation(identifier="oslo", name="Oslo", minimum=2)


def test_vat_types_are_keyed_by_name_and_refetched() -> None:
    reads: list[list[dict[str, Any]]] = [
        [{"id": "1", "name": "Standard", "percent": 25}],
        [
            {"id": "1", "name": "Standard", "percent": 25},
            {"id": "2", "name": "Reduced", "percent": 15},
        ],
    ]
    remote = FakeGraphQL(
        {
            "GET_INSTANCE_VAT_TYPES": lambda _: {"instance": {"get": {"vatTypes": reads.pop(0)}}},
            "CREATE_VAT_TYPE": {"vatType": {"create": {"id": "2"}}},
        }
    )
    spec = [SpecVatType(name="Standard", percent=20), SpecVatType(name="Reduced", percent=15)]

    result = asyncio.run(reconcile_vat_types(spec, make_context(remote), _ignore))

    assert [call["input"]["name"] for call in remote.named("CREATE_VAT_TYPE")] == ["Reduced"]
    assert [vat_type.model_extra for vat_type in result] == [{"id": "1"}, {"id": "2"}]


def test_subscription_plans_tolerate_null_collections() -> None:
    remote = FakeGraphQL(
        {
            "GET_INSTANCE_SUBSCRIPTION_PLANS": {
                "subscriptionPlan": {
                    "getMany": [
                        {
                            "identifier": "basic",
                            "name": None,
                            "meteredVariables": None,
                            "periods": None,
                        }
                    ]
                }
            },
        }
    )

    result = asyncio.run(
        reconcile_subscription_plans(
            [SpecSubscriptionPlan(identifier="basic", name="Basic")], make_context(remote), _ignore
        )
    )

    assert result == [SpecSubscriptionPlan(identifier="basic", name=None)]
    assert remote.count("CREATE_SUBSCRIPTION_PLAN") == 0


def test_customers_are_keyed_by_identifier() -> None:
    remote = FakeGraphQL(
        {
            "GET_CUSTOMERS": {"customer": {"getMany": [{"identifier": "ada@example.test"}]}},
            "CREATE_CUSTOMER": {"customer": {"create": {"identifier": "bob@example.test"}}},
        }
    )
    spec = [
        SpecCustomer(identifier="ada@example.test", firstName="Ada"),
        SpecCustomer(identifier="bob@example.test", firstName="Bob"),
    ]

    asyncio.run(reconcile_customers(spec, make_context(remote), _ignore))

    assert remote.named("CREATE_CUSTOMER") == [
        {
            "input": {
                "instanceId": "instance-1",
                "identifier": "bob@example.test",
                "firstName": "Bob",
            }
        }
    ]
