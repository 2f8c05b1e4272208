"""Generic fetch / diff / create behaviour, exercised through price variants."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from catalog_bootstrap.domain.areas.price_variants import reconcile_price_variants
from catalog_bootstrap.domain.errors import BootstrapError, TransportNotReadyError
from catalog_bootstrap.domain.reconcile import AreaReconciler, attempt_creation
from catalog_bootstrap.domain.spec import SpecPriceVariant
from tests.helpers.graphql import FakeGraphQL, data, error, make_context

if TYPE_CHECKING:
    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from tests.helpers.updates import UpdateRecorder

EUR = SpecPriceVariant(identifier="eur", name="Euro", currency="EUR")
USD = SpecPriceVariant(identifier="usd", name="Dollar", currency="USD")
NOK = SpecPriceVariant(identifier="nok", name="Krone", currency="NOK")


def _remote(*variants: SpecPriceVariant) -> FakeGraphQL:
    """A management API holding ``variants`` that stores whatever is created."""

    stored: list[dict[str, Any]] = [variant.to_input() for variant in variants]

    def create(variables: dict[str, Any]) -> GraphQLResponse | dict[str, Any]:
        payload = variables["input"]
        if payload["identifier"] == "fail":
            return error("Identifier is reserved")
        stored.append({key: payload[key] for key in ("identifier", "name", "currency")})
        return {"priceVariant": {"create": {"identifier": payload["identifier"]}}}

    return FakeGraphQL(
        {
            "GET_INSTANCE_PRICE_VARIANTS": lambda _: data(
                {"priceVariant": {"getMany": list(stored)}}
            ),
            "CREATE_PRICE_VARIANT": create,
        }
    )


def _run(
    remote: FakeGraphQL,
    spec: list[SpecPriceVariant] | None,
    updates: UpdateRecorder,
) -> list[SpecPriceVariant]:
    context = make_context(remote)
    return asyncio.run(reconcile_price_variants(spec, context, updates))


def test_euro_is_created_once_with_progress_one_then_one(updates: UpdateRecorder) -> None:
    remote = _remote()

    result = _run(remote, [EUR], updates)

    assert remote.count("CREATE_PRICE_VARIANT") == 1
    assert remote.named("CREATE_PRICE_VARIANT")[0]["input"] == {
        "instanceId": "instance-1",
        "identifier": "eur",
        "name": "Euro",
        "currency": "EUR",
    }
    assert updates.progress == [1.0, 1.0]
    assert result == [EUR]


def test_second_run_creates_nothing(updates: UpdateRecorder) -> None:
    remote = _remote()
    _run(remote, [EUR, USD], updates)

    second = _run(remote, [EUR, USD], updates)

    assert remote.count("CREATE_PRICE_VARIANT") == 2
    assert {variant.identifier for variant in second} == {"eur", "usd"}


def test_unmanaged_area_only_reads(updates: UpdateRecorder) -> None:
    remote = _remote(EUR)

    result = _run(remote, None, updates)

    assert result == [EUR]
    assert remote.count("CREATE_PRICE_VARIANT") == 0
    assert updates.progress == [1.0]


def test_nothing_missing_reports_progress_once(updates: UpdateRecorder) -> None:
    remote = _remote(EUR)

    _run(remote, [EUR], updates)

    assert updates.progress == [1.0]
    assert updates.messages == []


def test_failed_creation_is_a_warning_and_the_batch_continues(
    updates: UpdateRecorder,
) -> None:
    remote = _remote()
    failing = SpecPriceVariant(identifier="fail", name="Broken", currency="XXX")

    result = _run(remote, [EUR, failing, USD], updates)

    assert remote.count("CREATE_PRICE_VARIANT") == 3
    assert {variant.identifier for variant in result} == {"eur", "usd"}
    assert updates.warnings == ["Could not create Broken"]
    assert "Broken: error" in updates.messages


def test_progress_is_monotonic_with_one_report_per_creation(updates: UpdateRecorder) -> None:
    remote = _remote()

    _run(remote, [EUR, USD, NOK], updates)

    assert updates.progress == sorted(updates.progress)
    assert len(updates.progress) == 4
    assert updates.progress[-1] == 1.0
    assert updates.messages[0] == "Adding 3 price variant(s)..."


def test_duplicate_spec_entries_are_created_once(updates: UpdateRecorder) -> None:
    remote = _remote()

    _run(remote, [EUR, EUR], updates)

    assert remote.count("CREATE_PRICE_VARIANT") == 1


def test_refetch_replaces_local_results_after_creation() -> None:
    fetched = [[{"id": 1}], [{"id": 1}, {"id": 2, "server": True}]]

    async def fetch_existing() -> list[dict[str, Any]]:
        return fetched.pop(0)

    async def create(_item: dict[str, Any]) -> GraphQLResponse:
        return data({})

    reconciler = AreaReconciler[dict[str, Any]](
        label="thing",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda item: item["id"],
        describe=lambda item: str(item["id"]),
        refetch=True,
    )

    result = asyncio.run(reconciler.reconcile([{"id": 2}], on_update=lambda _: None))

    assert result == [{"id": 1}, {"id": 2, "server": True}]


def test_attempt_creation_folds_unexpected_exceptions() -> None:
    async def explode() -> GraphQLResponse:
        raise KeyError("id")

    outcome = asyncio.run(attempt_creation(explode, description="Thing"))

    assert not outcome.created
    assert outcome.error is not None
    assert "KeyError" in outcome.error


def test_attempt_creation_propagates_bootstrap_errors() -> None:
    async def not_ready() -> GraphQLResponse:
        raise TransportNotReadyError("Access token is not set")

    with pytest.raises(BootstrapError):
        asyncio.run(attempt_creation(not_ready, description="Thing"))
