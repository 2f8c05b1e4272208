"""Session state shared by every area reconciler during one run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import TransportNotReadyError
from .references import ReferenceCache, ResolvedItem
from .spec import SpecLanguage

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from catalog_bootstrap.adapters.graphql import GraphQLClient, GraphQLResponse
    from catalog_bootstrap.config import RunConfig

    from .areas.grids import PendingGrid
    from .spec import (
        SpecCustomer,
        SpecPriceVariant,
        SpecShape,
        SpecStockLocation,
        SpecSubscriptionPlan,
        SpecVatType,
    )


def _noop_error(_message: str) -> None:
    return None


@dataclass(slots=True)
class BootstrapContext:
    """Run-scoped session.

    Reconcilers reach the remote only through ``call_management``,
    ``call_catalog`` and ``call_orders``; they never hold a transport directly.
    """

    config: RunConfig
    instance_id: str = ""
    instance_identifier: str = ""
    default_language: SpecLanguage = field(
        default_factory=lambda: SpecLanguage(code="en", name="English", isDefault=True)
    )
    languages: list[SpecLanguage] = field(default_factory=list["SpecLanguage"])
    management: GraphQLClient | None = None
    catalog: GraphQLClient | None = None
    orders: GraphQLClient | None = None
    reference_cache: ReferenceCache = field(default_factory=ReferenceCache)
    item_path_map: dict[str, ResolvedItem] = field(default_factory=dict[str, ResolvedItem])
    topic_path_map: dict[str, str] = field(default_factory=dict[str, str])
    pending_grids: dict[str, PendingGrid] = field(default_factory=dict[str, "PendingGrid"])
    price_variants: list[SpecPriceVariant] = field(default_factory=list["SpecPriceVariant"])
    stock_locations: list[SpecStockLocation] = field(default_factory=list["SpecStockLocation"])
    subscription_plans: list[SpecSubscriptionPlan] = field(
        default_factory=list["SpecSubscriptionPlan"]
    )
    vat_types: list[SpecVatType] = field(default_factory=list["SpecVatType"])
    shapes: list[SpecShape] = field(default_factory=list["SpecShape"])
    customers: list[SpecCustomer] = field(default_factory=list["SpecCustomer"])
    emit_error: Callable[[str], None] = _noop_error

    @property
    def language_codes(self) -> list[str]:
        return [language.code for language in self.languages] or [self.default_language.code]

    async def call_management(
        self, query: str, variables: Mapping[str, object] | None = None
    ) -> GraphQLResponse:
        if self.management is None:
            raise TransportNotReadyError("Access token is not set")
        return await self.management.push(query, variables)

    async def call_catalog(
        self, query: str, variables: Mapping[str, object] | None = None
    ) -> GraphQLResponse:
        if self.catalog is None:
            raise TransportNotReadyError("Catalog API is not available before instance lookup")
        return await self.catalog.push(query, variables)

    async def call_orders(
        self, query: str, variables: Mapping[str, object] | None = None
    ) -> GraphQLResponse:
        if self.orders is None:
            raise TransportNotReadyError("Orders API is not available before instance lookup")
        return await self.orders.push(query, variables)
