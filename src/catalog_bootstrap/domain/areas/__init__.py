"""One reconciler per catalog area, in the order the bootstrapper runs them."""

from __future__ import annotations

from .customers import reconcile_customers
from .grids import backfill_grids, reconcile_grids
from .items import reconcile_items
from .languages import get_instance_settings, reconcile_languages
from .orders import reconcile_orders
from .price_variants import reconcile_price_variants
from .shapes import reconcile_shapes
from .stock_locations import reconcile_stock_locations
from .subscription_plans import reconcile_subscription_plans
from .topics import reconcile_topics
from .vat_types import reconcile_vat_types

__all__ = [
    "backfill_grids",
    "get_instance_settings",
    "reconcile_customers",
    "reconcile_grids",
    "reconcile_items",
    "reconcile_languages",
    "reconcile_orders",
    "reconcile_price_variants",
    "reconcile_shapes",
    "reconcile_stock_locations",
    "reconcile_subscription_plans",
    "reconcile_topics",
    "reconcile_vat_types",
]
