"""Read a remote instance back into a ``Spec`` document."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from .areas.grids import get_existing_grids
from .areas.items import get_catalog_items
from .areas.languages import get_instance_settings
from .areas.price_variants import get_existing_price_variants
from .areas.shapes import get_existing_shapes
from .areas.stock_locations import get_existing_stock_locations
from .areas.subscription_plans import get_existing_subscription_plans
from .areas.topics import TOPICS_QUERY, normalize_topic_path
from .areas.vat_types import get_existing_vat_types
from .errors import BootstrapError
from .spec import Spec, SpecModel

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .context import BootstrapContext

log = getLogger(__name__)

_SERVER_FIELDS = frozenset({"id", "instanceId"})


@dataclass(frozen=True, slots=True)
class ExportOptions:
    languages: bool = True
    price_variants: bool = True
    vat_types: bool = True
    stock_locations: bool = True
    subscription_plans: bool = True
    topic_maps: bool = True
    shapes: bool = True
    grids: bool = True
    items: bool = True
    items_base_path: str = "/"
    language: str | None = None


def server_fields(model: SpecModel) -> dict[str | int, Any]:
    """Build a pydantic ``exclude`` mapping for the server ids inside ``model``.

    Only undeclared ``id`` and ``instanceId`` values are server ids; a declared
    ``id`` (a shape component identifier) belongs to the document.
    """

    exclude: dict[str | int, Any] = {
        key: True for key in model.model_extra or {} if key in _SERVER_FIELDS
    }
    for name in type(model).model_fields:
        value = getattr(model, name)
        if isinstance(value, SpecModel):
            if nested := server_fields(value):
                exclude[name] = nested
        elif isinstance(value, tuple):
            entries: dict[str | int, Any] = {}
            for index, entry in enumerate(value):
                if isinstance(entry, SpecModel) and (nested := server_fields(entry)):
                    entries[index] = nested
            if entries:
                exclude[name] = entries
    return exclude


def strip_server_fields(model: SpecModel) -> dict[str, Any]:
    """Dump ``model`` as spec input without server-assigned ids."""

    return model.to_input(exclude=server_fields(model) or None)  # type: ignore[arg-type]


def _records(models: Sequence[SpecModel]) -> list[dict[str, Any]]:
    return [strip_server_fields(model) for model in models]


def build_topic_tree(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Nest flat ``{id, name, path, parentId}`` rows into spec topic maps."""

    nodes: dict[str, dict[str, Any]] = {}
    for row in rows:
        path = normalize_topic_path(row.get("path") or row["name"])
        nodes[row["id"]] = {
            "name": row["name"],
            "pathIdentifier": path.rsplit("/", 1)[-1],
            "children": [],
        }

    roots: list[dict[str, Any]] = []
    for row in rows:
        node = nodes[row["id"]]
        parent = nodes.get(row.get("parentId") or "")
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots


async def export_spec(
    context: BootstrapContext,
    options: ExportOptions | None = None,
    *,
    on_error: Callable[[str], None] | None = None,
) -> Spec:
    """Collect the selected areas of the instance.

    A failure in one area is reported through ``on_error`` and the areas read
    so far are still returned.
    """

    options = options or ExportOptions()
    document: dict[str, Any] = {}

    try:
        settings = await get_instance_settings(context)
        language = options.language or settings.default_language or context.default_language.code

        if options.languages:
            document["languages"] = _records(settings.available_languages)

        if options.vat_types:
            vat_types = await get_existing_vat_types(context)
            document["vatTypes"] = _records(vat_types)

        if options.subscription_plans:
            plans = await get_existing_subscription_plans(context)
            document["subscriptionPlans"] = _records(plans)

        if options.price_variants:
            variants = await get_existing_price_variants(context)
            document["priceVariants"] = _records(variants)

        if options.topic_maps:
            topics = await context.call_management(
                TOPICS_QUERY, {"instanceId": context.instance_id, "language": language}
            )
            document["topicMaps"] = build_topic_tree(topics.select("topic", "getMany") or [])

        if options.shapes:
            shapes = await get_existing_shapes(context)
            document["shapes"] = _records(shapes)

        if options.grids:
            grids = await get_existing_grids(context, language)
            document["grids"] = _records(grids)

        if options.items:
            items = await get_catalog_items(context, language, options.items_base_path)
            document["items"] = _records(items)

        if options.stock_locations:
            locations = await get_existing_stock_locations(context)
            document["stockLocations"] = _records(locations)
    except BootstrapError:
        raise
    except Exception as exc:
        log.exception("Spec export failed")
        if on_error is not None:
            on_error(f"Spec export failed: {exc}")

    return Spec.model_validate(document)

