"""Shapes, keyed by identifier.

Components of type ``itemRelations`` may restrict the shapes they accept;
references to shapes that still do not exist after the run are warnings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecShape
from catalog_bootstrap.domain.status import AreaUpdate, AreaWarning

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

ITEM_RELATIONS = "itemRelations"

SHAPES_QUERY = """
query GET_SHAPES($instanceId: ID!) {
  shape {
    getMany(instanceId: $instanceId) {
      identifier
      name
      type
      components {
        id
        name
        type
        description
      }
    }
  }
}
"""

CREATE_SHAPE_MUTATION = """
mutation CREATE_SHAPE($input: CreateShapeInput!) {
  shape {
    create(input: $input) {
      identifier
    }
  }
}
"""


async def get_existing_shapes(context: BootstrapContext) -> list[SpecShape]:
    response = await context.call_management(SHAPES_QUERY, {"instanceId": context.instance_id})
    return parse_records(SpecShape, response.select("shape", "getMany"), area="shapes")


def accepted_shapes(shape: SpecShape) -> Iterator[tuple[str, str]]:
    """Yield ``(component id, shape identifier)`` for every relation restriction."""

    for component in shape.components:
        if component.type != ITEM_RELATIONS or not component.config:
            continue
        for identifier in component.config.get("acceptedShapes") or ():
            yield component.id, identifier


async def reconcile_shapes(
    spec_shapes: Sequence[SpecShape] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecShape]:
    async def fetch_existing() -> list[SpecShape]:
        return await get_existing_shapes(context)

    async def create(shape: SpecShape) -> GraphQLResponse:
        return await context.call_management(
            CREATE_SHAPE_MUTATION,
            {"input": {"instanceId": context.instance_id, **shape.to_input()}},
        )

    async def check_relations(shapes: list[SpecShape]) -> list[SpecShape]:
        known = {shape.identifier for shape in shapes}
        for shape in spec_shapes or ():
            for component_id, identifier in accepted_shapes(shape):
                if identifier in known:
                    continue
                on_update(
                    AreaUpdate(
                        warning=AreaWarning(
                            message=(
                                f'Shape "{shape.identifier}" component "{component_id}" '
                                f'accepts unknown shape "{identifier}"'
                            )
                        )
                    )
                )
        return shapes

    reconciler = AreaReconciler[SpecShape](
        label="shape",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda shape: shape.identifier,
        describe=lambda shape: shape.name,
        before_complete=check_relations,
    )
    return await reconciler.reconcile(spec_shapes, on_update=on_update)
