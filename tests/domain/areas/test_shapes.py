from __future__ import annotations

import asyncio

from catalog_bootstrap.domain.areas.shapes import reconcile_shapes
from catalog_bootstrap.domain.spec import SpecShape, SpecShapeComponent
from tests.helpers.graphql import FakeGraphQL, make_context
from tests.helpers.updates import UpdateRecorder


def test_missing_shapes_are_created_with_components(updates: UpdateRecorder) -> None:
    remote = FakeGraphQL(
        {
            "GET_SHAPES": {
                "shape": {"getMany": [{"identifier": "tee", "name": "Tee", "type": "product"}]}
            },
            "CREATE_SHAPE": {"shape": {"create": {"identifier": "bundle"}}},
        }
    )
    bundle = SpecShape(
        identifier="bundle",
        name="Bundle",
        components=(
            SpecShapeComponent(
                id="related",
                name="Related",
                type="itemRelations",
                config={"acceptedShapes": ["tee", "poster"]},
            ),
        ),
    )

    result = asyncio.run(
        reconcile_shapes(
            [SpecShape(identifier="tee", name="Tee"), bundle], make_context(remote), updates
        )
    )

    created = remote.named("CREATE_SHAPE")
    assert len(created) == 1
    assert created[0]["input"]["identifier"] == "bundle"
    assert created[0]["input"]["components"][0]["config"] == {"acceptedShapes": ["tee", "poster"]}
    assert [shape.identifier for shape in result] == ["tee", "bundle"]
    assert updates.warnings == ['Shape "bundle" component "related" accepts unknown shape "poster"']
