"""Items: structural identity through the reference resolver.

The spec's item tree is flattened into nodes, duplicate declarations of the
same item are merged, and nodes are processed one depth level at a time so a
parent is resolved (or created) before its children look it up.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from catalog_bootstrap.domain.errors import MalformedResponseError
from catalog_bootstrap.domain.reconcile import CreationOutcome, ProgressCounter, attempt_creation
from catalog_bootstrap.domain.references import ReferenceCache, ReferenceResolver, ResolvedItem
from catalog_bootstrap.domain.spec import SpecItem
from catalog_bootstrap.domain.status import AreaUpdate, AreaWarning

from .base import join_path, parent_path, slugify
from .topics import normalize_topic_path

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.config import ItemTopicsMode
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

log = getLogger(__name__)

ITEM_TYPES = ("product", "document", "folder")


def _create_item_mutation(item_type: str) -> str:
    input_type = f"Create{item_type.capitalize()}Input"
    return f"""
mutation CREATE_{item_type.upper()}($input: {input_type}!, $language: String!) {{
  {item_type} {{
    create(input: $input, language: $language) {{
      id
    }}
  }}
}}
"""


CREATE_ITEM_MUTATIONS = {item_type: _create_item_mutation(item_type) for item_type in ITEM_TYPES}

CATALOG_CHILDREN_QUERY = """
query GET_CATALOG_CHILDREN($path: String!, $language: String!) {
  catalog(path: $path, language: $language) {
    children {
      id
      name
      type
      path
      externalReference
      shape {
        identifier
      }
      topics {
        path
      }
    }
  }
}
"""


@dataclass(slots=True)
class ItemNode:
    item: SpecItem
    path: str
    depth: int
    parent_key: str | None
    topics: list[str] = field(default_factory=list[str])

    @property
    def key(self) -> str:
        return item_key(self.item, self.path)


@dataclass(frozen=True, slots=True)
class ItemsOutcome:
    created: int = 0
    existing: int = 0
    skipped: int = 0


def item_key(item: SpecItem, path: str) -> str:
    if item.external_reference:
        return f"externalReference:{item.external_reference}"
    return f"path:{path}"


def item_path(item: SpecItem, parent: str | None) -> str:
    if item.catalog_path:
        return item.catalog_path
    return join_path(parent, slugify(item.name))


def walk_items(
    items: Sequence[SpecItem],
    parent: ItemNode | None = None,
    depth: int = 0,
) -> Iterator[ItemNode]:
    for item in items:
        path = item_path(item, parent.path if parent else None)
        node = ItemNode(
            item=item,
            path=path,
            # A declared catalog path may place a top-level entry below another one.
            depth=max(depth, path.strip("/").count("/")),
            parent_key=parent.key if parent else None,
            topics=list(item.topics),
        )
        yield node
        yield from walk_items(item.children, node, node.depth + 1)


def merge_declarations(nodes: Iterator[ItemNode], mode: ItemTopicsMode) -> list[ItemNode]:
    """Collapse repeated declarations of one item into its first occurrence.

    ``amend`` unions the topics of every declaration, ``replace`` keeps the
    topics of the last one.
    """

    merged: dict[str, ItemNode] = {}
    for node in nodes:
        first = merged.get(node.key)
        if first is None:
            merged[node.key] = node
            continue
        if mode == "replace":
            first.topics = list(node.topics)
        else:
            first.topics.extend(topic for topic in node.topics if topic not in first.topics)
    settled_nodes = list(merged.values())
    settle_depths(settled_nodes)
    return settled_nodes


def settle_depths(nodes: Sequence[ItemNode]) -> None:
    """Place every nested node at least one level below its merged parent.

    A merged item keeps the depth of its first declaration, which can be deeper
    than the declaration that nested the children.
    """

    by_key = {node.key: node for node in nodes}
    settled: set[str] = set()

    def settle(node: ItemNode) -> int:
        if node.key in settled:
            return node.depth
        settled.add(node.key)
        parent = by_key.get(node.parent_key) if node.parent_key else None
        if parent is not None:
            node.depth = max(node.depth, settle(parent) + 1)
        return node.depth

    for node in nodes:
        settle(node)


class ItemsReconciler:
    def __init__(self, context: BootstrapContext, on_update: UpdateSink) -> None:
        self._context = context
        self._on_update = on_update
        self._resolver = ReferenceResolver(context)
        self._ids: dict[str, str] = {}
        self._language = context.default_language.code
        self._shape_types = {shape.identifier: shape.type for shape in context.shapes}
        self.created = 0
        self.existing = 0
        self.skipped = 0

    async def run(self, spec_items: Sequence[SpecItem]) -> ItemsOutcome:
        nodes = merge_declarations(walk_items(spec_items), self._context.config.item_topics)
        if nodes:
            self._on_update(AreaUpdate(message=f"Processing {len(nodes)} item(s)..."))
            counter = ProgressCounter(len(nodes), self._on_update)
            levels: dict[int, list[ItemNode]] = {}
            for node in nodes:
                levels.setdefault(node.depth, []).append(node)
            for depth in sorted(levels):
                async with asyncio.TaskGroup() as group:
                    for node in levels[depth]:
                        group.create_task(self._process(node, counter))

        self._on_update(AreaUpdate(progress=1.0))
        return ItemsOutcome(created=self.created, existing=self.existing, skipped=self.skipped)

    async def _process(self, node: ItemNode, counter: ProgressCounter) -> None:
        description = node.item.name
        resolved = await self._resolver.resolve(
            external_reference=node.item.external_reference,
            catalog_path=node.path,
            language=self._language,
            shape_identifier=node.item.shape,
        )
        if resolved.found:
            self._remember(node, resolved)
            self.existing += 1
            counter.advance(f"{description}: exists")
            return

        parent_id, reason = await self._parent_id(node)
        if reason is not None:
            self.skipped += 1
            counter.advance(
                f"{description}: skipped",
                AreaWarning(message=f"Could not create item {node.path}", cause=reason),
            )
            return

        outcome = await attempt_creation(
            lambda: self._create(node, parent_id), description=description
        )
        if outcome.created and node.key not in self._ids:
            outcome = CreationOutcome(created=False, error="No item id returned")
        if outcome.created:
            self.created += 1
        counter.complete(description, outcome)

    async def _parent_id(self, node: ItemNode) -> tuple[str | None, str | None]:
        """Return ``(parent id, None)`` or ``(None, reason the parent is missing)``."""

        if node.parent_key is not None:
            parent_id = self._ids.get(node.parent_key)
            if parent_id is None:
                return None, "Parent item was not created"
            return parent_id, None

        parent = parent_path(node.path)
        if parent is None:
            return None, None
        resolved = await self._resolver.resolve(catalog_path=parent, language=self._language)
        if not resolved.found:
            return None, f"Parent path {parent} does not exist"
        return resolved.item_id, None

    def _topic_ids(self, node: ItemNode) -> list[str]:
        topic_ids: list[str] = []
        for topic in node.topics:
            topic_id = self._context.topic_path_map.get(normalize_topic_path(topic))
            if topic_id is None:
                self._on_update(
                    AreaUpdate(
                        warning=AreaWarning(
                            message=f'Item "{node.item.name}" refers to unknown topic {topic}'
                        )
                    )
                )
                continue
            topic_ids.append(topic_id)
        return topic_ids

    async def _create(self, node: ItemNode, parent_id: str | None) -> GraphQLResponse:
        item_type = self._shape_types.get(node.item.shape, "product")
        item_input: dict[str, Any] = {
            "instanceId": self._context.instance_id,
            "name": node.item.name,
            "shapeIdentifier": node.item.shape,
        }
        if node.item.external_reference:
            item_input["externalReference"] = node.item.external_reference
        if parent_id:
            item_input["tree"] = {"parentId": parent_id}
        if topic_ids := self._topic_ids(node):
            item_input["topicIds"] = topic_ids
        if node.item.components:
            item_input["components"] = node.item.components

        response = await self._context.call_management(
            CREATE_ITEM_MUTATIONS[item_type],
            {"input": item_input, "language": self._language},
        )
        item_id = response.select(item_type, "create", "id")
        if response.ok and item_id:
            log.debug("Created item %s as %s", node.path, item_id)
            self._remember(node, ResolvedItem(item_id=item_id, parent_id=parent_id))
        return response

    def _remember(self, node: ItemNode, resolved: ResolvedItem) -> None:
        if resolved.item_id is None:
            return
        self._ids[node.key] = resolved.item_id
        self._context.item_path_map[node.path] = resolved


async def reconcile_items(
    spec_items: Sequence[SpecItem] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> ItemsOutcome:
    if spec_items is None:
        on_update(AreaUpdate(progress=1.0))
        return ItemsOutcome()
    return await ItemsReconciler(context, on_update).run(spec_items)



async def get_catalog_items(
    context: BootstrapContext, language: str, base_path: str = "/"
) -> list[SpecItem]:
    """Read the catalog tree below ``base_path`` as nested spec items.

    Folders are descended concurrently. With the reference cache enabled every
    item read is recorded, so later lookups of the same paths and references
    stay local.
    """

    return await _catalog_children(context, language, base_path, parent_id=None)


async def _catalog_children(
    context: BootstrapContext, language: str, path: str, *, parent_id: str | None
) -> list[SpecItem]:
    response = await context.call_catalog(
        CATALOG_CHILDREN_QUERY, {"path": path, "language": language}
    )
    rows = response.select("catalog", "children")
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise MalformedResponseError(f"Expected a list of items below {path}")

    async def to_item(row: dict[str, Any]) -> SpecItem:
        item_path = row.get("path") or join_path(path, slugify(row.get("name") or ""))
        if context.config.use_reference_cache and row.get("id"):
            resolved = ResolvedItem(item_id=row["id"], parent_id=parent_id)
            context.reference_cache.set(ReferenceCache.path_key(item_path), resolved)
            if row.get("externalReference"):
                key = ReferenceCache.external_reference_key(row["externalReference"])
                context.reference_cache.set(key, resolved)

        children: list[SpecItem] = []
        if row.get("type") == "folder":
            children = await _catalog_children(
                context, language, item_path, parent_id=row.get("id")
            )
        return SpecItem.model_validate(
            {
                "name": row.get("name") or "",
                "shape": (row.get("shape") or {}).get("identifier") or "",
                "externalReference": row.get("externalReference") or None,
                "catalogPath": item_path,
                "topics": [topic["path"] for topic in row.get("topics") or () if topic.get("path")],
                "children": children,
            }
        )

    async with asyncio.TaskGroup() as group:
        tasks = [group.create_task(to_item(row)) for row in rows]
    return [task.result() for task in tasks]
