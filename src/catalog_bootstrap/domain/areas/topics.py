"""Topic maps, identified by their path.

A topic's path is its parent's path plus its ``pathIdentifier`` (or a slug of
its name). Missing topics are created one tree level at a time so every
parent exists before its children; siblings are created concurrently.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from catalog_bootstrap.domain.reconcile import CreationOutcome, ProgressCounter, attempt_creation
from catalog_bootstrap.domain.status import AreaUpdate, AreaWarning

from .base import join_path, parent_path, slugify

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink
    from catalog_bootstrap.domain.spec import SpecTopic

log = getLogger(__name__)

TOPICS_QUERY = """
query GET_TOPICS($instanceId: ID!, $language: String!) {
  topic {
    getMany(instanceId: $instanceId, language: $language) {
      id
      name
      path
      parentId
    }
  }
}
"""

CREATE_TOPIC_MUTATION = """
mutation CREATE_TOPIC($input: CreateTopicInput!, $language: String!) {
  topic {
    create(input: $input, language: $language) {
      id
      path
    }
  }
}
"""


@dataclass(frozen=True, slots=True)
class TopicNode:
    topic: SpecTopic
    path: str
    depth: int

    @property
    def parent(self) -> str | None:
        return parent_path(self.path)


def normalize_topic_path(path: str) -> str:
    return "/" + path.strip("/")


def topic_segment(topic: SpecTopic) -> str:
    return topic.path_identifier or slugify(topic.name)


def walk_topics(
    topics: Sequence[SpecTopic], parent: str | None = None, depth: int = 0
) -> Iterator[TopicNode]:
    for topic in topics:
        path = join_path(parent, topic_segment(topic))
        yield TopicNode(topic=topic, path=path, depth=depth)
        yield from walk_topics(topic.children, path, depth + 1)


async def get_existing_topic_paths(context: BootstrapContext) -> dict[str, str]:
    response = await context.call_management(
        TOPICS_QUERY,
        {"instanceId": context.instance_id, "language": context.default_language.code},
    )
    rows: list[dict[str, Any]] = response.select("topic", "getMany") or []
    return {
        normalize_topic_path(row["path"]): row["id"]
        for row in rows
        if row.get("path") and row.get("id")
    }


async def reconcile_topics(
    spec_topics: Sequence[SpecTopic] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> dict[str, str]:
    """Create missing topics; return (and record on the context) path -> topic id."""

    paths = await get_existing_topic_paths(context)
    context.topic_path_map.update(paths)

    if spec_topics is None:
        on_update(AreaUpdate(progress=1.0))
        return dict(context.topic_path_map)

    levels: dict[int, list[TopicNode]] = {}
    seen = set(context.topic_path_map)
    for node in walk_topics(spec_topics):
        if node.path in seen:
            continue
        seen.add(node.path)
        levels.setdefault(node.depth, []).append(node)

    missing = sum(len(nodes) for nodes in levels.values())
    if missing:
        on_update(AreaUpdate(message=f"Adding {missing} topic(s)..."))
        counter = ProgressCounter(missing, on_update)
        language = context.default_language.code

        async def create_topic(node: TopicNode, parent_id: str | None) -> GraphQLResponse:
            topic_input: dict[str, Any] = {
                "instanceId": context.instance_id,
                "name": node.topic.name,
                "pathIdentifier": topic_segment(node.topic),
            }
            if parent_id:
                topic_input["parentId"] = parent_id
            response = await context.call_management(
                CREATE_TOPIC_MUTATION, {"input": topic_input, "language": language}
            )
            topic_id = response.select("topic", "create", "id")
            if response.ok and topic_id:
                context.topic_path_map[node.path] = topic_id
            return response

        async def add(node: TopicNode) -> None:
            parent_id = context.topic_path_map.get(node.parent) if node.parent else None
            if node.parent and parent_id is None:
                counter.advance(
                    f"{node.topic.name}: skipped",
                    AreaWarning(
                        message=f"Could not create topic {node.path}",
                        cause=f"Parent topic {node.parent} does not exist",
                    ),
                )
                return
            outcome = await attempt_creation(
                lambda: create_topic(node, parent_id), description=node.topic.name
            )
            if outcome.created and node.path not in context.topic_path_map:
                outcome = CreationOutcome(created=False, error="No topic id returned")
            counter.complete(node.topic.name, outcome)

        for depth in sorted(levels):
            async with asyncio.TaskGroup() as group:
                for node in levels[depth]:
                    group.create_task(add(node))

    log.debug("Known topic paths: %d", len(context.topic_path_map))
    on_update(AreaUpdate(progress=1.0))
    return dict(context.topic_path_map)
