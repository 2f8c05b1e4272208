"""Resolve item references (external reference or catalog path) to remote ids.

An empty ``ResolvedItem`` is the normal "not created yet" answer, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .context import BootstrapContext

log = getLogger(__name__)

ITEM_BY_EXTERNAL_REFERENCE_QUERY = """
query GET_ID_FROM_EXTERNAL_REFERENCE(
  $externalReferences: [String!]
  $language: String!
  $instanceId: ID!
) {
  item {
    getMany(
      externalReferences: $externalReferences
      language: $language
      instanceId: $instanceId
    ) {
      id
      shape {
        identifier
      }
      tree {
        parentId
      }
    }
  }
}
"""

ITEM_BY_CATALOG_PATH_QUERY = """
query GET_ID_FROM_PATH($path: String, $language: String) {
  catalog(path: $path, language: $language) {
    id
    parent {
      id
    }
  }
}
"""


@dataclass(frozen=True, slots=True)
class ResolvedItem:
    item_id: str | None = None
    parent_id: str | None = None

    @property
    def found(self) -> bool:
        return self.item_id is not None


NOT_FOUND = ResolvedItem()


class ReferenceCache:
    """Memo of resolved references, owned by one run's context.

    Values are deterministic for a key within a run, so concurrent writers may
    race on the same key without locking.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ResolvedItem] = {}

    @staticmethod
    def external_reference_key(external_reference: str) -> str:
        return f"externalReference:{external_reference}"

    @staticmethod
    def path_key(path: str) -> str:
        return f"path:{path}"

    def get(self, key: str) -> ResolvedItem | None:
        return self._entries.get(key)

    def set(self, key: str, value: ResolvedItem) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class ReferenceResolver:
    """Look up items by external reference first, then by catalog path."""

    def __init__(self, context: BootstrapContext) -> None:
        self._context = context

    @property
    def _use_cache(self) -> bool:
        return self._context.config.use_reference_cache

    async def resolve(
        self,
        *,
        external_reference: str | None = None,
        catalog_path: str | None = None,
        language: str,
        instance_id: str | None = None,
        shape_identifier: str | None = None,
    ) -> ResolvedItem:
        resolved = NOT_FOUND

        if external_reference:
            resolved = await self.by_external_reference(
                external_reference,
                language=language,
                instance_id=instance_id or self._context.instance_id,
                shape_identifier=shape_identifier,
            )

        if not resolved.found and catalog_path:
            resolved = await self.by_catalog_path(catalog_path, language=language)
            if not resolved.found:
                # Created earlier in this run but not yet visible on the read API.
                resolved = self._context.item_path_map.get(catalog_path, NOT_FOUND)

        return resolved

    async def by_external_reference(
        self,
        external_reference: str,
        *,
        language: str,
        instance_id: str,
        shape_identifier: str | None = None,
    ) -> ResolvedItem:
        key = ReferenceCache.external_reference_key(external_reference)
        if self._use_cache and (cached := self._context.reference_cache.get(key)) is not None:
            return cached

        response = await self._context.call_management(
            ITEM_BY_EXTERNAL_REFERENCE_QUERY,
            {
                "externalReferences": [external_reference],
                "language": language,
                "instanceId": instance_id,
            },
        )
        items: list[dict[str, Any]] = response.select("item", "getMany") or []
        if shape_identifier:
            items = [
                item
                for item in items
                if (item.get("shape") or {}).get("identifier") == shape_identifier
            ]
        if not items:
            return NOT_FOUND

        first = items[0]
        resolved = ResolvedItem(
            item_id=first.get("id"),
            parent_id=(first.get("tree") or {}).get("parentId"),
        )
        if self._use_cache:
            self._context.reference_cache.set(key, resolved)
        return resolved

    async def by_catalog_path(self, path: str, *, language: str) -> ResolvedItem:
        key = ReferenceCache.path_key(path)
        if self._use_cache and (cached := self._context.reference_cache.get(key)) is not None:
            return cached

        response = await self._context.call_catalog(
            ITEM_BY_CATALOG_PATH_QUERY, {"path": path, "language": language}
        )
        node = response.select("catalog")
        if not isinstance(node, dict) or not node.get("id"):
            return NOT_FOUND

        resolved = ResolvedItem(
            item_id=node["id"], parent_id=(node.get("parent") or {}).get("id")
        )
        if self._use_cache:
            self._context.reference_cache.set(key, resolved)
        log.debug("Resolved catalog path %s to %s", path, resolved.item_id)
        return resolved
