"""Helpers shared by the area reconcilers."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING

from catalog_bootstrap.domain.errors import MalformedResponseError

if TYPE_CHECKING:
    from pydantic import BaseModel

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def parse_records[M: BaseModel](model: type[M], rows: object, *, area: str) -> list[M]:
    """Validate a list payload into ``model`` instances; a missing list means "none"."""

    if rows is None:
        return []
    if not isinstance(rows, list):
        raise MalformedResponseError(f"Expected a list of {area}, got {type(rows).__name__}")
    return [model.model_validate(row) for row in rows]


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return _SLUG_INVALID.sub("-", normalized.lower()).strip("-")


def join_path(parent: str | None, segment: str) -> str:
    base = (parent or "").rstrip("/")
    return f"{base}/{segment}"


def parent_path(path: str) -> str | None:
    """Return the parent of a catalog path, or ``None`` for top-level paths."""

    trimmed = path.rstrip("/")
    head, _, _ = trimmed.rpartition("/")
    return head or None
