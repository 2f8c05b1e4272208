"""Pydantic models describing GraphQL response envelopes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GraphQLErrorDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str
    path: list[str | int] | None = None
    extensions: dict[str, Any] | None = None


class GraphQLResponse(BaseModel):
    """``{data, errors?}`` envelope returned by every endpoint."""

    model_config = ConfigDict(extra="ignore")

    data: dict[str, Any] | None = None
    errors: list[GraphQLErrorDetail] | None = Field(default=None)

    @property
    def ok(self) -> bool:
        return not self.errors

    def select(self, *path: str) -> Any:
        """Walk ``data`` along ``path`` and return ``None`` as soon as a step is missing."""

        node: Any = self.data
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    def error_text(self) -> str:
        if not self.errors:
            return ""
        return "; ".join(error.message for error in self.errors)

    @classmethod
    def failure(cls, message: str) -> GraphQLResponse:
        return cls(errors=[GraphQLErrorDetail(message=message)])
