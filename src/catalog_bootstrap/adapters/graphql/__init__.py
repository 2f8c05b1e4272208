"""GraphQL transport for the catalog management, catalog and orders APIs."""

from __future__ import annotations

from .client import AccessTokenAuth, ApiCredential, ErrorNotifier, GraphQLClient, StaticTokenAuth
from .schema import GraphQLErrorDetail, GraphQLResponse

__all__ = [
    "AccessTokenAuth",
    "ApiCredential",
    "ErrorNotifier",
    "GraphQLClient",
    "GraphQLErrorDetail",
    "GraphQLResponse",
    "StaticTokenAuth",
]
