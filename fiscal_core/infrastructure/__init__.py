"""
Infrastructure package for the fiscalization data-access core.

Centralizes upstream API connectivity (HTTP client, single-page list client)
and the per-query TTL cache. Keep this layer focused on I/O and resource
management, decoupled from search/aggregation/mutation logic.
"""

from fiscal_core.infrastructure.cache import QueryCache
from fiscal_core.infrastructure.http_client import (
    FetchPage,
    FiscalApiClient,
    PaginatedListClient,
    build_async_client,
    parse_page,
)

__all__ = [
    "FetchPage",
    "FiscalApiClient",
    "PaginatedListClient",
    "QueryCache",
    "build_async_client",
    "parse_page",
]
