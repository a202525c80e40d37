"""
Fiscal Core - data-access layer for a transport-fiscalization back office.

This package sits between a paginated REST backend and the views that
present its collections (inspection records, vehicle documents, violations,
vehicles, companies, drivers). It provides:

- Exhaustive page sweeps with a page cap and de-duplication
- Client-side cross-page search with artificial pagination
- Daily time-bucket aggregation by category
- Debounced, cancellable search driven by keystrokes
- Mutations executed through ordered fallback strategy chains
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from fiscal_core.aggregator import aggregate
from fiscal_core.collector import PaginationCollector, collect_all
from fiscal_core.config import Settings, get_settings
from fiscal_core.errors import ApiError, FiscalCoreError, MutationError
from fiscal_core.orchestrator import MutationExecutor
from fiscal_core.repository import (
    CollectionRepository,
    ListView,
    available_collections,
    resolve_collection,
)
from fiscal_core.search import search
from fiscal_core.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Core operations
    "PaginationCollector",
    "collect_all",
    "search",
    "aggregate",
    "MutationExecutor",
    # Collections
    "CollectionRepository",
    "ListView",
    "available_collections",
    "resolve_collection",
    # Errors
    "ApiError",
    "FiscalCoreError",
    "MutationError",
    # Logging
    "configure_logging",
    "get_logger",
]
