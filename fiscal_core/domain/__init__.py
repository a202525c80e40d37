"""
Domain package for the fiscalization data-access core.

Exports the models shared by the collector, search engine, aggregator and
mutation executor. Keep this package focused on data definitions and
boundary normalization.
"""

from fiscal_core.domain.models import (
    AttemptOutcome,
    ListQuery,
    MutationAttempt,
    Page,
    PageDescriptor,
    Record,
    TimeBucket,
)

__all__ = [
    "AttemptOutcome",
    "ListQuery",
    "MutationAttempt",
    "Page",
    "PageDescriptor",
    "Record",
    "TimeBucket",
]
