"""
Strategies package for mutation chains.

This module re-exports the abstract interfaces, the concrete strategy classes
and the chain builders so downstream code can import from
`fiscal_core.strategies` directly.
"""

from fiscal_core.strategies.abstract import (
    AbstractMutationStrategy,
    MutationResult,
    MutationStrategy,
)
from fiscal_core.strategies.catalog import creation_chain, removal_chain
from fiscal_core.strategies.http import HttpStrategy, SimulatedStrategy

__all__ = [
    # Abstracts
    "AbstractMutationStrategy",
    "MutationResult",
    "MutationStrategy",
    # Concrete strategies
    "HttpStrategy",
    "SimulatedStrategy",
    # Chains
    "creation_chain",
    "removal_chain",
]
