"""
Abstract strategy interfaces and result contracts for mutation chains.

A logical mutation ("remove this document", "create this insurance") is
expressed as an ordered list of strategies. Each strategy is one concrete way
of performing it against the backend; the executor tries them in order and
stops at the first success.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, runtime_checkable

from fiscal_core.domain.models import MutationAttempt


@dataclass
class MutationResult:
    """
    Outcome of a mutation chain that ended in success.

    `label` is meant for UX messaging ("deactivated", "deleted", "created",
    "simulated"); `simulated` is True only when no request reached the server.
    """

    strategy_index: int
    strategy_name: str
    label: str
    simulated: bool
    payload: Any = None
    attempts: List[MutationAttempt] = field(default_factory=list)
    real_errors: List[BaseException] = field(default_factory=list)

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.payload, dict):
            return self.payload.get("message")
        return None


@runtime_checkable
class MutationStrategy(Protocol):
    """
    Common interface all mutation strategies must implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the approach.
    http_verb : str
        Verb used, or "NONE" for strategies that never reach the server.
    route : str
        Route attempted (informational, for logs and attempt records).
    label : str
        What a success means to the user ("deleted", "deactivated"...).
    simulated : bool
        True for the terminal no-op strategy.
    """

    name: str
    description: str
    http_verb: str
    route: str
    label: str
    simulated: bool

    async def execute(self) -> Any:
        """
        Perform the mutation and return the backend payload.

        Raises
        ------
        ApiError
            When the backend rejects the request or cannot be reached.
        """
        ...


class AbstractMutationStrategy(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses should set the descriptive attributes and implement `execute`.
    """

    name: str
    description: str
    http_verb: str
    route: str
    label: str
    simulated: bool = False

    @abc.abstractmethod
    async def execute(self) -> Any:  # pragma: no cover - interface only
        """Run the strategy and return the backend payload."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.http_verb} /{self.route}>"


__all__ = [
    "AbstractMutationStrategy",
    "MutationResult",
    "MutationStrategy",
]
