"""
Concrete mutation strategies.

`HttpStrategy` performs one request against one route. `SimulatedStrategy`
never touches the network: it is the terminal fallback used in development so
the UI flow can be exercised while the backend lacks the endpoint.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from fiscal_core.infrastructure.http_client import FiscalApiClient
from fiscal_core.strategies.abstract import AbstractMutationStrategy
from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)


class HttpStrategy(AbstractMutationStrategy):
    """
    One verb + route (+ params/body) attempt.
    """

    def __init__(
        self,
        api: FiscalApiClient,
        http_verb: str,
        route: str,
        *,
        name: str,
        label: str,
        description: str = "",
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> None:
        self.api = api
        self.http_verb = http_verb.upper()
        self.route = route.strip("/")
        self.name = name
        self.label = label
        self.description = description or f"{self.http_verb} /{self.route}"
        self.params = dict(params) if params else None
        self.json = json

    async def execute(self) -> Any:
        return await self.api.request(
            self.http_verb, self.route, params=self.params, json=self.json
        )


class SimulatedStrategy(AbstractMutationStrategy):
    """
    Pretends the mutation succeeded. Development builds only.
    """

    http_verb = "NONE"
    label = "simulated"
    simulated = True

    def __init__(self, resource: str, target: str, action: str = "removed") -> None:
        self.resource = resource
        self.target = target
        self.action = action
        self.name = "simulated"
        self.route = resource.strip("/")
        self.description = "No request sent; reports success without touching the server."

    async def execute(self) -> Any:
        log.warning(
            f"[MUTATION SIMULATED] {self.resource} {self.target} "
            f"was NOT {self.action} on the server",
            extra={"resource": self.resource, "target": self.target},
        )
        return {
            "success": True,
            "simulated": True,
            "message": f"{self.resource} {self.target} {self.action} (simulated)",
        }


__all__ = ["HttpStrategy", "SimulatedStrategy"]
