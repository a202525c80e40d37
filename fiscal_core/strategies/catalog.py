"""
Strategy chains for the mutations the back office performs.

The backend does not document which verb/route removes a resource, nor which
body shape its create endpoints accept, so each logical mutation is a chain of
candidates tried in order. Route availability is discovered only by attempting
and classifying the response.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from fiscal_core.config import Settings, get_settings
from fiscal_core.infrastructure.http_client import FiscalApiClient
from fiscal_core.strategies.abstract import MutationStrategy
from fiscal_core.strategies.http import HttpStrategy, SimulatedStrategy

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def rekey(payload: Mapping[str, Any], style: str) -> Dict[str, Any]:
    """Top-level keys of `payload` rewritten as "camel" or "snake" case."""
    convert = to_camel if style == "camel" else to_snake
    return {convert(key): value for key, value in payload.items()}


def removal_chain(
    api: FiscalApiClient,
    resource: str,
    record_id: Any,
    *,
    params: Optional[Mapping[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> List[MutationStrategy]:
    """
    Candidates for "remove this record", most conservative first:

    1. PUT    /<resource>/<id>/deactivate
    2. DELETE /<resource>/<id>
    3. DELETE /<resource>?id=<id>&<params>
    4. POST   /<resource>/delete  (body: id + params)
    5. simulated success, only when enabled and never in production
    """
    settings = settings or get_settings()
    resource = resource.strip("/")
    identity: Dict[str, Any] = {"id": record_id, **(params or {})}

    chain: List[MutationStrategy] = [
        HttpStrategy(
            api, "PUT", f"{resource}/{record_id}/deactivate",
            name="deactivate", label="deactivated",
        ),
        HttpStrategy(
            api, "DELETE", f"{resource}/{record_id}",
            name="delete_by_id", label="deleted",
        ),
        HttpStrategy(
            api, "DELETE", resource,
            name="delete_by_params", label="deleted", params=identity,
        ),
        HttpStrategy(
            api, "POST", f"{resource}/delete",
            name="post_delete", label="deleted", json=identity,
        ),
    ]
    if settings.simulated_mutations_enabled:
        chain.append(SimulatedStrategy(resource, str(record_id), action="removed"))
    return chain


def creation_chain(
    api: FiscalApiClient,
    resource: str,
    payload: Mapping[str, Any],
    *,
    settings: Optional[Settings] = None,
) -> List[MutationStrategy]:
    """
    Candidates for "create this record": POST /<resource> with the body as
    given, then with camelCase keys, then with snake_case keys. Variants that
    produce an identical body are tried once.
    """
    settings = settings or get_settings()
    resource = resource.strip("/")
    bodies: List[tuple[str, Dict[str, Any]]] = [
        ("as_given", dict(payload)),
        ("camel_case", rekey(payload, "camel")),
        ("snake_case", rekey(payload, "snake")),
    ]

    chain: List[MutationStrategy] = []
    seen: List[Dict[str, Any]] = []
    for name, body in bodies:
        if body in seen:
            continue
        seen.append(body)
        chain.append(
            HttpStrategy(
                api, "POST", resource,
                name=f"create_{name}", label="created", json=body,
            )
        )
    if settings.simulated_mutations_enabled:
        chain.append(SimulatedStrategy(resource, "new record", action="created"))
    return chain


__all__ = ["creation_chain", "rekey", "removal_chain", "to_camel", "to_snake"]
