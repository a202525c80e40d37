from __future__ import annotations

import json

import httpx
import pytest
from tenacity import wait_none

from fiscal_core.config import Settings
from fiscal_core.errors import MutationError
from fiscal_core.infrastructure.http_client import FiscalApiClient
from fiscal_core.orchestrator import MutationExecutor
from fiscal_core.strategies import SimulatedStrategy, creation_chain, removal_chain
from fiscal_core.strategies.catalog import rekey, to_camel, to_snake

BASE_URL = "https://api.test/api"


class _RouteTable:
    """MockTransport handler answering by (method, path); unknown routes get 404."""

    def __init__(self, routes: dict[tuple[str, str], httpx.Response]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get(
            (request.method, request.url.path),
            httpx.Response(404, json={"success": False, "message": "Route not found"}),
        )


def _api(handler: _RouteTable, settings: Settings) -> FiscalApiClient:
    return FiscalApiClient(
        settings, transport=httpx.MockTransport(handler), retry_wait=wait_none()
    )


def test_key_style_conversions() -> None:
    assert to_snake("vehicleId") == "vehicle_id"
    assert to_snake("policyNumber") == "policy_number"
    assert to_camel("vehicle_id") == "vehicleId"
    assert to_camel("vehicleId") == "vehicleId"
    assert rekey({"start_date": 1, "plate": 2}, "camel") == {"startDate": 1, "plate": 2}


def test_removal_chain_order_and_routes() -> None:
    settings = Settings(api_base_url=BASE_URL)
    chain = removal_chain(None, "documents", 7, params={"type": "insurance"}, settings=settings)

    assert [(s.name, s.http_verb, s.route) for s in chain] == [
        ("deactivate", "PUT", "documents/7/deactivate"),
        ("delete_by_id", "DELETE", "documents/7"),
        ("delete_by_params", "DELETE", "documents"),
        ("post_delete", "POST", "documents/delete"),
    ]
    assert chain[2].params == {"id": 7, "type": "insurance"}
    assert chain[3].json == {"id": 7, "type": "insurance"}
    assert [s.label for s in chain] == ["deactivated", "deleted", "deleted", "deleted"]


def test_removal_chain_appends_simulated_only_when_enabled() -> None:
    dev = Settings(allow_simulated_mutations=True, app_env="development")
    prod = Settings(allow_simulated_mutations=True, app_env="production")

    assert isinstance(removal_chain(None, "documents", 7, settings=dev)[-1], SimulatedStrategy)
    assert len(removal_chain(None, "documents", 7, settings=prod)) == 4
    assert len(removal_chain(None, "documents", 7, settings=Settings())) == 4


def test_creation_chain_dedupes_identical_bodies() -> None:
    settings = Settings()

    plain = creation_chain(None, "documents", {"plate": "ABC-123"}, settings=settings)
    mixed = creation_chain(None, "documents", {"vehicleId": 1}, settings=settings)

    assert [s.name for s in plain] == ["create_as_given"]
    assert [s.name for s in mixed] == ["create_as_given", "create_snake_case"]
    assert mixed[1].json == {"vehicle_id": 1}


@pytest.mark.asyncio
async def test_removal_falls_back_until_a_route_answers() -> None:
    settings = Settings(api_base_url=BASE_URL)
    handler = _RouteTable(
        {
            ("PUT", "/api/documents/7/deactivate"): httpx.Response(
                405, json={"success": False, "message": "Method not allowed"}
            ),
            ("DELETE", "/api/documents"): httpx.Response(
                200, json={"success": True, "message": "Documento eliminado"}
            ),
        }
    )

    async with _api(handler, settings) as api:
        result = await MutationExecutor(settings).execute(
            removal_chain(api, "documents", 7, settings=settings)
        )

    assert result.strategy_name == "delete_by_params"
    assert result.strategy_index == 2
    assert result.label == "deleted"
    assert result.message == "Documento eliminado"
    assert [(r.method, r.url.path) for r in handler.requests] == [
        ("PUT", "/api/documents/7/deactivate"),
        ("DELETE", "/api/documents/7"),
        ("DELETE", "/api/documents"),
    ]
    assert dict(handler.requests[2].url.params) == {"id": "7"}


@pytest.mark.asyncio
async def test_creation_retries_with_snake_case_body() -> None:
    settings = Settings(api_base_url=BASE_URL)
    bodies: list[dict] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bodies.append(body)
        if "vehicle_id" in body:
            return httpx.Response(201, json={"success": True, "data": {"id": 99}})
        return httpx.Response(404, json={"success": False, "message": "Not found"})

    api = FiscalApiClient(settings, transport=httpx.MockTransport(_handler))
    async with api:
        result = await MutationExecutor(settings).execute(
            creation_chain(api, "documents", {"vehicleId": 3}, settings=settings)
        )

    assert bodies == [{"vehicleId": 3}, {"vehicle_id": 3}]
    assert result.label == "created"
    assert result.payload["data"] == {"id": 99}


@pytest.mark.asyncio
async def test_removal_exhausted_without_simulation_raises() -> None:
    settings = Settings(api_base_url=BASE_URL)
    handler = _RouteTable({})

    async with _api(handler, settings) as api:
        with pytest.raises(MutationError) as excinfo:
            await MutationExecutor(settings).execute(
                removal_chain(api, "documents", 7, settings=settings)
            )

    assert len(handler.requests) == 4
    assert str(excinfo.value) == "Route not found"
