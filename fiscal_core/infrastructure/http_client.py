"""
HTTP access to the upstream fiscalization API.

Provides:
- `build_async_client`: one place for base URL, timeouts and auth headers.
- `FiscalApiClient`: JSON request helper that turns every failure into an
  `ApiError`, with retry logic for transient transport failures on reads
  using tenacity. Mutations are never retried here; the strategy chain owns
  that decision.
- `PaginatedListClient`: the single-page list primitive the collector drives.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from fiscal_core.config import Settings, get_settings
from fiscal_core.domain.models import Page, PageDescriptor, Record
from fiscal_core.errors import ApiError, TransportError
from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)

FetchPage = Callable[[int], Awaitable[Page]]


def build_async_client(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """
    Create an `httpx.AsyncClient` preconfigured for the backend.

    `transport` lets tests plug an `httpx.MockTransport`.
    """
    settings = settings or get_settings()
    headers: dict[str, str] = {"Accept": "application/json"}
    if settings.api_token:
        headers["Authorization"] = f"Bearer {settings.api_token}"
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=settings.api_base_url.rstrip("/") + "/",
        timeout=httpx.Timeout(settings.api_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class FiscalApiClient:
    """
    Thin JSON client over `httpx.AsyncClient`.

    Every non-2xx response, and every 2xx response whose envelope says
    `success: false`, is raised as `ApiError` (or `AuthenticationError` for 401).
    Failures without a response are raised as `TransportError`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_attempts: int = 3,
        retry_wait: wait_base | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client or build_async_client(self.settings, transport=transport)
        self._retry_attempts = max(retry_attempts, 1)
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=5)

    async def __aenter__(self) -> "FiscalApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        url = path.lstrip("/")
        try:
            response = await self._client.request(method, url, params=params, json=json)
        except httpx.TransportError as exc:
            raise TransportError(
                f"No response from server: {exc.__class__.__name__}",
                method=method,
                url=url,
            ) from exc

        body = _decode(response)
        if response.is_error:
            error = ApiError.from_payload(response.status_code, body, method=method, url=url)
            log.debug(
                f"[HTTP ERROR] {method} /{url} -> {response.status_code}",
                extra={"method": method, "url": url, "status_code": response.status_code},
            )
            raise error
        if isinstance(body, dict) and body.get("success") is False:
            raise ApiError.from_payload(response.status_code, body, method=method, url=url)
        return body

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        GET with automatic retry on transport failures.

        Retries up to `retry_attempts` times with exponential backoff. HTTP
        error responses are not retried.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(TransportError),
            reraise=True,
        ):
            with attempt:
                return await self._send("GET", path, params=params)
        raise AssertionError("unreachable")  # pragma: no cover

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Single attempt; used by mutation strategies."""
        return await self._send(method.upper(), path, params=params, json=json)


def _extract_items(data: Any, items_key: str) -> List[Any]:
    if isinstance(data, list):
        return data
    if not isinstance(data, Mapping):
        return []
    for key in (items_key, "data", "items"):
        if isinstance(data.get(key), list):
            return data[key]
    for value in data.values():
        if isinstance(value, list):
            return value
    return []


def parse_page(body: Any, items_key: str, page: int, id_field: str = "id") -> Page:
    """
    Unwrap `{success, data: {<items_key>: [...], pagination}}` into a Page.

    Tolerates the list living under `data.data`, a bare list under `data`,
    and a missing pagination block. Items that do not validate (no
    identifier at `id_field`, wrong types...) raise `ApiError`.
    """
    data = body.get("data", body) if isinstance(body, Mapping) else body
    raw_items = _extract_items(data, items_key)

    raw_pagination = None
    if isinstance(data, Mapping):
        raw_pagination = data.get("pagination")
    if raw_pagination is None and isinstance(body, Mapping):
        raw_pagination = body.get("pagination")

    try:
        items = [
            Record.from_payload(item, id_field) for item in raw_items if isinstance(item, Mapping)
        ]
        if isinstance(raw_pagination, Mapping):
            pagination = PageDescriptor.model_validate(raw_pagination)
        else:
            pagination = PageDescriptor.single_page(len(items), page=page)
    except ValidationError as exc:
        log.warning(
            f"[HTTP SHAPE] page {page} did not validate: {exc.error_count()} error(s)",
            extra={"items_key": items_key, "id_field": id_field, "page": page},
        )
        raise ApiError(
            "Unexpected response shape",
            details=exc.errors(include_url=False),
        ) from exc
    return Page(items=items, pagination=pagination)


class PaginatedListClient:
    """
    Issues one page request against a collection endpoint.

    Example
    -------
        client = PaginatedListClient(api, "drivers", list_route="drivers/list")
        page = await client.fetch_page(2)
    """

    def __init__(
        self,
        api: FiscalApiClient,
        collection: str,
        items_key: str = "data",
        *,
        page_size: Optional[int] = None,
        id_field: str = "id",
        list_route: Optional[str] = None,
        search_param: str = "query",
    ) -> None:
        self.api = api
        self.collection = collection.strip("/")
        self.items_key = items_key
        self.page_size = page_size
        self.id_field = id_field
        self.list_route = (list_route or self.collection).strip("/")
        self.search_param = search_param

    def _params(self, page: int, extra: Mapping[str, Any]) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page}
        if self.page_size:
            params["limit"] = self.page_size
        params.update({k: v for k, v in extra.items() if v not in (None, "")})
        return params

    async def fetch_page(self, page: int, *, route: Optional[str] = None, **params: Any) -> Page:
        """One page from `route` (the collection's list route by default)."""
        body = await self.api.get(route or self.list_route, params=self._params(page, params))
        return parse_page(body, self.items_key, page, self.id_field)

    async def server_search(self, query: str, page: int = 1) -> Page:
        """Delegate a narrow search to `GET /<collection>/search?<search_param>=Q&page=N`."""
        body = await self.api.get(
            f"{self.collection}/search", params={self.search_param: query, "page": page}
        )
        return parse_page(body, self.items_key, page, self.id_field)

    def bind(self, *, route: Optional[str] = None, **params: Any) -> FetchPage:
        """A `page -> Page` callable with fixed route and filters, as the collector expects."""

        async def _fetch(page: int) -> Page:
            return await self.fetch_page(page, route=route, **params)

        return _fetch


__all__ = [
    "FetchPage",
    "FiscalApiClient",
    "PaginatedListClient",
    "build_async_client",
    "parse_page",
]
