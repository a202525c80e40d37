"""
Collection repositories and list-view read models.

This is the surface the UI layer consumes: per collection, a `{items,
pagination, loading, error}` read model and mutate operations. Underneath it
picks the cheapest path for each request:

- plain pages and short queries go to the server, one request, cached per
  query key;
- queries long enough to search trigger an exhaustive sweep (cached per
  collection and type filter) and client-side search;
- daily stats sweep and bucket;
- removals and creations run through a strategy chain, and a success purges
  the collection's cache entries synchronously.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, tzinfo
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from fiscal_core.aggregator import aggregate
from fiscal_core.collector import PaginationCollector, SweepStats
from fiscal_core.config import Settings, get_settings
from fiscal_core.debounce import DebouncedSearchController
from fiscal_core.domain.models import ListQuery, Page, PageDescriptor, Record, TimeBucket
from fiscal_core.errors import FiscalCoreError, user_message
from fiscal_core.infrastructure.cache import QueryCache
from fiscal_core.infrastructure.http_client import FiscalApiClient, PaginatedListClient
from fiscal_core.orchestrator import MutationExecutor
from fiscal_core.search import DEFAULT_SEARCH_FIELDS, search, should_search
from fiscal_core.strategies.abstract import MutationResult
from fiscal_core.strategies.catalog import creation_chain, removal_chain
from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)

_FILTER_SEPARATORS = re.compile(r"[\s_.\-]+")


@dataclass(frozen=True)
class CollectionSpec:
    """
    How one backend collection is queried.

    `type_filters` maps accepted filter spellings (lower-case, no separators)
    to the value the backend expects; anything else is dropped rather than
    sent. A valid filter is sent as `filter_param`, against `filter_route`
    when the backend serves filtered lists on a route of their own.
    `id_field` is the dotted payload path of the record identifier.
    """

    name: str
    items_key: str = "data"
    id_field: str = "id"
    list_route: Optional[str] = None
    filter_param: str = "type"
    filter_route: Optional[str] = None
    search_param: str = "query"
    type_filters: Mapping[str, str] = field(default_factory=dict)
    search_fields: Tuple[str, ...] = DEFAULT_SEARCH_FIELDS
    sort_fields: Tuple[str, ...] = ("createdAt",)
    date_field: str = "created_at"
    mutable: bool = True


def _collection_specs() -> Dict[str, CollectionSpec]:
    """Registry of known collections."""
    return {
        "records": CollectionSpec(
            name="records",
            type_filters={"conforme": "conforme", "noconforme": "noconforme"},
            search_fields=("vehicle_plate", "document_number", "record_type", "location"),
            sort_fields=("inspectionDateTime", "createdAt", "updatedAt", "id"),
            mutable=False,
        ),
        "documents": CollectionSpec(
            name="documents",
            type_filters={
                "insurance": "insurance",
                "afocat": "insurance",
                "technicalreview": "technicalReview",
                "revision": "technicalReview",
            },
            search_fields=("vehicle_plate", "document_number", "record_type"),
        ),
        "violations": CollectionSpec(
            name="violations",
            items_key="violations",
            id_field="identificacion.id",
            filter_param="severity",
            filter_route="violations/filter/severity",
            type_filters={
                "veryserious": "very_serious",
                "muygrave": "very_serious",
                "serious": "serious",
                "grave": "serious",
                "minor": "minor",
                "leve": "minor",
            },
            search_fields=(
                "identificacion.codigo",
                "descripcion.texto",
                "descripcion.resumen",
                "clasificacion.gravedad",
            ),
            sort_fields=("createdAt", "code", "severity"),
        ),
        "vehicles": CollectionSpec(
            name="vehicles",
            id_field="placa.plateNumber",
            search_fields=(
                "placa.plateNumber",
                "tipo.marca",
                "tipo.modelo",
                "empresa.nombre",
                "propietario.nombreCompleto",
            ),
        ),
        "companies": CollectionSpec(
            name="companies",
            items_key="companies",
            id_field="ruc",
            filter_param="status",
            filter_route="companies/filter",
            type_filters={
                "activo": "ACTIVO",
                "suspendido": "SUSPENDIDO",
                "baja": "BAJA PROV.",
                "bajaprov": "BAJA PROV.",
            },
            search_fields=("ruc", "name", "address"),
        ),
        "drivers": CollectionSpec(
            name="drivers",
            id_field="identificacion.dni",
            list_route="drivers/list",
            search_param="q",
            search_fields=(
                "identificacion.dni",
                "datosPersonales.firstName",
                "datosPersonales.lastName",
                "datosPersonales.nombreCompleto",
            ),
        ),
    }


def available_collections() -> List[str]:
    """List known collection names."""
    return sorted(_collection_specs().keys())


def resolve_collection(name: str) -> CollectionSpec:
    specs = _collection_specs()
    if name not in specs:
        raise ValueError(f"Unknown collection '{name}'. Available: {', '.join(sorted(specs))}")
    return specs[name]


def normalize_type_filter(spec: CollectionSpec, record_type: Optional[str]) -> Optional[str]:
    """Backend value for a type filter, or None for "all" and unknown values."""
    if not record_type:
        return None
    return spec.type_filters.get(_FILTER_SEPARATORS.sub("", record_type.lower()))


class CollectionRepository:
    """
    Data access for one collection.
    """

    def __init__(
        self,
        api: FiscalApiClient,
        spec: CollectionSpec,
        *,
        settings: Optional[Settings] = None,
        cache: Optional[QueryCache] = None,
        executor: Optional[MutationExecutor] = None,
    ) -> None:
        self.api = api
        self.spec = spec
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else QueryCache(self.settings.cache_ttl_seconds)
        self.executor = executor or MutationExecutor(self.settings)
        self.list_client = PaginatedListClient(
            api,
            spec.name,
            spec.items_key,
            page_size=self.settings.page_size,
            id_field=spec.id_field,
            list_route=spec.list_route,
            search_param=spec.search_param,
        )
        self.collector = PaginationCollector(
            max_pages=self.settings.sweep_max_pages,
            strict=self.settings.sweep_strict,
            label=spec.name,
        )
        self._sweeps: Dict[Tuple[str, ...], SweepStats] = {}

    @property
    def name(self) -> str:
        return self.spec.name

    def query(self, **filters: Any) -> ListQuery:
        return ListQuery(collection=self.name, **filters)

    def _filter_params(self, record_type: Optional[str]) -> Dict[str, Any]:
        backend_type = normalize_type_filter(self.spec, record_type)
        return {self.spec.filter_param: backend_type} if backend_type else {}

    def _filter_route(self, record_type: Optional[str]) -> Optional[str]:
        if self.spec.filter_route and normalize_type_filter(self.spec, record_type):
            return self.spec.filter_route
        return None

    def _page_params(self, query: ListQuery) -> Dict[str, Any]:
        params = self._filter_params(query.record_type)
        if query.sort_by and query.sort_by in self.spec.sort_fields:
            params["sortBy"] = query.sort_by
            params["sortOrder"] = query.sort_order.upper()
        return params

    async def list_page(self, query: ListQuery) -> Page:
        """One server page; the search term, if any, is not applied."""
        key = (self.name, "page", *query.cleared().with_page(query.page).key()[1:])
        return await self.cache.get_or_fetch(
            key,
            lambda: self.list_client.fetch_page(
                query.page,
                route=self._filter_route(query.record_type),
                **self._page_params(query),
            ),
        )

    async def all_records(self, record_type: Optional[str] = None) -> List[Record]:
        """Every record of the collection (optionally one type), via an exhaustive sweep."""
        backend_type = normalize_type_filter(self.spec, record_type) or "all"
        key = (self.name, "sweep", backend_type)

        async def _sweep() -> List[Record]:
            fetch = self.list_client.bind(
                route=self._filter_route(record_type), **self._filter_params(record_type)
            )
            records = await self.collector.collect(fetch)
            if self.collector.last_sweep is not None:
                self._sweeps[key] = self.collector.last_sweep
            return records

        return await self.cache.get_or_fetch(key, _sweep)

    def sweep_stats(self, record_type: Optional[str] = None) -> Optional[SweepStats]:
        backend_type = normalize_type_filter(self.spec, record_type) or "all"
        return self._sweeps.get((self.name, "sweep", backend_type))

    async def search(self, query: ListQuery) -> Page:
        """
        Cross-page search when the term is long enough, plain server page otherwise.
        """
        if not should_search(query.search, self.settings.search_min_length):
            return await self.list_page(query)
        records = await self.all_records(query.record_type)
        return search(
            records,
            query.search,
            query.page_size or self.settings.page_size,
            query.page,
            self.spec.search_fields,
        )

    async def server_search(self, text: str, page: int = 1) -> Page:
        """Narrow search delegated to the backend's /search route."""
        key = (self.name, "server_search", text.strip().lower(), page)
        return await self.cache.get_or_fetch(
            key, lambda: self.list_client.server_search(text.strip(), page)
        )

    async def daily_counts(
        self,
        window_days: Optional[int] = None,
        now: Union[datetime, date, str, None] = None,
        *,
        tz: Optional[tzinfo] = None,
        record_type: Optional[str] = None,
    ) -> List[TimeBucket]:
        records = await self.all_records(record_type)
        return aggregate(
            records,
            window_days or self.settings.stats_window_days,
            now,
            tz=tz,
            date_field=self.spec.date_field,
        )

    def _ensure_mutable(self) -> None:
        if not self.spec.mutable:
            raise FiscalCoreError(f"Collection '{self.name}' is read-only")

    async def remove(self, record_id: Any, **params: Any) -> MutationResult:
        """
        Remove (or deactivate) one record. Raises MutationError when every route fails.
        """
        self._ensure_mutable()
        chain = removal_chain(
            self.api, self.name, record_id, params=params or None, settings=self.settings
        )
        result = await self.executor.execute(chain, operation=f"remove {self.name}/{record_id}")
        self.cache.invalidate_collection(self.name)
        return result

    async def create(self, payload: Mapping[str, Any]) -> MutationResult:
        self._ensure_mutable()
        chain = creation_chain(self.api, self.name, payload, settings=self.settings)
        result = await self.executor.execute(chain, operation=f"create {self.name}")
        self.cache.invalidate_collection(self.name)
        return result


@dataclass(frozen=True)
class ListState:
    """Read model rendered by a list view."""

    items: List[Record] = field(default_factory=list)
    pagination: Optional[PageDescriptor] = None
    loading: bool = False
    error: Optional[str] = None
    warning: Optional[str] = None


class ListView:
    """
    Keeps one list view's state in sync with its query.

    Only the newest `load` is applied; a slower, older response that lands
    afterwards is discarded.
    """

    def __init__(self, repository: CollectionRepository, query: Optional[ListQuery] = None) -> None:
        self.repository = repository
        self.query = query or repository.query()
        self.state = ListState()
        self._generation = 0

    async def load(self, query: Optional[ListQuery] = None) -> ListState:
        if query is not None:
            self.query = query
        self._generation += 1
        generation = self._generation
        current = self.query
        self.state = replace(self.state, loading=True, error=None)

        try:
            page = await self.repository.search(current)
        except FiscalCoreError as exc:
            if generation == self._generation:
                self._apply_error(exc)
            return self.state

        if generation != self._generation:
            log.debug(
                "[LIST DISCARDED] stale response",
                extra={"collection": self.repository.name, "page": current.page},
            )
            return self.state
        self._apply_page(page)
        return self.state

    async def retry(self) -> ListState:
        """Re-issue the last query (the retry affordance of a failed view)."""
        return await self.load()

    async def go_to_page(self, page: int) -> ListState:
        return await self.load(self.query.with_page(page))

    def _truncation_warning(self) -> Optional[str]:
        if not should_search(self.query.search, self.repository.settings.search_min_length):
            return None
        stats = self.repository.sweep_stats(self.query.record_type)
        if stats is not None and stats.truncated:
            return (
                f"Showing results from the first {stats.pages} pages only; "
                "the collection is larger than the search limit"
            )
        return None

    def _apply_page(self, page: Page) -> None:
        self.state = ListState(
            items=list(page.items),
            pagination=page.pagination,
            loading=False,
            error=None,
            warning=self._truncation_warning(),
        )

    def _apply_error(self, exc: BaseException) -> None:
        log.warning(
            f"[LIST FAILED] {self.repository.name}: {exc}",
            extra={"collection": self.repository.name},
        )
        self.state = replace(self.state, loading=False, error=user_message(exc))

    async def _search_for(self, text: str) -> Page:
        self.query = self.query.model_copy(update={"search": text, "page": 1})
        return await self.repository.search(self.query)

    async def _default_page(self) -> Page:
        self.query = self.query.cleared()
        return await self.repository.list_page(self.query)

    def search_controller(
        self, *, delay: Optional[float] = None, min_length: Optional[int] = None
    ) -> DebouncedSearchController[Page]:
        """A debounced controller whose results land in this view's state."""
        settings = self.repository.settings
        return DebouncedSearchController(
            search_fn=self._search_for,
            default_fn=self._default_page,
            on_result=self._apply_page,
            on_error=self._apply_error,
            delay=settings.search_debounce_seconds if delay is None else delay,
            min_length=settings.search_min_length if min_length is None else min_length,
        )


__all__ = [
    "CollectionRepository",
    "CollectionSpec",
    "ListState",
    "ListView",
    "available_collections",
    "normalize_type_filter",
    "resolve_collection",
]
