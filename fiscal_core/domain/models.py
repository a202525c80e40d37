"""
Domain models for the fiscalization data-access core.

The upstream backend is inconsistent about field naming (camelCase in the V2
endpoints, snake_case in older ones, Spanish names in a few legacy routes), so
every model here normalizes at the boundary through validation aliases. Nothing
downstream ever looks at a raw payload key.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

_CURRENT_PAGE_KEYS = ("current_page", "currentPage", "page")
_TOTAL_PAGES_KEYS = ("total_pages", "totalPages", "pages")
_TOTAL_RECORDS_KEYS = ("total_records", "totalItems", "totalRecords", "total_items", "total")
_PER_PAGE_KEYS = ("records_per_page", "itemsPerPage", "recordsPerPage", "per_page", "limit")
_HAS_NEXT_KEYS = ("has_next", "hasNextPage", "hasNext")
_HAS_PREVIOUS_KEYS = ("has_previous", "hasPrevPage", "hasPreviousPage", "hasPrevious")
_NEXT_PAGE_KEYS = ("next_page", "nextPage")
_PLATE_KEYS = ("vehicle_plate", "vehiclePlate", "plate")
_TYPE_KEYS = ("record_type", "type", "recordType")
_DOCUMENT_KEYS = (
    "document_number", "documentNumber", "numero", "policyNumber", "reviewCode", "reviewId"
)
_DESCRIPTION_KEYS = ("description", "observations")
_CREATED_KEYS = ("created_at", "createdAt")

# Payload paths tried in order when none of a field's own keys is present.
# Vehicles, drivers and violations nest these under Spanish-named objects,
# which stay reachable through `Record.value()`.
_NESTED_SOURCES: Dict[str, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    "vehicle_plate": (
        _PLATE_KEYS,
        ("placa", "placa.plateNumber", "vehicle.plate", "vehicle.plateNumber"),
    ),
    "record_type": (_TYPE_KEYS, ("tipo", "tipo.categoria", "clasificacion.gravedad")),
    "document_number": (_DOCUMENT_KEYS, ("identificacion.codigo",)),
    "description": (_DESCRIPTION_KEYS, ("descripcion", "descripcion.texto")),
    "created_at": (_CREATED_KEYS, ("fechas.creacion",)),
}


def _first_present(data: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _lookup(data: Any, path: str) -> Any:
    """Resolve a dotted path inside nested mappings; None for any missing segment."""
    current = data
    for segment in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
    return current


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


class Record(BaseModel):
    """
    A domain item fetched from a collection (inspection record, document, violation...).

    Only the fields the core computes on are declared; everything else the
    backend sends is kept as an extra and reachable through `value()`.
    Collections keyed by something other than `id` are loaded through
    `from_payload`.
    """

    id: Union[int, str] = Field(..., description="Backend identifier.")
    created_at: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(*_CREATED_KEYS),
        description="Raw creation timestamp; parsed lazily by the aggregator.",
    )
    record_type: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(*_TYPE_KEYS),
        description="Category discriminator (e.g. CONFORME, INSURANCE).",
    )
    vehicle_plate: Optional[str] = Field(None, validation_alias=AliasChoices(*_PLATE_KEYS))
    document_number: Optional[str] = Field(None, validation_alias=AliasChoices(*_DOCUMENT_KEYS))
    description: Optional[str] = Field(None, validation_alias=AliasChoices(*_DESCRIPTION_KEYS))
    status: Optional[str] = Field(
        None, validation_alias=AliasChoices("status", "estado", "rucStatus")
    )

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "allow",
    }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], id_field: str = "id") -> "Record":
        """
        Validate one raw item whose identifier lives at the dotted path `id_field`
        ("ruc", "identificacion.dni", "placa.plateNumber"...).
        """
        if id_field != "id":
            key = _lookup(payload, id_field)
            if _is_scalar(key):
                payload = {**payload, "id": key}
        return cls.model_validate(payload)

    @model_validator(mode="before")
    @classmethod
    def _lift_nested(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        lifted: Dict[str, Any] = {}
        for name, (keys, paths) in _NESTED_SOURCES.items():
            if _first_present(data, keys) is not None:
                continue
            for path in paths:
                value = _lookup(data, path)
                if _is_scalar(value):
                    lifted[name] = value
                    break
        return {**data, **lifted} if lifted else data

    @field_validator(
        "created_at",
        "record_type",
        "vehicle_plate",
        "document_number",
        "description",
        "status",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if _is_scalar(value):
            return str(value)
        # Objects and lists under a scalar key carry no usable value.
        return None

    def value(self, path: str) -> Any:
        """
        Resolve a dotted field path ("vehicle_plate", "vehicle.plate", "empresa.nombre").

        Returns None for any missing segment.
        """
        head, _, rest = path.partition(".")
        if head in type(self).model_fields:
            current: Any = getattr(self, head)
        else:
            current = (self.model_extra or {}).get(head)
        return _lookup(current, rest) if rest else current


class PageDescriptor(BaseModel):
    """
    Canonical pagination metadata.

    Accepts both the snake_case shape (`current_page`, `has_next`...) and the
    camelCase one (`currentPage`, `hasNextPage`, `totalItems`...). Missing
    flags are derived from the page counters.
    """

    current_page: int = Field(1, validation_alias=AliasChoices(*_CURRENT_PAGE_KEYS))
    total_pages: int = Field(0, validation_alias=AliasChoices(*_TOTAL_PAGES_KEYS))
    total_records: int = Field(0, validation_alias=AliasChoices(*_TOTAL_RECORDS_KEYS))
    records_per_page: int = Field(0, validation_alias=AliasChoices(*_PER_PAGE_KEYS))
    has_next: bool = Field(False, validation_alias=AliasChoices(*_HAS_NEXT_KEYS))
    has_previous: bool = Field(False, validation_alias=AliasChoices(*_HAS_PREVIOUS_KEYS))
    next_page: Optional[int] = Field(None, validation_alias=AliasChoices(*_NEXT_PAGE_KEYS))

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = {k: v for k, v in data.items() if v is not None}

        current = _first_present(data, _CURRENT_PAGE_KEYS)
        total_pages = _first_present(data, _TOTAL_PAGES_KEYS)
        total_records = _first_present(data, _TOTAL_RECORDS_KEYS)

        if _first_present(data, _HAS_NEXT_KEYS) is None:
            data["has_next"] = (
                current is not None and total_pages is not None and int(current) < int(total_pages)
            )
        if _first_present(data, _HAS_PREVIOUS_KEYS) is None:
            data["has_previous"] = current is not None and int(current) > 1

        if current is not None and total_pages is not None and total_records:
            clamped = min(max(int(current), 1), max(int(total_pages), 1))
            for key in _CURRENT_PAGE_KEYS:
                data.pop(key, None)
            data["current_page"] = clamped
        return data

    @classmethod
    def single_page(cls, item_count: int, page: int = 1) -> "PageDescriptor":
        """Descriptor for responses that carry no pagination block at all."""
        return cls(
            current_page=page,
            total_pages=1 if item_count else 0,
            total_records=item_count,
            records_per_page=item_count,
            has_next=False,
            has_previous=page > 1,
        )


class Page(BaseModel):
    """One page of records with its canonical pagination metadata."""

    items: List[Record] = Field(default_factory=list)
    pagination: PageDescriptor

    model_config = {"frozen": True}


class TimeBucket(BaseModel):
    """
    One calendar-day slot of a trailing window.
    """

    key: str = Field(..., description="Local ISO date, YYYY-MM-DD.")
    label: str = Field(..., description="Display label, dd/mm.")
    counts: Dict[str, int] = Field(default_factory=dict)
    total: int = 0

    model_config = {"frozen": True}


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


class MutationAttempt(BaseModel):
    """
    Record of one strategy tried during a mutation call. Never persisted.
    """

    strategy_index: int
    strategy_name: str
    http_verb: str
    route: str
    outcome: AttemptOutcome
    status_code: Optional[int] = None
    message: Optional[str] = None

    model_config = {"frozen": True}


class ListQuery(BaseModel):
    """
    Everything that identifies one list request.

    `key()` is the pure function from filters to cache/request key: any change
    in the key means a new fetch.
    """

    collection: str
    page: int = Field(1, ge=1)
    record_type: Optional[str] = None
    search: str = ""
    sort_by: Optional[str] = None
    sort_order: str = "DESC"
    page_size: Optional[int] = Field(None, ge=1)

    model_config = {"frozen": True}

    @field_validator("search", mode="before")
    @classmethod
    def _strip_search(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    def key(self) -> Tuple[Any, ...]:
        return (
            self.collection,
            self.page,
            self.record_type or "all",
            self.search.lower(),
            self.sort_by,
            self.sort_order.upper(),
            self.page_size,
        )

    def with_page(self, page: int) -> "ListQuery":
        return self.model_copy(update={"page": max(page, 1)})

    def cleared(self) -> "ListQuery":
        """The default view: same collection and filters, no search, first page."""
        return self.model_copy(update={"search": "", "page": 1})


__all__ = [
    "AttemptOutcome",
    "ListQuery",
    "MutationAttempt",
    "Page",
    "PageDescriptor",
    "Record",
    "TimeBucket",
]
