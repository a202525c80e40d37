from __future__ import annotations

import pytest
from pydantic import ValidationError

from fiscal_core.domain.models import ListQuery, PageDescriptor, Record


def test_page_descriptor_camel_case_shape() -> None:
    descriptor = PageDescriptor.model_validate(
        {
            "currentPage": 2,
            "totalPages": 5,
            "totalItems": 27,
            "itemsPerPage": 6,
            "hasNextPage": True,
            "hasPrevPage": True,
        }
    )

    assert descriptor.current_page == 2
    assert descriptor.total_pages == 5
    assert descriptor.total_records == 27
    assert descriptor.records_per_page == 6
    assert descriptor.has_next is True
    assert descriptor.has_previous is True


def test_page_descriptor_snake_case_shape() -> None:
    descriptor = PageDescriptor.model_validate(
        {
            "current_page": 1,
            "total_pages": 1,
            "total_records": 3,
            "records_per_page": 6,
            "has_next": False,
            "has_previous": False,
        }
    )

    assert descriptor.total_records == 3
    assert descriptor.has_next is False


def test_page_descriptor_derives_missing_flags() -> None:
    descriptor = PageDescriptor.model_validate({"page": 2, "pages": 3, "total": 14})

    assert descriptor.has_next is True
    assert descriptor.has_previous is True


def test_page_descriptor_clamps_current_page_into_range() -> None:
    descriptor = PageDescriptor.model_validate(
        {"currentPage": 9, "totalPages": 3, "totalItems": 14}
    )

    assert descriptor.current_page == 3


def test_record_normalizes_field_aliases() -> None:
    record = Record.model_validate(
        {"id": 5, "placa": "ABC-123", "numero": 4411, "tipo": "CONFORME", "estado": "ACTIVE"}
    )

    assert record.vehicle_plate == "ABC-123"
    assert record.document_number == "4411"
    assert record.record_type == "CONFORME"
    assert record.status == "ACTIVE"


def test_record_lifts_nested_vehicle_plate_and_keeps_extras() -> None:
    record = Record.model_validate(
        {
            "id": "doc-1",
            "type": "insurance",
            "vehicle": {"plate": "XYZ-987", "company": {"name": "Moto SAC"}},
            "insuranceCompany": "Rimac",
        }
    )

    assert record.vehicle_plate == "XYZ-987"
    assert record.value("vehicle.company.name") == "Moto SAC"
    assert record.value("insuranceCompany") == "Rimac"
    assert record.value("vehicle.missing.path") is None
    assert record.value("nope") is None


def test_record_without_identifier_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Record.from_payload({"ruc": None, "name": "Moto SAC"}, id_field="ruc")


def test_record_from_payload_keys_vehicle_by_nested_plate() -> None:
    record = Record.from_payload(
        {
            "placa": {"plateNumber": "MT-4521", "companyRuc": "20123456789"},
            "tipo": {"categoria": "L5", "marca": "Bajaj", "modelo": "RE"},
            "empresa": {"nombre": "Moto SAC"},
            "estado": "OPERATIVO",
        },
        id_field="placa.plateNumber",
    )

    assert record.id == "MT-4521"
    assert record.vehicle_plate == "MT-4521"
    assert record.record_type == "L5"
    assert record.status == "OPERATIVO"
    assert record.value("tipo.marca") == "Bajaj"
    assert record.value("placa.companyRuc") == "20123456789"
    assert record.value("empresa.nombre") == "Moto SAC"


def test_record_lifts_violation_fields_from_nested_objects() -> None:
    record = Record.from_payload(
        {
            "identificacion": {"id": 12, "codigo": "M-03"},
            "descripcion": {"texto": "Conducir sin casco", "resumen": "Sin casco"},
            "clasificacion": {"gravedad": "serious"},
            "fechas": {"creacion": "2024-03-10T09:00:00"},
        },
        id_field="identificacion.id",
    )

    assert record.id == 12
    assert record.document_number == "M-03"
    assert record.description == "Conducir sin casco"
    assert record.record_type == "serious"
    assert record.created_at == "2024-03-10T09:00:00"
    assert record.value("descripcion.resumen") == "Sin casco"


def test_record_never_stringifies_objects_under_scalar_keys() -> None:
    record = Record.model_validate({"id": 1, "type": {"code": "X"}, "status": ["a", "b"]})

    assert record.record_type is None
    assert record.status is None


def test_list_query_key_tracks_every_filter() -> None:
    base = ListQuery(collection="documents")

    assert base.key() != base.with_page(2).key()
    assert base.key() != base.model_copy(update={"record_type": "insurance"}).key()
    assert base.key() != base.model_copy(update={"search": "abc"}).key()
    assert base.key()[0] == "documents"


def test_list_query_cleared_resets_search_and_page() -> None:
    query = ListQuery(collection="documents", page=3, search="  abc  ", record_type="insurance")

    cleared = query.cleared()

    assert query.search == "abc"
    assert cleared.search == ""
    assert cleared.page == 1
    assert cleared.record_type == "insurance"


def test_list_query_rejects_page_zero() -> None:
    with pytest.raises(ValidationError):
        ListQuery(collection="documents", page=0)
