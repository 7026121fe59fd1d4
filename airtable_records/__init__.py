"""
Cliente tipado para la API REST de registros de Airtable.

Expone lo necesario para listar, leer, crear, actualizar y borrar registros
de una tabla (base/table) mapeando el JSON remoto a modelos pydantic.
"""
from airtable_records.application.dto.payloads import (
    BatchRecordUpdate,
    CreateRecordPayload,
    UpdateMethod,
    UpdateMultipleRecordsPayload,
    UpdatePayloadBuilder,
    UpdateRecordPayload,
)
from airtable_records.application.dto.queries import (
    GetQuery,
    GetRecordQueryBuilder,
    ListQuery,
    ListRecordsQueryBuilder,
    SortSpec,
)
from airtable_records.domain.entities.fields import RecordFields
from airtable_records.domain.entities.record import BatchResult, DeletedRecord, Page, Record
from airtable_records.infrastructure.external.airtable.records_client import (
    AirtableCredentials,
    AirtableRecordsClient,
)
from airtable_records.infrastructure.external.airtable.request_executor import RetryPolicy

__version__ = "0.1.0"

__all__ = [
    "AirtableCredentials",
    "AirtableRecordsClient",
    "BatchRecordUpdate",
    "BatchResult",
    "CreateRecordPayload",
    "DeletedRecord",
    "GetQuery",
    "GetRecordQueryBuilder",
    "ListQuery",
    "ListRecordsQueryBuilder",
    "Page",
    "Record",
    "RecordFields",
    "RetryPolicy",
    "SortSpec",
    "UpdateMethod",
    "UpdateMultipleRecordsPayload",
    "UpdatePayloadBuilder",
    "UpdateRecordPayload",
]
