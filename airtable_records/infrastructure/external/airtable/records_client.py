"""
Cliente de registros de Airtable (REST, async).

Cubre:
- list / get / create / update (PATCH o PUT) / delete de un registro
- update batch (hasta 10 registros por request)
- paginación por offset
- reintentos con backoff (429, 5xx, red) y deadline por llamada

El cliente no guarda estado de registros entre llamadas: solo configuración
inmutable (base URL, credencial, política de reintentos).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, List, Mapping, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from loguru import logger

from airtable_records.application.dto.payloads import (
    CreateRecordPayload,
    UpdateMethod,
    UpdateMultipleRecordsPayload,
    UpdateRecordPayload,
)
from airtable_records.application.dto.queries import GetQuery, ListQuery
from airtable_records.core.config import Settings
from airtable_records.domain.entities.fields import check_known_fields, field_names_of
from airtable_records.domain.entities.record import BatchResult, DeletedRecord, Page, Record
from airtable_records.shared.exceptions.records import (
    BatchConsistencyException,
    ResponseFormatException,
    ValidationException,
)

from .request_executor import RequestExecutor, RetryPolicy, Sleep

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.airtable.com/v0"


@dataclass(frozen=True)
class AirtableCredentials:
    """Token personal de acceso. Nunca se incluye en reprs ni logs."""

    token: str = field(repr=False)


def _require(value: str, name: str) -> str:
    if not value:
        raise ValidationException(f"'{name}' no puede estar vacío", field=name)
    return value


def _records_of(payload: Any) -> List[Any]:
    if not isinstance(payload, Mapping):
        raise ResponseFormatException("Airtable devolvió una respuesta que no es objeto", payload)
    records = payload.get("records")
    if records is None:
        return []
    if not isinstance(records, list):
        raise ResponseFormatException("'records' no es una lista", payload)
    return records


def _check_payload_fields(record_type: Type[Any], bodies: List[Mapping[str, Any]]) -> None:
    """
    Verifica que los fields a escribir pertenezcan al tipo de registro.

    Tipos sin esquema (field_names() vacío) no se validan.
    """
    known = field_names_of(record_type)
    if not known:
        return
    for body in bodies:
        check_known_fields(record_type, known, body.get("fields") or {})


class AirtableRecordsClient:
    """
    Cliente HTTP tipado de registros de Airtable.

    Uso:
        async with AirtableRecordsClient(AirtableCredentials(token)) as airtable:
            page = await airtable.list_records(Customer, base, table, query)

    Importante:
    - El orden de los registros es el que devuelve el servidor.
    - Si se inyecta http_client, el caller es dueño de su ciclo de vida.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = DEFAULT_BASE_URL,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_s: float = 30.0,
        sleep: Optional[Sleep] = None,
    ) -> None:
        if not credentials.token:
            raise ValidationException("Token de Airtable vacío", field="token")

        self._base_url = base_url.rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)
        self._executor = RequestExecutor(
            self._http,
            token=credentials.token,
            retry_policy=retry_policy or RetryPolicy(),
            sleep=sleep,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, http_client: Optional[httpx.AsyncClient] = None
    ) -> "AirtableRecordsClient":
        """Construye el cliente desde Settings (variables AIRTABLE_*)."""
        return cls(
            AirtableCredentials(token=settings.AIRTABLE_API_TOKEN),
            http_client=http_client,
            base_url=settings.AIRTABLE_BASE_URL,
            retry_policy=settings.retry_policy,
            timeout_s=settings.AIRTABLE_TIMEOUT_S,
        )

    async def __aenter__(self) -> "AirtableRecordsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._executor.retry_policy

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def _table_url(self, base: str, table: str) -> str:
        _require(base, "base")
        _require(table, "table")
        return f"{self._base_url}/{quote(base, safe='')}/{quote(table, safe='')}"

    def _record_url(self, base: str, table: str, record_id: str) -> str:
        _require(record_id, "record_id")
        return f"{self._table_url(base, table)}/{quote(record_id, safe='')}"

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    async def list_records(
        self,
        record_type: Type[T],
        base: str,
        table: str,
        query: Optional[ListQuery] = None,
        *,
        deadline_s: Optional[float] = None,
    ) -> Page[T]:
        """
        Trae una página de registros.

        Si el resultado trae offset, hay que volver a llamar con
        query.with_offset(page.offset) para continuar.
        """
        field_names_of(record_type)
        url = self._table_url(base, table)
        params = query.to_params() if query else []

        payload = await self._executor.request_json(
            "GET", url, params=params, deadline_s=deadline_s
        )
        records = [Record.from_api(r, record_type) for r in _records_of(payload)]
        offset = payload.get("offset") or None

        logger.debug(f"list_records {base}/{table}: {len(records)} registros, offset={offset}")
        return Page(records=records, offset=offset)

    async def iter_records(
        self,
        record_type: Type[T],
        base: str,
        table: str,
        query: Optional[ListQuery] = None,
        *,
        deadline_s: Optional[float] = None,
    ) -> AsyncIterator[Record[T]]:
        """
        Itera todos los registros siguiendo el offset hasta agotarlo.

        deadline_s aplica a cada página por separado.
        """
        current = query or ListQuery()
        while True:
            page = await self.list_records(
                record_type, base, table, current, deadline_s=deadline_s
            )
            for record in page.records:
                yield record
            if not page.has_more:
                break
            current = current.with_offset(page.offset)

    async def list_all_records(
        self,
        record_type: Type[T],
        base: str,
        table: str,
        query: Optional[ListQuery] = None,
        *,
        deadline_s: Optional[float] = None,
    ) -> List[Record[T]]:
        """Todos los registros de la consulta (recorre todas las páginas)."""
        return [
            record
            async for record in self.iter_records(
                record_type, base, table, query, deadline_s=deadline_s
            )
        ]

    async def get_record(
        self,
        record_type: Type[T],
        base: str,
        table: str,
        record_id: str,
        query: Optional[GetQuery] = None,
        *,
        deadline_s: Optional[float] = None,
    ) -> Record[T]:
        """
        Trae un registro por id.

        Raises:
            ValidationException: record_id vacío
            RecordNotFoundException: el id no existe en la tabla
        """
        field_names_of(record_type)
        url = self._record_url(base, table, record_id)
        params = query.to_params() if query else []

        payload = await self._executor.request_json(
            "GET", url, params=params, record_id=record_id, deadline_s=deadline_s
        )
        return Record.from_api(payload, record_type)

    # ------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------

    async def create_record(
        self,
        record_type: Type[T],
        base: str,
        table: str,
        payload: CreateRecordPayload[T],
        *,
        deadline_s: Optional[float] = None,
    ) -> Record[T]:
        """
        Crea un registro. Airtable asigna y devuelve el id.

        POST no es idempotente: solo se reintenta ante 429.
        """
        body = payload.to_body()
        _check_payload_fields(record_type, [body])
        url = self._table_url(base, table)

        response = await self._executor.request_json(
            "POST", url, json_body=body, idempotent=False, deadline_s=deadline_s
        )
        record = Record.from_api(response, record_type)
        logger.info(f"Registro creado en {base}/{table}: {record.id}")
        return record

    async def update_record(
        self,
        record_type: Type[T],
        base: str,
        table: str,
        record_id: str,
        payload: UpdateRecordPayload[T],
        method: UpdateMethod = UpdateMethod.PATCH,
        *,
        deadline_s: Optional[float] = None,
    ) -> Record[T]:
        """
        Actualiza un registro.

        - PATCH: solo cambian los fields enviados.
        - PUT: se reemplaza el set completo; los fields no enviados quedan vacíos.

        Retorna el estado post-update que devuelve el servidor.
        """
        body = payload.to_body()
        _check_payload_fields(record_type, [body])
        url = self._record_url(base, table, record_id)

        response = await self._executor.request_json(
            method.http_method,
            url,
            json_body=body,
            record_id=record_id,
            deadline_s=deadline_s,
        )
        return Record.from_api(response, record_type)

    async def update_multiple_records(
        self,
        record_type: Type[T],
        base: str,
        table: str,
        payload: UpdateMultipleRecordsPayload[T],
        method: UpdateMethod = UpdateMethod.PATCH,
        *,
        deadline_s: Optional[float] = None,
    ) -> BatchResult[T]:
        """
        Actualiza un batch en una sola llamada.

        La atomicidad la define Airtable. Aquí solo se verifica que el resultado
        respete el orden de la solicitud; si no, BatchConsistencyException
        (no se realinea por id) con los registros que sí devolvió el servidor.
        """
        body = payload.to_body()
        _check_payload_fields(record_type, body["records"])
        url = self._table_url(base, table)

        response = await self._executor.request_json(
            method.http_method, url, json_body=body, deadline_s=deadline_s
        )
        records = [Record.from_api(r, record_type) for r in _records_of(response)]

        expected = payload.ids
        received = [r.id for r in records]
        if received != expected:
            logger.error(f"Batch inconsistente en {base}/{table}: {expected} != {received}")
            raise BatchConsistencyException(expected, received, records=records)

        return BatchResult(records=records)

    async def delete_record(
        self,
        base: str,
        table: str,
        record_id: str,
        *,
        deadline_s: Optional[float] = None,
    ) -> DeletedRecord:
        """Borra un registro y retorna la confirmación de Airtable."""
        url = self._record_url(base, table, record_id)

        response = await self._executor.request_json(
            "DELETE", url, record_id=record_id, deadline_s=deadline_s
        )
        deleted = DeletedRecord.from_api(response)
        logger.info(f"Registro borrado en {base}/{table}: {deleted.id}")
        return deleted
