"""
Envelopes de registros tal como viajan por la API.

Se mantienen libres de I/O: solo decodifican el JSON ya recibido.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from airtable_records.shared.exceptions.records import ResponseFormatException
from airtable_records.shared.utils.datetime_utils import DateTimeUtils

T = TypeVar("T")


@dataclass(frozen=True)
class Record(Generic[T]):
    """
    Registro remoto: id estable + fields tipados + metadata.

    id vacío solo para registros que aún no existen en Airtable.
    """

    id: str
    fields: T
    created_time: Optional[datetime] = None

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    @classmethod
    def from_api(cls, data: Any, record_type: Type[T]) -> "Record[T]":
        """
        Decodifica {"id", "fields", "createdTime"} al envelope tipado.
        """
        if not isinstance(data, Mapping):
            raise ResponseFormatException("Airtable devolvió un record que no es objeto", data)

        rec_id = data.get("id")
        if not rec_id:
            # Caso raro; preferimos fallar temprano y visible.
            raise ResponseFormatException("Airtable devolvió un record sin 'id'", data)

        raw_fields = data.get("fields") or {}
        if not isinstance(raw_fields, Mapping):
            raise ResponseFormatException(
                f"El record {rec_id} trae 'fields' con formato inválido", data
            )

        created_time = None
        raw_created = data.get("createdTime")
        if raw_created:
            created_time = DateTimeUtils.from_airtable_string(raw_created)
            if created_time is None:
                raise ResponseFormatException(
                    f"No se pudo parsear createdTime del record {rec_id}: {raw_created}", data
                )

        try:
            fields_value = record_type.from_fields(raw_fields)
        except PydanticValidationError as e:
            raise ResponseFormatException(
                f"Los fields del record {rec_id} no coinciden con {record_type.__name__}: {e}", data
            ) from e

        return cls(id=str(rec_id), fields=fields_value, created_time=created_time)


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    Una página de list_records.

    Si offset no es None el resultado es parcial: hay que volver a llamar
    con ese offset para continuar.
    """

    records: List[Record[T]] = field(default_factory=list)
    offset: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.offset is not None


@dataclass(frozen=True)
class BatchResult(Generic[T]):
    """Resultado de una operación batch, en el mismo orden de la solicitud."""

    records: List[Record[T]] = field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [r.id for r in self.records]


@dataclass(frozen=True)
class DeletedRecord:
    """Confirmación de borrado devuelta por Airtable."""

    id: str
    deleted: bool

    @classmethod
    def from_api(cls, data: Any) -> "DeletedRecord":
        if not isinstance(data, Mapping) or not data.get("id"):
            raise ResponseFormatException("Respuesta de borrado sin 'id'", data)
        return cls(id=str(data["id"]), deleted=bool(data.get("deleted", False)))
