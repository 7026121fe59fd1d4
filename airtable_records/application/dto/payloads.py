"""
Payloads de escritura (create / update) y su builder.

PATCH mezcla solo los fields enviados en el registro existente.
PUT reemplaza el set completo: todo field no enviado queda vacío.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from airtable_records.shared.exceptions.records import ValidationException

T = TypeVar("T")

# Límite de registros por request de Airtable para operaciones batch.
MAX_BATCH_SIZE = 10


class UpdateMethod(str, Enum):
    """Método de actualización."""
    
    PATCH = "patch"
    PUT = "put"
    
    @property
    def http_method(self) -> str:
        return self.value.upper()


def _fields_bag(fields: Any) -> Dict[str, Any]:
    if isinstance(fields, dict):
        return dict(fields)
    return fields.to_fields()


def _with_typecast(body: Dict[str, Any], typecast: Optional[bool]) -> Dict[str, Any]:
    if typecast is not None:
        body["typecast"] = typecast
    return body


@dataclass(frozen=True)
class UpdateRecordPayload(Generic[T]):
    """Update de un registro; el id viaja en la URL."""
    
    fields: T
    typecast: Optional[bool] = None
    
    def to_body(self) -> Dict[str, Any]:
        return _with_typecast({"fields": _fields_bag(self.fields)}, self.typecast)


@dataclass(frozen=True)
class CreateRecordPayload(Generic[T]):
    """Alta de un registro; Airtable asigna el id."""
    
    fields: T
    typecast: Optional[bool] = None
    
    def to_body(self) -> Dict[str, Any]:
        return _with_typecast({"fields": _fields_bag(self.fields)}, self.typecast)


@dataclass(frozen=True)
class BatchRecordUpdate(Generic[T]):
    """Entrada de un batch: id + fields."""
    
    id: str
    fields: T
    
    def to_body(self) -> Dict[str, Any]:
        return {"id": self.id, "fields": _fields_bag(self.fields)}


@dataclass(frozen=True)
class UpdateMultipleRecordsPayload(Generic[T]):
    """
    Update batch.
    
    Se valida al construir: 1..MAX_BATCH_SIZE entradas, ids no vacíos y únicos.
    Un batch inválido nunca llega a la red.
    """
    
    records: Tuple[BatchRecordUpdate[T], ...]
    typecast: Optional[bool] = None
    
    def __post_init__(self) -> None:
        # Acepta cualquier secuencia y la congela
        object.__setattr__(self, "records", tuple(self.records))
        if not self.records:
            raise ValidationException("El batch no tiene registros", field="records")
        if len(self.records) > MAX_BATCH_SIZE:
            raise ValidationException(
                f"El batch tiene {len(self.records)} registros; máximo {MAX_BATCH_SIZE}",
                field="records",
            )
        seen = set()
        for entry in self.records:
            if not entry.id:
                raise ValidationException("Entrada de batch sin id", field="id")
            if entry.id in seen:
                raise ValidationException(f"Id repetido en el batch: '{entry.id}'", field="id")
            seen.add(entry.id)
    
    @property
    def ids(self) -> List[str]:
        return [entry.id for entry in self.records]
    
    def to_body(self) -> Dict[str, Any]:
        return _with_typecast(
            {"records": [entry.to_body() for entry in self.records]}, self.typecast
        )


class UpdatePayloadBuilder(Generic[T]):
    """
    Builder de payloads de escritura.
    
    Uso:
        payload = (
            UpdatePayloadBuilder()
            .add("rec1", Customer(name="A"))
            .add("rec2", Customer(name="B"))
            .typecast(True)
            .build_multiple()
        )
    
    Un set de fields vacío es válido: con PUT significa "vaciar todos los fields".
    """
    
    def __init__(self) -> None:
        self._entries: List[Tuple[str, T]] = []
        self._typecast: Optional[bool] = None
    
    def add(self, record_id: str, fields: T) -> "UpdatePayloadBuilder[T]":
        self._entries.append((record_id, fields))
        return self
    
    def extend(self, entries: Iterable[Tuple[str, T]]) -> "UpdatePayloadBuilder[T]":
        self._entries.extend(entries)
        return self
    
    def typecast(self, enabled: bool = True) -> "UpdatePayloadBuilder[T]":
        self._typecast = enabled
        return self
    
    def build_single(self, fields: T) -> UpdateRecordPayload[T]:
        """Payload para update_record (el id se pasa aparte)."""
        if fields is None:
            raise ValidationException("fields es obligatorio", field="fields")
        return UpdateRecordPayload(fields=fields, typecast=self._typecast)
    
    def build_create(self, fields: T) -> CreateRecordPayload[T]:
        if fields is None:
            raise ValidationException("fields es obligatorio", field="fields")
        return CreateRecordPayload(fields=fields, typecast=self._typecast)
    
    def build_multiple(self) -> UpdateMultipleRecordsPayload[T]:
        """Payload para update_multiple_records, en el orden en que se agregaron."""
        return UpdateMultipleRecordsPayload(
            records=tuple(BatchRecordUpdate(id=rid, fields=f) for rid, f in self._entries),
            typecast=self._typecast,
        )
