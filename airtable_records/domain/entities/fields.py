"""
Mapeo declarativo entre un tipo de registro y los fields de una tabla remota.

Cada tipo de registro declara sus fields como atributos de un modelo pydantic;
el nombre remoto del field es el alias (o el nombre del atributo si no hay alias):

    class Customer(RecordFields):
        name: Optional[str] = Field(None, alias="Name")
        email: Optional[str] = Field(None, alias="Email")

    Customer.field_names()  # ("Name", "Email")

Los nombres remotos duplicados se detectan al definir la clase.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Protocol, Tuple, Type, TypeVar, runtime_checkable

from pydantic import BaseModel

from airtable_records.shared.exceptions.records import FieldMappingException, ValidationException

F = TypeVar("F", bound="FieldMapper")


@runtime_checkable
class FieldMapper(Protocol):
    """Capacidad que todo tipo de registro debe ofrecer al cliente."""

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        ...

    @classmethod
    def from_fields(cls: Type[F], fields: Mapping[str, Any]) -> F:
        ...

    def to_fields(self, *, exclude_unset: bool = True) -> Dict[str, Any]:
        ...


class RecordFields(BaseModel):
    """
    Base para tipos de registro tipados.

    - field_names(): nombres remotos, en orden de declaración y sin duplicados
    - to_fields(): bolsa JSON de fields indexada por nombre remoto
    - from_fields(): construye la instancia desde la bolsa remota
    """

    class Config:
        """Configuración de Pydantic."""
        populate_by_name = True
        extra = "ignore"  # Airtable puede devolver fields no mapeados

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        seen: Dict[str, str] = {}
        for attr_name, info in cls.model_fields.items():
            remote_name = info.alias or attr_name
            if remote_name in seen:
                raise FieldMappingException(
                    f"{cls.__name__}: los atributos '{seen[remote_name]}' y '{attr_name}' "
                    f"mapean al mismo field remoto '{remote_name}'",
                    field=remote_name,
                )
            seen[remote_name] = attr_name

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(info.alias or attr_name for attr_name, info in cls.model_fields.items())

    @classmethod
    def validate_field_names(cls, names: Iterable[str]) -> None:
        """Falla con ValidationException si algún nombre no pertenece al tipo."""
        check_known_fields(cls, cls.field_names(), names)

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "RecordFields":
        return cls.model_validate(dict(fields))

    def to_fields(self, *, exclude_unset: bool = True) -> Dict[str, Any]:
        """
        Serializa a la bolsa de fields remota.

        Con exclude_unset=True solo viajan los atributos asignados explícitamente,
        de modo que un PATCH no pisa fields que el caller no tocó.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_unset=exclude_unset)


def field_names_of(record_type: Type[Any]) -> Tuple[str, ...]:
    """
    Obtiene y valida los nombres remotos de un tipo que implementa FieldMapper.

    Para tipos que no heredan de RecordFields la validación de duplicados
    ocurre aquí, en el primer uso.
    """
    if not isinstance(record_type, type) or not issubclass(record_type, FieldMapper):
        raise FieldMappingException(
            f"{record_type!r} no implementa field_names/from_fields/to_fields"
        )
    names = tuple(record_type.field_names())
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise FieldMappingException(
            f"{record_type.__name__}: fields remotos duplicados {duplicates}",
            field=duplicates[0],
        )
    return names


class DynamicFields(RecordFields):
    """
    Tipo sin esquema: conserva cualquier field remoto tal cual.

    Útil para herramientas genéricas (CLI); field_names() es vacío, por lo que
    list_records trae todos los fields.
    """

    class Config:
        """Configuración de Pydantic."""
        extra = "allow"

    def to_fields(self, *, exclude_unset: bool = True) -> Dict[str, Any]:
        return dict(self.model_extra or {})


def check_known_fields(record_type: Type[Any], known: Iterable[str], names: Iterable[str]) -> None:
    """ValidationException con los nombres que no están en `known`."""
    known = set(known)
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ValidationException(
            f"Fields desconocidos para {record_type.__name__}: {unknown}",
            field=unknown[0],
        )
