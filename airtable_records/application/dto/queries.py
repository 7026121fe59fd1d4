"""
DTOs y builders de consultas (list / get).

Los builders son puros: sin I/O, deterministas y reutilizables después de build().
"""
from __future__ import annotations

from typing import Any, List, Literal, Optional, Tuple, Type

from pydantic import BaseModel, Field

from airtable_records.domain.entities.fields import check_known_fields, field_names_of
from airtable_records.shared.exceptions.records import ValidationException

# Tope documentado por Airtable para pageSize.
MAX_PAGE_SIZE = 100

CellFormat = Literal["json", "string"]
SortDirection = Literal["asc", "desc"]


class SortSpec(BaseModel):
    """Criterio de orden: field + dirección."""
    
    field: str = Field(..., min_length=1)
    direction: SortDirection = "asc"
    
    class Config:
        """Configuración de Pydantic."""
        frozen = True


class GetQuery(BaseModel):
    """Parámetros de get_record."""
    
    fields: Tuple[str, ...] = ()
    cell_format: Optional[CellFormat] = None
    time_zone: Optional[str] = None
    user_locale: Optional[str] = None
    
    class Config:
        """Configuración de Pydantic."""
        frozen = True
    
    def to_params(self) -> List[Tuple[str, Any]]:
        """Serializa a pares (nombre, valor) para el querystring."""
        params: List[Tuple[str, Any]] = [("fields[]", name) for name in self.fields]
        params.extend(_format_params(self.cell_format, self.time_zone, self.user_locale))
        return params


class ListQuery(BaseModel):
    """
    Parámetros de list_records.
    
    fields vacío = todos los fields. offset es el token opaco devuelto por
    la página anterior.
    """
    
    fields: Tuple[str, ...] = ()
    view: Optional[str] = None
    filter: Optional[str] = None
    sort: Tuple[SortSpec, ...] = ()
    page_size: Optional[int] = None
    max_records: Optional[int] = None
    offset: Optional[str] = None
    cell_format: Optional[CellFormat] = None
    time_zone: Optional[str] = None
    user_locale: Optional[str] = None
    
    class Config:
        """Configuración de Pydantic."""
        frozen = True
    
    def with_offset(self, offset: Optional[str]) -> "ListQuery":
        """Copia de la consulta apuntando a otra página."""
        return self.model_copy(update={"offset": offset})
    
    def to_params(self) -> List[Tuple[str, Any]]:
        """
        Serializa a pares (nombre, valor).
        
        Airtable espera fields[] repetido y sort[i][field]/sort[i][direction]
        explícitos; pasar listas tal cual produce "sort=field&sort=direction".
        """
        params: List[Tuple[str, Any]] = [("fields[]", name) for name in self.fields]
        if self.view is not None:
            params.append(("view", self.view))
        if self.filter is not None:
            params.append(("filterByFormula", self.filter))
        for i, s in enumerate(self.sort):
            params.append((f"sort[{i}][field]", s.field))
            params.append((f"sort[{i}][direction]", s.direction))
        if self.page_size is not None:
            params.append(("pageSize", self.page_size))
        if self.max_records is not None:
            params.append(("maxRecords", self.max_records))
        if self.offset is not None:
            params.append(("offset", self.offset))
        params.extend(_format_params(self.cell_format, self.time_zone, self.user_locale))
        return params


def _format_params(
    cell_format: Optional[str], time_zone: Optional[str], user_locale: Optional[str]
) -> List[Tuple[str, Any]]:
    params: List[Tuple[str, Any]] = []
    if cell_format is not None:
        params.append(("cellFormat", cell_format))
    if time_zone is not None:
        params.append(("timeZone", time_zone))
    if user_locale is not None:
        params.append(("userLocale", user_locale))
    return params


class _FieldScopedBuilder:
    """Lógica común: selección de fields y formato de celdas."""
    
    def __init__(self, record_type: Optional[Type[Any]] = None) -> None:
        self._record_type = record_type
        self._known_fields = field_names_of(record_type) if record_type is not None else None
        self._fields: List[str] = []
        self._cell_format: Optional[str] = None
        self._time_zone: Optional[str] = None
        self._user_locale: Optional[str] = None
    
    def fields(self, names):
        self._fields = list(names)
        return self
    
    def cell_format(self, cell_format: str):
        self._cell_format = cell_format
        return self
    
    def time_zone(self, time_zone: str):
        self._time_zone = time_zone
        return self
    
    def user_locale(self, user_locale: str):
        self._user_locale = user_locale
        return self
    
    def _validated_fields(self) -> Tuple[str, ...]:
        seen = set()
        for name in self._fields:
            if not name:
                raise ValidationException("Nombre de field vacío", field="fields")
            if name in seen:
                raise ValidationException(f"Field duplicado en la consulta: '{name}'", field=name)
            seen.add(name)
        
        if self._known_fields is not None:
            check_known_fields(self._record_type, self._known_fields, self._fields)
        return tuple(self._fields)
    
    def _validate_format(self) -> None:
        if self._cell_format not in (None, "json", "string"):
            raise ValidationException(
                f"cell_format inválido: '{self._cell_format}'", field="cell_format"
            )
        # Airtable exige timeZone y userLocale cuando cellFormat=string
        if self._cell_format == "string" and not (self._time_zone and self._user_locale):
            raise ValidationException(
                "cell_format='string' requiere time_zone y user_locale", field="cell_format"
            )


class ListRecordsQueryBuilder(_FieldScopedBuilder):
    """
    Builder de ListQuery.
    
    Uso:
        query = (
            ListRecordsQueryBuilder(Customer)
            .fields(Customer.field_names())
            .view("Grid view")
            .page_size(50)
            .build()
        )
    
    Si se indica record_type, build() valida que los fields pertenezcan al tipo.
    """
    
    def __init__(self, record_type: Optional[Type[Any]] = None) -> None:
        super().__init__(record_type)
        self._view: Optional[str] = None
        self._filter: Optional[str] = None
        self._sort: List[SortSpec] = []
        self._page_size: Optional[int] = None
        self._max_records: Optional[int] = None
        self._offset: Optional[str] = None
    
    def view(self, view: str) -> "ListRecordsQueryBuilder":
        self._view = view
        return self
    
    def filter(self, formula: str) -> "ListRecordsQueryBuilder":
        self._filter = formula
        return self
    
    def sort(self, field: str, direction: str = "asc") -> "ListRecordsQueryBuilder":
        """Agrega un criterio de orden (se aplican en el orden en que se agregan)."""
        self._sort.append((field, direction))
        return self
    
    def page_size(self, page_size: int) -> "ListRecordsQueryBuilder":
        self._page_size = page_size
        return self
    
    def max_records(self, max_records: int) -> "ListRecordsQueryBuilder":
        self._max_records = max_records
        return self
    
    def offset(self, offset: Optional[str]) -> "ListRecordsQueryBuilder":
        self._offset = offset
        return self
    
    def build(self) -> ListQuery:
        """
        Valida y construye una ListQuery inmutable.
        
        Raises:
            ValidationException: combinación o valor inválido
        """
        fields = self._validated_fields()
        self._validate_format()
        
        if self._page_size is not None and not 1 <= self._page_size <= MAX_PAGE_SIZE:
            raise ValidationException(
                f"page_size debe estar entre 1 y {MAX_PAGE_SIZE}", field="page_size"
            )
        if self._max_records is not None and self._max_records < 1:
            raise ValidationException("max_records debe ser >= 1", field="max_records")
        if self._offset == "":
            raise ValidationException("offset vacío", field="offset")
        
        sort = []
        for field, direction in self._sort:
            if not field:
                raise ValidationException("Field de orden vacío", field="sort")
            if direction not in ("asc", "desc"):
                raise ValidationException(
                    f"Dirección de orden inválida: '{direction}'", field="sort"
                )
            if self._known_fields is not None and field not in self._known_fields:
                raise ValidationException(
                    f"Field de orden desconocido para {self._record_type.__name__}: '{field}'",
                    field=field,
                )
            sort.append(SortSpec(field=field, direction=direction))
        
        return ListQuery(
            fields=fields,
            view=self._view,
            filter=self._filter,
            sort=tuple(sort),
            page_size=self._page_size,
            max_records=self._max_records,
            offset=self._offset,
            cell_format=self._cell_format,
            time_zone=self._time_zone,
            user_locale=self._user_locale,
        )


class GetRecordQueryBuilder(_FieldScopedBuilder):
    """Builder de GetQuery (solo fields y formato)."""
    
    def build(self) -> GetQuery:
        fields = self._validated_fields()
        self._validate_format()
        return GetQuery(
            fields=fields,
            cell_format=self._cell_format,
            time_zone=self._time_zone,
            user_locale=self._user_locale,
        )
