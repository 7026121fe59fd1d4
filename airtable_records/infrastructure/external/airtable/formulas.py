"""
Helpers para armar expresiones filterByFormula.

No pretende ser un lenguaje de consultas: solo cubre los filtros que el
cliente necesita construir de forma segura.
"""

from __future__ import annotations

from datetime import datetime

from airtable_records.shared.utils.datetime_utils import DateTimeUtils


def field_reference(field_name: str) -> str:
    """Referencia a un field en una fórmula: {Nombre}."""
    return "{" + field_name + "}"


def quote_string(value: str) -> str:
    """Literal string con comillas simples escapadas."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_equals_formula(field_name: str, value: str) -> str:
    """Filtro {field} = 'value'."""
    return f"{field_reference(field_name)} = {quote_string(value)}"


def build_modified_since_formula(last_modified_field: str, cursor: datetime) -> str:
    """
    Construye una fórmula para traer registros modificados desde `cursor`:

    - Incluye igualdad (>=) para ser tolerante a cortes a mitad de página.

    Nota: Airtable no soporta operador >= directo en fórmulas con fechas.
    Se usa OR(IS_AFTER(...), IS_SAME(...)).
    """
    cursor_str = DateTimeUtils.to_airtable_string(cursor)
    field_ref = field_reference(last_modified_field)
    return (
        f"OR("
        f"IS_AFTER({field_ref}, DATETIME_PARSE('{cursor_str}')), "
        f"IS_SAME({field_ref}, DATETIME_PARSE('{cursor_str}'))"
        f")"
    )
