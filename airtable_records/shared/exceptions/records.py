"""
Excepciones del cliente de registros.

Taxonomía:
- ValidationException: input mal formado detectado localmente (nunca sale a la red).
- RemoteApiException: respuesta no exitosa del servicio remoto (4xx no reintentable
  o presupuesto de reintentos agotado en 429/5xx).
- RecordNotFoundException: 404 en get/update/delete.
- TransportException: fallos de conexión/timeout tras agotar reintentos.
- RequestCancelledException: deadline del caller vencido.
"""
from typing import Any, Optional, Sequence

from airtable_records.shared.exceptions.base import AppException


class RecordStoreException(AppException):
    """Excepción base para errores del cliente de registros."""


class ValidationException(RecordStoreException):
    """Excepción para errores de validación local."""
    
    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )
        self.field = field


class FieldMappingException(ValidationException):
    """Mapeo de campos inválido en un tipo de registro (error de programación)."""


class RemoteApiException(RecordStoreException):
    """Respuesta de error del servicio remoto. Conserva status y body crudo."""
    
    def __init__(
        self,
        status: int,
        body: str,
        message: Optional[str] = None,
        error_code: str = "REMOTE_ERROR",
    ):
        super().__init__(
            message=message or f"Airtable respondió {status}: {body}",
            status_code=status,
            error_code=error_code,
            details={"status": status, "body": body}
        )
        self.status = status
        self.body = body


class RecordNotFoundException(RemoteApiException):
    """El servicio remoto no conoce el registro (404)."""
    
    def __init__(self, status: int, body: str, record_id: Optional[str] = None):
        message = (
            f"Registro '{record_id}' no encontrado"
            if record_id
            else "Recurso no encontrado en Airtable"
        )
        super().__init__(status, body, message=message, error_code="RECORD_NOT_FOUND")
        self.record_id = record_id


class ResponseFormatException(RemoteApiException):
    """Respuesta 2xx con una forma que no corresponde al contrato."""
    
    def __init__(self, message: str, body: Any = None):
        super().__init__(
            status=200,
            body="" if body is None else str(body),
            message=message,
            error_code="RESPONSE_FORMAT_ERROR",
        )


class BatchConsistencyException(RemoteApiException):
    """El resultado de un batch no respeta el orden o tamaño de la solicitud."""
    
    def __init__(
        self,
        expected_ids: Sequence[str],
        received_ids: Sequence[str],
        records: Optional[Sequence[Any]] = None,
    ):
        super().__init__(
            status=200,
            body="",
            message=(
                f"Resultado de batch inconsistente: esperados {list(expected_ids)}, "
                f"recibidos {list(received_ids)}"
            ),
            error_code="BATCH_INCONSISTENT",
        )
        self.expected_ids = list(expected_ids)
        self.received_ids = list(received_ids)
        # Registros tal como los devolvió el servidor (estado post-update)
        self.records = list(records or [])
        self.details.update(
            {"expected_ids": self.expected_ids, "received_ids": self.received_ids}
        )


class TransportException(RecordStoreException):
    """Fallo de red (conexión, timeout) tras agotar reintentos."""
    
    def __init__(self, message: str, attempts: int):
        super().__init__(
            message=message,
            status_code=503,
            error_code="TRANSPORT_ERROR",
            details={"attempts": attempts}
        )
        self.attempts = attempts


class RequestCancelledException(RecordStoreException):
    """La operación fue abandonada por vencimiento del deadline del caller."""
    
    def __init__(self, operation: str, deadline_s: float):
        super().__init__(
            message=f"Operación '{operation}' cancelada tras {deadline_s}s",
            status_code=499,
            error_code="CANCELLED",
            details={"operation": operation, "deadline_s": deadline_s}
        )
        self.operation = operation
        self.deadline_s = deadline_s
