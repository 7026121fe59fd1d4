"""
Raíz de la jerarquía de errores del cliente de registros.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Error del paquete con código estable y detalles serializables.

    status_code refleja el status remoto cuando lo hay; para errores locales
    se usa el equivalente HTTP (400 validación, 499 cancelado, 503 red).
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Representación para logs o salida JSON del CLI."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }
