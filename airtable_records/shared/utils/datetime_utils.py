"""
Utilidades para manejo de fechas y horas.

Airtable serializa timestamps como ISO8601 con sufijo 'Z'
(e.g. "2025-12-16T10:15:00.000Z"). Aquí se normaliza todo a UTC aware.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""
    
    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.
        
        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)
    
    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza datetime a UTC (aware).
        
        Un datetime naive se interpreta como UTC.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    
    @staticmethod
    def to_airtable_string(dt: datetime) -> str:
        """
        Serializa datetime a ISO8601 con 'Z' (UTC), sin microsegundos.
        
        Args:
            dt: Objeto datetime
            
        Returns:
            str: Fecha en formato aceptado por fórmulas de Airtable
        """
        dt_utc = DateTimeUtils.ensure_utc(dt)
        return dt_utc.replace(microsecond=0).isoformat().replace("+00:00", "Z")
    
    @staticmethod
    def from_airtable_string(iso_string: str) -> Optional[datetime]:
        """
        Convierte un string ISO 8601 de Airtable a datetime UTC.
        
        Args:
            iso_string: String en formato ISO 8601
            
        Returns:
            Optional[datetime]: Objeto datetime o None si hay error
        """
        try:
            dt = datetime.fromisoformat(str(iso_string).replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None
        return DateTimeUtils.ensure_utc(dt)
