"""
Configuracion central del cliente.
Gestiona variables de entorno y valores por defecto.
"""
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field

from airtable_records.infrastructure.external.airtable.request_executor import RetryPolicy


class Settings(BaseSettings):
    """
    Clase de configuracion del cliente.
    Lee variables de entorno (o .env) y proporciona valores por defecto.
    
    El token nunca se imprime: se excluye del repr.
    """
    
    # Airtable
    AIRTABLE_API_TOKEN: str = Field(default="", repr=False)
    AIRTABLE_BASE_URL: str = Field(default="https://api.airtable.com/v0")
    AIRTABLE_TIMEOUT_S: float = Field(default=30.0, gt=0)
    
    # Reintentos (429 / 5xx / red)
    AIRTABLE_MAX_RETRIES: int = Field(default=5, ge=0)
    AIRTABLE_MIN_BACKOFF_S: float = Field(default=0.5, ge=0)
    AIRTABLE_MAX_BACKOFF_S: float = Field(default=20.0, ge=0)
    AIRTABLE_JITTER_RATIO: float = Field(default=0.15, ge=0)
    
    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="")
    
    @computed_field
    @property
    def retry_policy(self) -> RetryPolicy:
        """Politica de reintentos derivada de las variables AIRTABLE_*."""
        return RetryPolicy(
            max_retries=self.AIRTABLE_MAX_RETRIES,
            min_backoff_s=self.AIRTABLE_MIN_BACKOFF_S,
            max_backoff_s=self.AIRTABLE_MAX_BACKOFF_S,
            jitter_ratio=self.AIRTABLE_JITTER_RATIO,
        )
    
    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env
