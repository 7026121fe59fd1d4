"""
Configuracion de logging (loguru).
"""
import sys

from loguru import logger

from airtable_records.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """
    Reemplaza el sink por defecto de loguru segun la configuracion.
    
    - stderr al nivel LOG_LEVEL
    - archivo rotativo si LOG_FILE esta definido
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)
    
    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            rotation="500 MB",
            retention="10 days",
            level=settings.LOG_LEVEL
        )
    
    logger.debug(f"Logging configurado (nivel={settings.LOG_LEVEL})")
