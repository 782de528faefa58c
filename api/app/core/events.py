"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from app.core.config import settings
from app.api.v1.dependencies.repository_deps import (
    close_record_store,
    get_resolution_cache,
    get_table_schema,
)


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Configurar logging a archivo (request_id lo rellena ErrorHandlerMiddleware)
            logger.configure(extra={"request_id": "-"})
            app.state.log_sink_id = logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL,
                format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[request_id]} | {name}:{function}:{line} - {message}"
            )

            # Validar configuracion critica
            _validate_config()

            # El schema se carga una sola vez; un JSON invalido debe impedir el arranque
            schema = get_table_schema()
            logger.info(f"Tablas con campo primario: {len(schema)}")

            logger.success("Aplicacion iniciada correctamente")

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.airtable_configured:
        warnings.append("AIRTABLE_TOKEN/AIRTABLE_BASE_ID no configurados - el record store no funcionara")

    if settings.SECRET_KEY == "change-this-secret-key-in-production" and not settings.is_development:
        warnings.append("SECRET_KEY por defecto en produccion - las sesiones no son seguras")

    if not settings.UPSERT_SERIALIZE:
        warnings.append("UPSERT_SERIALIZE desactivado - upserts concurrentes pueden duplicar registros")

    # Mostrar advertencias
    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        if close_record_store():
            logger.info("Cliente Airtable cerrado")

        get_resolution_cache().clear()
        logger.info("Cache de resolucion vaciada")

        logger.success("Aplicacion cerrada correctamente")

        sink_id = getattr(app.state, "log_sink_id", None)
        if sink_id is not None:
            logger.remove(sink_id)
            app.state.log_sink_id = None

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Ciclo de vida de la aplicacion: startup antes de servir, shutdown al salir."""
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()
