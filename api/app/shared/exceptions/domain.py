"""
Excepciones relacionadas con la logica de dominio.
"""
from typing import Any

from app.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepcion base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class ValidationException(DomainException):
    """Excepcion para errores de validacion."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class ReferenceNotFoundException(DomainException):
    """
    Un valor de un campo vinculado obligatorio no existe en la tabla destino.
    Protege las relaciones requeridas de quedar vacias en silencio.
    """

    def __init__(self, table: str, value: Any):
        super().__init__(
            message=f"Registro no encontrado en {table} para primary=\"{value}\"",
            error_code="REFERENCE_NOT_FOUND",
            details={"table": table, "value": str(value)}
        )
        self.table = table
        self.value = value


class RecordNotFoundException(DomainException):
    """Excepcion cuando una busqueda explicita no encuentra el registro."""

    def __init__(self, table: str, value: Any):
        super().__init__(
            message=f"{table}: no existe un registro para '{value}'",
            error_code="RECORD_NOT_FOUND",
            details={"table": table, "value": str(value)}
        )
        self.status_code = 404


class UpsertLockTimeoutException(AppException):
    """No se pudo adquirir el lock de upsert para una clave dentro del timeout."""

    def __init__(self, key: str, timeout: float):
        super().__init__(
            message=f"Timeout ({timeout}s) adquiriendo lock de upsert para: {key}",
            status_code=503,
            error_code="UPSERT_LOCK_TIMEOUT",
            details={"key": key, "timeout": timeout}
        )
        self.key = key
        self.timeout = timeout
