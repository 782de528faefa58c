"""
Servicios de aplicacion.

Contiene la logica reutilizable sobre el record store que no pertenece
a un caso de uso especifico.
"""
from app.application.services.record_resolver import RecordResolver
from app.application.services.record_upsert import RecordUpsertService
from app.application.services.field_name_resolver import (
    FieldNameResolver,
    resolve_field_key_from_keys,
)

__all__ = [
    # Registros vinculados
    "RecordResolver",
    "RecordUpsertService",
    # Nombres de campo
    "FieldNameResolver",
    "resolve_field_key_from_keys",
]
