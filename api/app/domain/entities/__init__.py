"""
Entidades del dominio.
"""
from app.domain.entities.record import (
    StoreRecord,
    RecordPage,
    ResolutionSource,
    ResolutionResult,
    UpsertAction,
    UpsertResult
)
from app.domain.entities.table_schema import (
    DEFAULT_PRIMARY_FIELDS,
    TableSchemaEntry,
    TableSchemaMap
)

__all__ = [
    "StoreRecord",
    "RecordPage",
    "ResolutionSource",
    "ResolutionResult",
    "UpsertAction",
    "UpsertResult",
    "DEFAULT_PRIMARY_FIELDS",
    "TableSchemaEntry",
    "TableSchemaMap"
]
