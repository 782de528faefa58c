"""
Upsert por campo primario (find-or-create) sobre el record store.

La busqueda seguida de la creacion no es atomica en Airtable: dos upserts
concurrentes con el mismo valor nuevo pueden crear dos registros. Con un
KeyedLockManager la carrera desaparece dentro del proceso, no entre
instancias. No hay reintentos: el caller decide si un error es reintentable.
"""

from __future__ import annotations

from contextlib import nullcontext
from typing import Any, Dict, Optional

from loguru import logger

from app.application.services.record_resolver import normalize_value, resolution_cache_key
from app.domain.entities.record import UpsertAction, UpsertResult
from app.domain.entities.table_schema import TableSchemaMap
from app.domain.repositories.record_store import IRecordStore
from app.domain.repositories.resolution_cache import IResolutionCache
from app.infrastructure.external.airtable.formulas import build_case_insensitive_equals
from app.infrastructure.locks.keyed_lock import KeyedLockManager
from app.shared.exceptions.domain import ValidationException


class RecordUpsertService:
    """Crea o actualiza un registro identificado por un campo unico."""

    def __init__(
        self,
        store: IRecordStore,
        schema: TableSchemaMap,
        cache: IResolutionCache,
        *,
        lock_manager: Optional[KeyedLockManager] = None,
        cache_ttl_s: float = 600.0,
    ) -> None:
        self._store = store
        self._schema = schema
        self._cache = cache
        self._locks = lock_manager
        self._cache_ttl_s = cache_ttl_s

    def upsert_by_primary(
        self,
        table_name: str,
        primary_field: str,
        primary_value: Any,
        fields: Optional[Dict[str, Any]] = None,
    ) -> UpsertResult:
        """
        Busca como mucho un registro con primary_field == primary_value
        (sin distinguir mayusculas) y lo actualiza; si no existe lo crea.

        Args:
            table_name: Tabla destino
            primary_field: Campo usado como clave unica en esta operacion
                (puede no ser el primario del schema, p.ej. "ID Fattura")
            primary_value: Valor a buscar/escribir
            fields: Resto de fields a escribir

        Returns:
            UpsertResult con action "created" o "updated"
        """
        table = normalize_value(table_name)
        field = normalize_value(primary_field)
        value = normalize_value(primary_value)
        if not table:
            raise ValidationException("Falta el nombre de tabla", field="table")
        if not field:
            raise ValidationException("Falta el campo primario del upsert", field="primary_field")
        if not value:
            raise ValidationException("Falta el valor primario del upsert", field="primary_value")

        to_set = {k: v for k, v in (fields or {}).items() if k != field}

        key = f"{table}:{field}:{value.lower()}"
        with self._locks.lock(key) if self._locks else nullcontext():
            result = self._find_then_write(table, field, value, to_set)

        if self._schema.primary_field_of(table) == field:
            # Solo se cachean ids de registros que existen en el store.
            self._cache.set(resolution_cache_key(table, value), result.record.id, self._cache_ttl_s)

        logger.info(f"Upsert {table} [{field}={value}]: {result.action.value} {result.record.id}")
        return result

    def _find_then_write(
        self,
        table: str,
        field: str,
        value: str,
        to_set: Dict[str, Any],
    ) -> UpsertResult:
        page = self._store.list_records(
            table,
            filter_formula=build_case_insensitive_equals(field, value),
            max_records=1,
            page_size=1,
        )
        existing = page.first
        if existing is not None and existing.id:
            updated = self._store.update_record(table, existing.id, to_set)
            return UpsertResult(action=UpsertAction.UPDATED, record=updated)

        created = self._store.create_record(table, {field: value, **to_set})
        return UpsertResult(action=UpsertAction.CREATED, record=created)
