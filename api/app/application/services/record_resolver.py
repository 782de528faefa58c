"""
Resolucion de registros vinculados: valor humano -> record id del store.

Flujo de resolve_identifier:
1. Si el valor ya es un record id (prefijo del store) se retorna tal cual.
2. Se normaliza (strip); vacio = NotFound sin llamadas de red.
3. Cache por (tabla, valor en minusculas).
4. Busqueda en el store: LOWER({primario}) = LOWER("valor"), maxRecords=1.
   Solo se cachean resultados positivos (TTL fijo, 10 min por defecto):
   un registro puede crearse segundos despues por otra request.

La cache no se invalida al borrar/renombrar registros en Airtable; la
obsolescencia queda acotada por el TTL.
"""

from __future__ import annotations

from typing import Any, Iterable, List

from loguru import logger

from app.domain.entities.record import ResolutionResult, ResolutionSource
from app.domain.entities.table_schema import TableSchemaMap
from app.domain.repositories.record_store import IRecordStore
from app.domain.repositories.resolution_cache import IResolutionCache
from app.infrastructure.external.airtable.formulas import build_case_insensitive_equals
from app.shared.exceptions.domain import ReferenceNotFoundException, ValidationException


# TTL de una resolucion positiva (segundos)
DEFAULT_RESOLUTION_TTL_S = 600.0


def normalize_value(value: Any) -> str:
    """None -> "", resto -> str sin espacios al inicio/fin."""
    if value is None:
        return ""
    return str(value).strip()


def as_value_list(values: Any) -> List[Any]:
    """Acepta escalar o lista; None -> []."""
    if values is None:
        return []
    if isinstance(values, (list, tuple)):
        return list(values)
    return [values]


def resolution_cache_key(table_name: str, value: str) -> str:
    return f"rid:{table_name}:{value.lower()}"


class RecordResolver:
    """
    Traduce valores humanos (nombres, codigos) o ids ya resueltos a record ids.

    Todas las escrituras de campos vinculados pasan por resolve_identifiers
    para convertir nombres visibles en los ids que exige el store.
    """

    def __init__(
        self,
        store: IRecordStore,
        schema: TableSchemaMap,
        cache: IResolutionCache,
        *,
        ttl_s: float = DEFAULT_RESOLUTION_TTL_S,
    ) -> None:
        self._store = store
        self._schema = schema
        self._cache = cache
        self._ttl_s = ttl_s

    def resolve_identifier(self, table_name: str, primary_value: Any) -> ResolutionResult:
        """
        Resuelve un unico valor.

        El valor se normaliza (strip) antes de todo: un id con espacios
        alrededor, p.ej. " recX ", se devuelve recortado ("recX") sin
        consultar el store, porque Airtable no acepta ids con espacios.

        Raises:
            ValidationException: Si falta el nombre de tabla
            ConfigurationException: Si la tabla no tiene campo primario declarado
            AirtableApiError: Errores del store, sin envolver
        """
        table = normalize_value(table_name)
        if not table:
            raise ValidationException("Falta el nombre de tabla", field="table")

        value = normalize_value(primary_value)
        if not value:
            return ResolutionResult.not_found()

        if self._store.is_record_id(value):
            return ResolutionResult(record_id=value, source=ResolutionSource.RECORD_ID)

        primary_field = self._schema.require_primary_field(table)

        cache_key = resolution_cache_key(table, value)
        cached = self._cache.get(cache_key)
        if cached:
            logger.debug(f"Resolver cache HIT {table}:{value}")
            return ResolutionResult(record_id=cached, source=ResolutionSource.CACHE)

        logger.debug(f"Resolver cache MISS {table}:{value}, consultando store")
        page = self._store.list_records(
            table,
            filter_formula=build_case_insensitive_equals(primary_field, value),
            max_records=1,
            page_size=1,
        )
        record = page.first
        if record is None or not record.id:
            return ResolutionResult.not_found()

        self._cache.set(cache_key, record.id, self._ttl_s)
        return ResolutionResult(record_id=record.id, source=ResolutionSource.STORE)

    def resolve_identifiers(
        self,
        table_name: str,
        values: Any,
        allow_missing: bool = False,
    ) -> List[str]:
        """
        Resuelve un escalar o una lista, preservando el orden de entrada.

        - Elementos vacios/None se omiten.
        - NotFound con allow_missing=True: se descarta el elemento.
        - NotFound con allow_missing=False: ReferenceNotFoundException.
        """
        out: List[str] = []
        for raw in as_value_list(values):
            value = normalize_value(raw)
            if not value:
                continue
            result = self.resolve_identifier(table_name, value)
            if result.found:
                out.append(result.record_id)
                continue
            if allow_missing:
                logger.debug(f"Resolver: '{value}' no existe en {table_name}, se omite (allow_missing)")
                continue
            logger.warning(f"Resolver: referencia obligatoria '{value}' no existe en {table_name}")
            raise ReferenceNotFoundException(normalize_value(table_name), value)
        return out

    def to_link_field_value(
        self,
        values: Any,
        *,
        table_name: str,
        allow_missing: bool = False,
    ) -> List[str]:
        """Valor listo para un campo vinculado: lista de record ids (formato del store)."""
        return self._only_record_ids(self.resolve_identifiers(table_name, values, allow_missing))

    def _only_record_ids(self, ids: Iterable[str]) -> List[str]:
        return [rid for rid in ids if self._store.is_record_id(rid)]
