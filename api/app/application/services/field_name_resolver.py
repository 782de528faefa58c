"""
Resolucion flexible de nombres de campo.

Los nombres de fields en Airtable cambian con el tiempo ("Data", "Data e ora",
"Data appuntamento"...). Los endpoints declaran una lista de candidatos y
aqui se decide cual existe realmente en la tabla.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from loguru import logger

from app.domain.entities.table_schema import TableSchemaMap
from app.domain.repositories.record_store import IRecordStore
from app.domain.repositories.resolution_cache import IResolutionCache


DEFAULT_FIELD_NAME_TTL_S = 3600.0

_NON_ALNUM = re.compile(r"[\W_]+", re.UNICODE)


def normalize_key_loose(value: object) -> str:
    """Minusculas y solo letras/digitos: "Data e Ora" -> "dataeora"."""
    return _NON_ALNUM.sub("", str(value or "").lower())


def resolve_field_key_from_keys(keys: Iterable[str], candidates: Iterable[str]) -> str:
    """
    Elige el primer candidato presente en keys.

    1. Coincidencia exacta sin distinguir mayusculas, en orden de candidatos.
    2. Si no hay, coincidencia "loose" (sin espacios ni signos).
    Retorna el nombre tal como aparece en keys, o "" si no hay match.
    """
    key_list = [str(k) for k in keys or [] if str(k or "")]
    if not key_list:
        return ""
    wanted = [str(c).strip() for c in candidates or [] if str(c or "").strip()]

    by_lower = {}
    for k in key_list:
        by_lower.setdefault(k.lower(), k)
    for c in wanted:
        hit = by_lower.get(c.lower())
        if hit:
            return hit

    by_loose = {}
    for k in key_list:
        by_loose.setdefault(normalize_key_loose(k), k)
    for c in wanted:
        loose = normalize_key_loose(c)
        if loose and loose in by_loose:
            return by_loose[loose]

    return ""


class FieldNameResolver:
    """Decide que nombre de campo usar en una tabla, con cache de 1 hora."""

    def __init__(
        self,
        store: IRecordStore,
        schema: TableSchemaMap,
        cache: IResolutionCache,
        *,
        ttl_s: float = DEFAULT_FIELD_NAME_TTL_S,
    ) -> None:
        self._store = store
        self._schema = schema
        self._cache = cache
        self._ttl_s = ttl_s

    def resolve(self, table_name: str, candidates: Sequence[str]) -> str:
        """
        Retorna el primer candidato que existe en la tabla, o "".

        - Fast path: snapshot del schema (sin red), verificado con field_exists
          porque el snapshot puede estar desactualizado.
        - Si la tabla no tiene fields en el schema, se usan las keys de un
          registro de muestra (infer_field_keys); un match no necesita field_exists.
        - Si no, se prueba cada candidato en orden.
        """
        table = str(table_name or "").strip()
        wanted = [str(c).strip() for c in candidates or [] if str(c or "").strip()]
        if not table or not wanted:
            return ""

        cache_key = f"field:{table}:{'|'.join(wanted)}"
        cached = self._cache.get(cache_key)
        if cached:
            return cached

        resolved = self._resolve_uncached(table, wanted)
        if resolved:
            self._cache.set(cache_key, resolved, self._ttl_s)
        return resolved

    def infer_field_keys(self, table_name: str) -> List[str]:
        """Nombres de fields de un registro de muestra (Airtable omite los vacios)."""
        table = str(table_name or "").strip()
        cache_key = f"keys:{table}"
        cached = self._cache.get(cache_key)
        if cached:
            return list(cached)

        page = self._store.list_records(table, max_records=1, page_size=1)
        keys = list(page.first.fields.keys()) if page.first else []
        if keys:
            self._cache.set(cache_key, tuple(keys), self._ttl_s)
        return keys

    def _resolve_uncached(self, table: str, wanted: List[str]) -> str:
        known = self._schema.fields_of(table)
        if not known:
            # Sin snapshot: un registro real que trae el field ya prueba que existe.
            from_sample = resolve_field_key_from_keys(self.infer_field_keys(table), wanted)
            if from_sample:
                return from_sample

        from_schema = resolve_field_key_from_keys(known, wanted)
        if from_schema and self._store.field_exists(table, from_schema):
            return from_schema
        if from_schema:
            logger.warning(f"Schema desactualizado: '{from_schema}' no existe en {table}, probando candidatos")

        for candidate in wanted:
            if candidate != from_schema and self._store.field_exists(table, candidate):
                return candidate
        return ""
