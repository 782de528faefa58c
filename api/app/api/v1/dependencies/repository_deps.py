"""
Dependencias para inyeccion del record store, el schema y las caches.

Son singletons de proceso: la cache de resolucion y los locks de upsert
deben compartirse entre requests.
"""
from functools import lru_cache

from app.core.config import settings
from app.domain.entities.table_schema import TableSchemaMap
from app.domain.repositories.record_store import IRecordStore
from app.infrastructure.cache.ttl_cache import InMemoryTTLCache
from app.infrastructure.external.airtable.airtable_client import AirtableClient, AirtableCredentials
from app.infrastructure.locks.keyed_lock import KeyedLockManager
from app.shared.exceptions.base import ConfigurationException


@lru_cache(maxsize=1)
def get_record_store() -> IRecordStore:
    """
    Cliente Airtable configurado desde settings.

    Raises:
        ConfigurationException: Si faltan AIRTABLE_TOKEN o AIRTABLE_BASE_ID
    """
    if not settings.airtable_configured:
        raise ConfigurationException("Faltan variables de entorno: AIRTABLE_TOKEN, AIRTABLE_BASE_ID")
    return AirtableClient(
        AirtableCredentials(token=settings.AIRTABLE_TOKEN, base_id=settings.AIRTABLE_BASE_ID),
        base_url=settings.AIRTABLE_API_URL,
        timeout_s=settings.AIRTABLE_FETCH_TIMEOUT_S,
        retry_on_timeout=settings.AIRTABLE_FETCH_RETRY_ON_TIMEOUT,
        max_retries=settings.AIRTABLE_MAX_RETRIES,
        record_id_prefix=settings.AIRTABLE_RECORD_ID_PREFIX,
    )


@lru_cache(maxsize=1)
def get_table_schema() -> TableSchemaMap:
    return TableSchemaMap.load(settings.AIRTABLE_SCHEMA_FILE)


@lru_cache(maxsize=1)
def get_resolution_cache() -> InMemoryTTLCache:
    return InMemoryTTLCache(
        max_entries=settings.RESOLVER_CACHE_MAX_ENTRIES,
        evict_ratio=settings.RESOLVER_CACHE_EVICT_RATIO,
    )


@lru_cache(maxsize=1)
def get_lock_manager() -> KeyedLockManager:
    return KeyedLockManager(default_timeout=settings.UPSERT_LOCK_TIMEOUT_S)


def close_record_store() -> bool:
    """Cierra el cliente si llego a crearse. Retorna True si habia uno abierto."""
    if not get_record_store.cache_info().currsize:
        return False
    store = get_record_store()
    if isinstance(store, AirtableClient):
        store.close()
    get_record_store.cache_clear()
    return True
