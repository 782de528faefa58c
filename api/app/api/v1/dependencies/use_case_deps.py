"""
Dependencias para inyeccion de servicios y casos de uso.
"""
from fastapi import Depends

from app.api.v1.dependencies.repository_deps import (
    get_lock_manager,
    get_record_store,
    get_resolution_cache,
    get_table_schema,
)
from app.application.services.field_name_resolver import FieldNameResolver
from app.application.services.record_resolver import RecordResolver
from app.application.services.record_upsert import RecordUpsertService
from app.application.use_cases.auth_use_cases import AuthUseCases
from app.application.use_cases.record_use_cases import RecordUseCases
from app.core.config import settings
from app.core.security import security_service
from app.domain.entities.table_schema import TableSchemaMap
from app.domain.repositories.record_store import IRecordStore
from app.domain.repositories.resolution_cache import IResolutionCache
from app.infrastructure.locks.keyed_lock import KeyedLockManager
from app.infrastructure.security.collaborator_auth_service import CollaboratorAuthService


def get_record_resolver(
    store: IRecordStore = Depends(get_record_store),
    schema: TableSchemaMap = Depends(get_table_schema),
    cache: IResolutionCache = Depends(get_resolution_cache),
) -> RecordResolver:
    return RecordResolver(store, schema, cache, ttl_s=settings.RESOLVER_CACHE_TTL_S)


def get_record_upsert_service(
    store: IRecordStore = Depends(get_record_store),
    schema: TableSchemaMap = Depends(get_table_schema),
    cache: IResolutionCache = Depends(get_resolution_cache),
    locks: KeyedLockManager = Depends(get_lock_manager),
) -> RecordUpsertService:
    return RecordUpsertService(
        store,
        schema,
        cache,
        lock_manager=locks if settings.UPSERT_SERIALIZE else None,
        cache_ttl_s=settings.RESOLVER_CACHE_TTL_S,
    )


def get_field_name_resolver(
    store: IRecordStore = Depends(get_record_store),
    schema: TableSchemaMap = Depends(get_table_schema),
    cache: IResolutionCache = Depends(get_resolution_cache),
) -> FieldNameResolver:
    return FieldNameResolver(store, schema, cache, ttl_s=settings.FIELD_NAME_CACHE_TTL_S)


def get_record_use_cases(
    resolver: RecordResolver = Depends(get_record_resolver),
    upserter: RecordUpsertService = Depends(get_record_upsert_service),
    field_names: FieldNameResolver = Depends(get_field_name_resolver),
    schema: TableSchemaMap = Depends(get_table_schema),
) -> RecordUseCases:
    """
    Dependencia para obtener los casos de uso de registros.

    Returns:
        RecordUseCases: Instancia de casos de uso de registros
    """
    return RecordUseCases(resolver, upserter, field_names, schema)


def get_auth_use_cases(
    store: IRecordStore = Depends(get_record_store),
) -> AuthUseCases:
    auth_service = CollaboratorAuthService(store, table_name=settings.COLLABORATORS_TABLE)
    return AuthUseCases(auth_service, security_service)
