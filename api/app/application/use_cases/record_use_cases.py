"""
Casos de uso sobre registros del record store.

Los servicios son sincronos (requests); aqui se ejecutan en un thread
separado para no bloquear el event loop.
"""
import asyncio
from typing import Any, Dict, List

from loguru import logger

from app.application.dto.record_dto import (
    FieldNameRequestDTO,
    FieldNameResponseDTO,
    RecordDTO,
    ResolveRequestDTO,
    ResolveResponseDTO,
    SingleResolveResponseDTO,
    TableSchemaDTO,
    UpsertRequestDTO,
    UpsertResponseDTO,
)
from app.application.services.field_name_resolver import FieldNameResolver
from app.application.services.record_resolver import RecordResolver
from app.application.services.record_upsert import RecordUpsertService
from app.domain.entities.table_schema import TableSchemaMap
from app.shared.exceptions.domain import RecordNotFoundException


class RecordUseCases:
    """Orquesta resolucion de vinculos, upsert y nombres de campo para la API."""

    def __init__(
        self,
        resolver: RecordResolver,
        upserter: RecordUpsertService,
        field_names: FieldNameResolver,
        schema: TableSchemaMap,
    ) -> None:
        self._resolver = resolver
        self._upserter = upserter
        self._field_names = field_names
        self._schema = schema

    def list_schema(self) -> List[TableSchemaDTO]:
        return [
            TableSchemaDTO(table=e.table_name, primary_field=e.primary_field)
            for e in self._schema.tables()
        ]

    async def resolve_one(self, table: str, value: str) -> SingleResolveResponseDTO:
        """
        Resuelve un valor; 404 si no existe.

        Raises:
            RecordNotFoundException: Si el valor no existe en la tabla
        """
        result = await asyncio.to_thread(self._resolver.resolve_identifier, table, value)
        if not result.found:
            raise RecordNotFoundException(table, value)
        return SingleResolveResponseDTO(
            table=table,
            value=value.strip(),
            record_id=result.record_id,
            source=result.source.value,
        )

    async def resolve_many(self, table: str, dto: ResolveRequestDTO) -> ResolveResponseDTO:
        ids = await asyncio.to_thread(
            self._resolver.resolve_identifiers, table, dto.values, dto.allow_missing
        )
        return ResolveResponseDTO(table=table, record_ids=ids)

    async def upsert(self, table: str, dto: UpsertRequestDTO) -> UpsertResponseDTO:
        result = await asyncio.to_thread(self._upsert_sync, table, dto)
        return UpsertResponseDTO(action=result.action.value, record=RecordDTO.from_entity(result.record))

    async def resolve_field_name(self, table: str, dto: FieldNameRequestDTO) -> FieldNameResponseDTO:
        field = await asyncio.to_thread(self._field_names.resolve, table, dto.candidates)
        return FieldNameResponseDTO(table=table, field=field or None)

    def _upsert_sync(self, table: str, dto: UpsertRequestDTO):
        primary_field = (dto.primary_field or "").strip() or self._schema.require_primary_field(table)

        fields: Dict[str, Any] = dict(dto.fields)
        # Los vinculos se resuelven antes de escribir: un vinculo obligatorio
        # inexistente aborta el upsert completo.
        for link_field, link in dto.links.items():
            fields[link_field] = self._resolver.to_link_field_value(
                link.values,
                table_name=link.table,
                allow_missing=link.allow_missing,
            )
            logger.debug(f"Upsert {table}: vinculo '{link_field}' -> {fields[link_field]}")

        return self._upserter.upsert_by_primary(table, primary_field, dto.primary_value, fields)
