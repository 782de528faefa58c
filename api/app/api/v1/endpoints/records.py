"""
Endpoints de registros vinculados.
Permiten al frontend resolver nombres a record ids y hacer upsert por campo primario.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.dependencies.auth_deps import get_current_user, require_roles
from app.api.v1.dependencies.use_case_deps import get_record_use_cases
from app.application.dto.auth_dto import SessionUserDTO
from app.application.dto.record_dto import (
    FieldNameRequestDTO,
    FieldNameResponseDTO,
    ResolveRequestDTO,
    ResolveResponseDTO,
    SingleResolveResponseDTO,
    TableSchemaDTO,
    UpsertRequestDTO,
    UpsertResponseDTO,
)
from app.application.use_cases.record_use_cases import RecordUseCases


router = APIRouter(prefix="/records", tags=["Records"])

# Roles con permiso de escritura
WRITER_ROLES = ("front", "back", "manager")


@router.get(
    "/schema",
    response_model=List[TableSchemaDTO],
    summary="Tablas y campos primarios conocidos"
)
def get_schema(
    _: SessionUserDTO = Depends(get_current_user),
    use_cases: RecordUseCases = Depends(get_record_use_cases),
) -> List[TableSchemaDTO]:
    return use_cases.list_schema()


@router.get(
    "/{table}/resolve",
    response_model=SingleResolveResponseDTO,
    summary="Resolver un valor a record id"
)
async def resolve_one(
    table: str,
    value: str = Query(..., min_length=1, description="Record id o valor del campo primario"),
    _: SessionUserDTO = Depends(get_current_user),
    use_cases: RecordUseCases = Depends(get_record_use_cases),
) -> SingleResolveResponseDTO:
    """
    Resuelve un unico valor.

    Returns 404 si el valor no existe en la tabla.
    """
    return await use_cases.resolve_one(table, value)


@router.post(
    "/{table}/resolve",
    response_model=ResolveResponseDTO,
    summary="Resolver una lista de valores a record ids"
)
async def resolve_many(
    table: str,
    dto: ResolveRequestDTO,
    _: SessionUserDTO = Depends(get_current_user),
    use_cases: RecordUseCases = Depends(get_record_use_cases),
) -> ResolveResponseDTO:
    """
    Resuelve valores preservando el orden.

    - allow_missing=True: los inexistentes se omiten
    - allow_missing=False: 400 REFERENCE_NOT_FOUND con la tabla y el valor
    """
    return await use_cases.resolve_many(table, dto)


@router.post(
    "/{table}/upsert",
    response_model=UpsertResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Crear o actualizar por campo primario"
)
async def upsert(
    table: str,
    dto: UpsertRequestDTO,
    _: SessionUserDTO = Depends(require_roles(*WRITER_ROLES)),
    use_cases: RecordUseCases = Depends(get_record_use_cases),
) -> UpsertResponseDTO:
    return await use_cases.upsert(table, dto)


@router.post(
    "/{table}/field-name",
    response_model=FieldNameResponseDTO,
    summary="Elegir el nombre de campo existente entre candidatos"
)
async def resolve_field_name(
    table: str,
    dto: FieldNameRequestDTO,
    _: SessionUserDTO = Depends(get_current_user),
    use_cases: RecordUseCases = Depends(get_record_use_cases),
) -> FieldNameResponseDTO:
    return await use_cases.resolve_field_name(table, dto)
