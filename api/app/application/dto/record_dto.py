"""
DTOs de registros del record store.
Definen la estructura de resolucion de vinculos y upsert que consume el frontend.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from app.domain.entities.record import StoreRecord


# Un campo vinculado acepta un escalar o una lista (ids y/o nombres mezclados)
LinkValues = Union[None, str, int, float, List[Optional[Union[str, int, float]]]]


class RecordDTO(BaseModel):
    """Registro devuelto por el store."""
    id: str = Field(..., description="Record id opaco del store")
    fields: Dict[str, Any] = Field(default_factory=dict)
    created_time: str = ""

    @classmethod
    def from_entity(cls, record: StoreRecord) -> "RecordDTO":
        return cls(id=record.id, fields=dict(record.fields), created_time=record.created_time)


class ResolveRequestDTO(BaseModel):
    values: LinkValues = Field(None, description="Ids ya resueltos o valores del campo primario")
    allow_missing: bool = Field(False, description="Si True, los valores inexistentes se omiten")


class ResolveResponseDTO(BaseModel):
    table: str
    record_ids: List[str]


class SingleResolveResponseDTO(BaseModel):
    table: str
    value: str
    record_id: str
    source: str = Field(..., description="id | cache | store")


class LinkFieldDTO(BaseModel):
    """Valor de un campo vinculado a resolver antes de escribir."""
    table: str = Field(..., min_length=1, description="Tabla a la que apunta el vinculo")
    values: LinkValues = None
    allow_missing: bool = False


class UpsertRequestDTO(BaseModel):
    primary_field: Optional[str] = Field(
        None, description="Campo clave del upsert; por defecto el primario del schema"
    )
    primary_value: str = Field(..., min_length=1)
    fields: Dict[str, Any] = Field(default_factory=dict)
    links: Dict[str, LinkFieldDTO] = Field(
        default_factory=dict, description="Campo vinculado -> valores a resolver"
    )


class UpsertResponseDTO(BaseModel):
    action: str = Field(..., description="created | updated")
    record: RecordDTO


class FieldNameRequestDTO(BaseModel):
    candidates: List[str] = Field(..., min_length=1)


class FieldNameResponseDTO(BaseModel):
    table: str
    field: Optional[str] = None


class TableSchemaDTO(BaseModel):
    table: str
    primary_field: str
