"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .record_dto import (
    RecordDTO,
    LinkFieldDTO,
    ResolveRequestDTO,
    ResolveResponseDTO,
    SingleResolveResponseDTO,
    UpsertRequestDTO,
    UpsertResponseDTO,
    FieldNameRequestDTO,
    FieldNameResponseDTO,
    TableSchemaDTO,
)
from .auth_dto import LoginRequestDTO, LoginResponseDTO, SessionUserDTO

__all__ = [
    "RecordDTO",
    "LinkFieldDTO",
    "ResolveRequestDTO",
    "ResolveResponseDTO",
    "SingleResolveResponseDTO",
    "UpsertRequestDTO",
    "UpsertResponseDTO",
    "FieldNameRequestDTO",
    "FieldNameResponseDTO",
    "TableSchemaDTO",
    "LoginRequestDTO",
    "LoginResponseDTO",
    "SessionUserDTO",
]
