"""
DTOs de autenticacion.
"""
from pydantic import BaseModel, Field


class LoginRequestDTO(BaseModel):
    email: str = Field(..., min_length=3)
    code: str = Field(..., min_length=1, description="Codice accesso del colaborador")


class SessionUserDTO(BaseModel):
    email: str
    role: str
    name: str = ""


class LoginResponseDTO(BaseModel):
    token: str
    user: SessionUserDTO
