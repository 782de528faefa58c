"""
Endpoints de autenticacion.

Login de colaboradores (email + codice accesso contra COLLABORATORI).
La sesion firmada se devuelve en el body y en una cookie HttpOnly.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from app.api.v1.dependencies.auth_deps import get_current_user
from app.api.v1.dependencies.use_case_deps import get_auth_use_cases
from app.application.dto.auth_dto import LoginRequestDTO, LoginResponseDTO, SessionUserDTO
from app.application.use_cases.auth_use_cases import AuthUseCases
from app.core.config import settings


class LogoutResponseDTO(BaseModel):
    ok: bool


class MeResponseDTO(BaseModel):
    user: SessionUserDTO


router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=LoginResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Login de colaborador",
)
async def login(
    dto: LoginRequestDTO,
    response: Response,
    use_cases: AuthUseCases = Depends(get_auth_use_cases),
) -> LoginResponseDTO:
    result = await use_cases.login(dto.email, dto.code)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=result.token,
        max_age=use_cases.session_ttl_seconds,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    return result


@router.post(
    "/logout",
    response_model=LogoutResponseDTO,
    summary="Cerrar sesion (expira la cookie)",
)
def logout(response: Response) -> LogoutResponseDTO:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return LogoutResponseDTO(ok=True)


@router.get(
    "/me",
    response_model=MeResponseDTO,
    summary="Usuario de la sesion actual",
)
def me(user: SessionUserDTO = Depends(get_current_user)) -> MeResponseDTO:
    return MeResponseDTO(user=user)
