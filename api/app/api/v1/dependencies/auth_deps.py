"""
Dependencias de autenticacion: sesion actual y control de roles.
"""
from typing import Callable, Optional

from fastapi import Depends, Request

from app.application.dto.auth_dto import SessionUserDTO
from app.core.config import settings
from app.core.security import security_service
from app.shared.exceptions.auth import ForbiddenException, UnauthorizedException


def _extract_token(request: Request) -> Optional[str]:
    """Cookie de sesion primero; si no, Authorization: Bearer."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    auth = request.headers.get("authorization") or ""
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def get_current_user(request: Request) -> SessionUserDTO:
    """
    Usuario de la sesion firmada.

    Raises:
        UnauthorizedException: Sin token
        InvalidCredentialsException / TokenExpiredException: Token invalido o vencido
    """
    token = _extract_token(request)
    if not token:
        raise UnauthorizedException()
    payload = security_service.decode_session_token(token)
    return SessionUserDTO(
        email=str(payload.get("email") or ""),
        role=str(payload.get("role") or ""),
        name=str(payload.get("name") or ""),
    )


def require_roles(*roles: str) -> Callable[..., SessionUserDTO]:
    """Dependencia que exige uno de los roles indicados."""

    def _checker(user: SessionUserDTO = Depends(get_current_user)) -> SessionUserDTO:
        if user.role not in roles:
            raise ForbiddenException(user.role)
        return user

    return _checker
