"""
Casos de uso para autenticacion de colaboradores.
"""

from __future__ import annotations

import asyncio

from app.application.dto.auth_dto import LoginResponseDTO, SessionUserDTO
from app.core.security import VALID_ROLES, SecurityService
from app.infrastructure.security.collaborator_auth_service import CollaboratorAuthService
from app.shared.exceptions.auth import ForbiddenException, InvalidCredentialsException


class AuthUseCases:
    def __init__(self, auth_service: CollaboratorAuthService, security: SecurityService) -> None:
        self._auth_service = auth_service
        self._security = security

    @property
    def session_ttl_seconds(self) -> int:
        return self._security.ttl_seconds

    async def login(self, email: str, code: str) -> LoginResponseDTO:
        """
        Valida credenciales y emite el token de sesion.

        Raises:
            InvalidCredentialsException: Credenciales invalidas o colaborador inactivo
            ForbiddenException: El rol en Airtable no es uno de los admitidos
        """
        collaborator = await asyncio.to_thread(self._auth_service.verify, email, code)
        if collaborator is None:
            raise InvalidCredentialsException()
        if collaborator.role not in VALID_ROLES:
            raise ForbiddenException(collaborator.role)

        user = SessionUserDTO(
            email=collaborator.email,
            role=collaborator.role,
            name=collaborator.name or collaborator.email,
        )
        token = self._security.create_session_token(user.model_dump())
        return LoginResponseDTO(token=token, user=user)

    def current_user(self, token: str) -> SessionUserDTO:
        payload = self._security.decode_session_token(token)
        return SessionUserDTO(
            email=str(payload.get("email") or ""),
            role=str(payload.get("role") or ""),
            name=str(payload.get("name") or ""),
        )
