"""
Excepciones relacionadas con autenticacion y autorizacion.
"""
from app.shared.exceptions.base import AppException


class AuthException(AppException):
    """Excepcion base para errores de autenticacion."""

    def __init__(self, message: str, error_code: str = "AUTH_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details
        )


class InvalidCredentialsException(AuthException):
    """Email/codigo de acceso incorrectos o colaborador inactivo."""

    def __init__(self):
        super().__init__(
            message="Credenciales invalidas",
            error_code="INVALID_CREDENTIALS"
        )


class TokenExpiredException(AuthException):
    """La sesion firmada ha expirado."""

    def __init__(self):
        super().__init__(
            message="La sesion ha expirado",
            error_code="TOKEN_EXPIRED"
        )


class UnauthorizedException(AuthException):
    """Peticion sin sesion valida."""

    def __init__(self, message: str = "No autorizado"):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED"
        )


class ForbiddenException(AppException):
    """El rol de la sesion no puede usar el endpoint."""

    def __init__(self, role: str = ""):
        super().__init__(
            message="Acceso prohibido",
            status_code=403,
            error_code="FORBIDDEN",
            details={"role": role} if role else None
        )
