"""
Utilidades de seguridad: firma y verificacion de la sesion.

La sesion es un JWT HS256 firmado con SECRET_KEY que viaja en la cookie
HttpOnly (SESSION_COOKIE_NAME) o en el header Authorization: Bearer.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.shared.exceptions.auth import InvalidCredentialsException, TokenExpiredException


# Roles que pueden iniciar sesion
VALID_ROLES = ("physio", "front", "back", "manager")


class SecurityService:
    """Servicio para operaciones de seguridad."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl_hours: int = 12) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._ttl = timedelta(hours=ttl_hours)

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def create_session_token(
        self,
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Crea el token de sesion.

        Args:
            data: Datos a incluir (email, role, name)
            expires_delta: Tiempo de expiracion personalizado

        Returns:
            str: Token JWT codificado
        """
        now = datetime.now(timezone.utc)
        to_encode = data.copy()
        to_encode.update({
            "iat": int(now.timestamp()),
            "exp": int((now + (expires_delta or self._ttl)).timestamp()),
        })
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def decode_session_token(self, token: str) -> Dict[str, Any]:
        """
        Decodifica y valida el token de sesion.

        Raises:
            InvalidCredentialsException: Si el token es invalido
            TokenExpiredException: Si el token ha expirado
        """
        try:
            return jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredException()
        except JWTError:
            raise InvalidCredentialsException()


# Instancia global del servicio de seguridad
security_service = SecurityService(
    secret_key=settings.SECRET_KEY,
    algorithm=settings.ALGORITHM,
    ttl_hours=settings.SESSION_TTL_HOURS,
)
