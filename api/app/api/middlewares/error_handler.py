"""
Middleware para manejo centralizado de errores.

Cada request recibe un X-Request-ID (el del cliente o uno nuevo) que se
adjunta a los logs via logger.contextualize y se devuelve en la respuesta,
asi un 500 del frontend se puede cruzar con el log del servidor.
"""
import uuid

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from loguru import logger


REQUEST_ID_HEADER = "X-Request-ID"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Ultima red: cualquier excepcion no manejada se responde como 500."""

    async def dispatch(self, request: Request, call_next):
        """
        Procesa la peticion y captura errores.

        Args:
            request: Peticion HTTP
            call_next: Siguiente middleware/handler

        Returns:
            Response: Respuesta HTTP con el header X-Request-ID
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        with logger.contextualize(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                # Escapar llaves para evitar error de formato en loguru
                error_msg = str(exc).replace("{", "{{").replace("}", "}}")
                logger.opt(exception=exc).error(
                    f"Error no manejado en {request.method} {request.url.path}: {error_msg}"
                )
                response = JSONResponse(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    content={
                        "error": "INTERNAL_SERVER_ERROR",
                        "message": "Ha ocurrido un error interno del servidor",
                        "details": {"request_id": request_id}
                    }
                )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
