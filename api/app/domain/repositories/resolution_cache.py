"""
Interfaz de la cache clave/valor con TTL usada por el resolver.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class IResolutionCache(ABC):
    """
    Cache en proceso (o compartida) con expiracion por entrada.

    Una entrada expirada se comporta como ausente.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Valor vigente o None si no existe o expiro."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_s: float) -> None:
        """Guarda el valor durante ttl_s segundos."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Elimina la entrada si existe."""

    @abstractmethod
    def clear(self) -> None:
        """Vacia la cache."""
