"""
Cache clave/valor en memoria con TTL por entrada.

Caracteristicas:
- Expiracion perezosa: una entrada vencida se elimina al leerla
- Tope blando de entradas: al superarlo se desaloja la fraccion de
  entradas que vencen antes (por defecto ~15%)
- Segura entre threads (los endpoints corren el resolver con asyncio.to_thread)

Dos requests que fallan la cache a la vez pueden escribir la misma clave;
es una carrera benigna (una busqueda redundante, nunca un valor incorrecto).
"""

from __future__ import annotations

import math
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger

from app.domain.repositories.resolution_cache import IResolutionCache


# TTL minimo aceptado (segundos)
MIN_TTL_S = 1.0


class InMemoryTTLCache(IResolutionCache):
    """Implementacion por defecto de IResolutionCache."""

    def __init__(
        self,
        *,
        max_entries: int = 500,
        evict_ratio: float = 0.15,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_entries = max(1, int(max_entries))
        self._evict_ratio = min(1.0, max(0.0, float(evict_ratio)))
        self._clock = clock
        # key -> (expires_at, value)
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        k = str(key or "")
        if not k:
            return None
        with self._lock:
            hit = self._entries.get(k)
            if hit is None:
                return None
            expires_at, value = hit
            if self._clock() > expires_at:
                del self._entries[k]
                return None
            return value

    def set(self, key: str, value: Any, ttl_s: float) -> None:
        k = str(key or "")
        if not k:
            return
        ttl = max(MIN_TTL_S, float(ttl_s or 0))
        with self._lock:
            self._entries[k] = (self._clock() + ttl, value)
            if len(self._entries) > self._max_entries:
                self._evict_locked()

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(str(key or ""), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_locked(self) -> None:
        """Desaloja las entradas con vencimiento mas proximo. Requiere self._lock."""
        n = math.ceil(self._max_entries * self._evict_ratio)
        if n <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda kv: kv[1][0])[:n]
        for k, _ in oldest:
            del self._entries[k]
        logger.debug(f"Cache: desalojadas {len(oldest)} entradas (tope {self._max_entries})")
