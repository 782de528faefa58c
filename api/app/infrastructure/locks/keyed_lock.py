"""
Lock por clave para serializar upserts dentro del proceso.

Motivacion:
- El upsert por campo primario es "buscar y luego crear", no atomico.
- Dos requests concurrentes con el mismo valor pueden crear duplicados.
- Serializar por (tabla, campo, valor) elimina la carrera solo dentro del
  mismo proceso; entre instancias sigue siendo posible.

Caracteristicas:
- Lock por clave (threading.Lock), el servicio de upsert es sincrono
- Timeout configurable para evitar deadlocks
- Un lock se elimina cuando no queda nadie usandolo ni esperandolo
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from loguru import logger

from app.shared.exceptions.domain import UpsertLockTimeoutException


# Timeout por defecto para adquirir un lock (en segundos)
DEFAULT_LOCK_TIMEOUT = 30.0


class _KeyedLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLockManager:
    """
    Gestor de locks por clave.

    Cada instancia tiene su propio registro de locks, asi los tests y las
    dependencias no comparten estado.
    """

    def __init__(self, default_timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self._default_timeout = default_timeout
        self._locks: Dict[str, _KeyedLock] = {}
        self._meta_lock = threading.Lock()

    def _checkout(self, key: str) -> _KeyedLock:
        with self._meta_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyedLock()
                self._locks[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _KeyedLock) -> None:
        with self._meta_lock:
            entry.users -= 1
            if entry.users <= 0 and self._locks.get(key) is entry:
                del self._locks[key]

    @contextmanager
    def lock(self, key: str, timeout: float | None = None) -> Iterator[None]:
        """
        Context manager que serializa el bloque por clave.

        Args:
            key: Clave a serializar (por ejemplo "VENDITE:ID Vendita:v-2024-001")
            timeout: Segundos maximos de espera. None usa el default;
                     <= 0 espera indefinidamente.

        Raises:
            UpsertLockTimeoutException: Si no se adquiere el lock dentro del timeout.
        """
        entry = self._checkout(key)
        wait = self._default_timeout if timeout is None else timeout
        try:
            if wait and wait > 0:
                acquired = entry.lock.acquire(timeout=wait)
            else:
                acquired = entry.lock.acquire()
            if not acquired:
                logger.warning(f"Timeout adquiriendo lock de upsert para {key} (timeout: {wait}s)")
                raise UpsertLockTimeoutException(key, wait)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)

    def active_locks_count(self) -> int:
        """Claves con algun usuario activo o en espera (para monitoreo)."""
        with self._meta_lock:
            return len(self._locks)
