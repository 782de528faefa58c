"""
Entidades del record store: registros, paginas y resultados de resolucion/upsert.

Son valores inmutables sin I/O; el record store (Airtable) los produce y
los servicios de aplicacion los consumen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class StoreRecord:
    """Registro tal como lo devuelve el record store: id opaco + fields."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    created_time: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "StoreRecord":
        return cls(
            id=str(payload.get("id") or ""),
            fields=dict(payload.get("fields") or {}),
            created_time=str(payload.get("createdTime") or ""),
        )


@dataclass(frozen=True)
class RecordPage:
    """Resultado de un list: registros + token de la pagina siguiente (si quedo corte)."""

    records: list[StoreRecord]
    next_page_token: Optional[str] = None

    @property
    def first(self) -> Optional[StoreRecord]:
        return self.records[0] if self.records else None


class ResolutionSource(str, Enum):
    """De donde salio el record id resuelto."""

    RECORD_ID = "id"
    CACHE = "cache"
    STORE = "store"


@dataclass(frozen=True)
class ResolutionResult:
    """
    Resultado de resolver un valor humano a record id.

    NotFound es un resultado normal (record_id=None), no una excepcion.
    """

    record_id: Optional[str]
    source: Optional[ResolutionSource] = None

    @property
    def found(self) -> bool:
        return bool(self.record_id)

    @classmethod
    def not_found(cls) -> "ResolutionResult":
        return cls(record_id=None, source=None)


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class UpsertResult:
    action: UpsertAction
    record: StoreRecord
