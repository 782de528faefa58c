"""
Configuracion de fixtures para pytest.

FakeRecordStore es un record store en memoria que entiende las formulas que
generan el resolver y el upsert (LOWER({campo}) = LOWER("v")).
"""
from __future__ import annotations

import itertools
import re
from typing import Any, Dict, List, Optional, Sequence

import pytest

from app.domain.entities.record import RecordPage, StoreRecord
from app.domain.entities.table_schema import TableSchemaMap
from app.domain.repositories.record_store import IRecordStore
from app.infrastructure.cache.ttl_cache import InMemoryTTLCache


_EQUALS_RE = re.compile(r'^LOWER\(\{(?P<field>.+?)\}\) = LOWER\("(?P<value>.*)"\)$')


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


class FakeRecordStore(IRecordStore):
    """Record store en memoria que cuenta las llamadas recibidas."""

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.extra_fields: Dict[str, set] = {}
        self.list_calls: List[Dict[str, Any]] = []
        self.create_calls: List[Dict[str, Any]] = []
        self.update_calls: List[Dict[str, Any]] = []
        self.field_checks: List[tuple] = []
        self._ids = itertools.count(1)

    # Helpers de test --------------------------------------------------

    def seed(self, table: str, fields: Dict[str, Any], record_id: Optional[str] = None) -> str:
        rid = record_id or self._next_id()
        self.tables.setdefault(table, {})[rid] = dict(fields)
        return rid

    def records_of(self, table: str) -> List[StoreRecord]:
        return [StoreRecord(id=rid, fields=dict(f)) for rid, f in self.tables.get(table, {}).items()]

    @property
    def total_calls(self) -> int:
        return len(self.list_calls) + len(self.create_calls) + len(self.update_calls)

    def _next_id(self) -> str:
        return f"recFAKE{next(self._ids):010d}"

    def _matches(self, fields: Dict[str, Any], formula: Optional[str]) -> bool:
        if not formula:
            return True
        m = _EQUALS_RE.match(formula)
        if m:
            current = fields.get(m.group("field"))
            return str(current or "").lower() == _unescape(m.group("value")).lower()
        raise AssertionError(f"Formula no soportada por el fake: {formula}")

    # IRecordStore -----------------------------------------------------

    def list_records(
        self,
        table_name: str,
        *,
        filter_formula: Optional[str] = None,
        max_records: Optional[int] = None,
        page_size: int = 100,
        fields: Optional[Sequence[str]] = None,
        sort=None,
        view=None,
    ) -> RecordPage:
        self.list_calls.append({
            "table": table_name,
            "filter_formula": filter_formula,
            "max_records": max_records,
            "page_size": page_size,
        })
        out = [
            StoreRecord(id=rid, fields=dict(f))
            for rid, f in self.tables.get(table_name, {}).items()
            if self._matches(f, filter_formula)
        ]
        if max_records:
            out = out[:max_records]
        return RecordPage(records=out)

    def get_record(self, table_name: str, record_id: str) -> StoreRecord:
        return StoreRecord(id=record_id, fields=dict(self.tables[table_name][record_id]))

    def create_record(self, table_name: str, fields: Dict[str, Any]) -> StoreRecord:
        self.create_calls.append({"table": table_name, "fields": dict(fields)})
        rid = self.seed(table_name, fields)
        return self.get_record(table_name, rid)

    def update_record(self, table_name: str, record_id: str, fields: Dict[str, Any]) -> StoreRecord:
        self.update_calls.append({"table": table_name, "id": record_id, "fields": dict(fields)})
        self.tables[table_name][record_id].update(fields)
        return self.get_record(table_name, record_id)

    def is_record_id(self, value: Any) -> bool:
        return isinstance(value, str) and value.startswith("rec")

    def field_exists(self, table_name: str, field_name: str) -> bool:
        self.field_checks.append((table_name, field_name))
        known = set(self.extra_fields.get(table_name, set()))
        for f in self.tables.get(table_name, {}).values():
            known.update(f.keys())
        return field_name in known


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def schema() -> TableSchemaMap:
    return TableSchemaMap.from_mapping({
        "PRESTAZIONI": {"primary": "Servizio", "all_fields": ["Servizio", "Prezzo", "Durata (min)"]},
        "ANAGRAFICA": "Cognome e Nome",
        "COLLABORATORI": "Collaboratore",
        "FATTURE FIC": "ID Fattura",
    })


@pytest.fixture
def cache() -> InMemoryTTLCache:
    return InMemoryTTLCache(max_entries=500)
