"""
Mapa estatico tabla -> campo primario de la base Airtable de la clinica.

Se carga una vez al arrancar el proceso y no se muta despues. El campo
primario es la clave unica "humana" de la tabla (nombre del servicio,
numero de factura, ...), distinta del record id opaco.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from loguru import logger

from app.shared.exceptions.base import ConfigurationException


# Snapshot de la base. Se puede sobreescribir con AIRTABLE_SCHEMA_FILE.
DEFAULT_PRIMARY_FIELDS: dict[str, str] = {
    "ANAGRAFICA": "Cognome e Nome",
    "COLLABORATORI": "Collaboratore",
    "PRESTAZIONI": "Servizio",
    "CASI CLINICI": "ID caso clinico",
    "VALUTAZIONI": "ID Valutazione",
    "TEST CLINICI": "Nome test",
    "PATOLOGIE": "Nome Patologia",
    "VENDITE": "ID Vendita",
    "FATTURE FIC": "ID Fattura",
    "PAGAMENTI FIC": "ID Pagamento",
    "MOVIMENTI CONTO": "ID Movimento",
    "CATEGORIE CONTABILI": "Nome Categoria",
    "REGOLE MATCHING": "Nome Regola",
    "PREVENTIVO E REGOLAMENTO": "ANAGRAFICA | DATA",
}


@dataclass(frozen=True)
class TableSchemaEntry:
    """Entrada del mapa: tabla, campo primario y (opcional) todos sus fields."""

    table_name: str
    primary_field: str
    fields: tuple[str, ...] = ()


class TableSchemaMap:
    """
    Mapa inmutable tabla -> TableSchemaEntry.

    Las busquedas por nombre de tabla ignoran espacios al inicio/fin, pero
    distinguen mayusculas (los nombres de tabla de Airtable son exactos).
    """

    def __init__(self, entries: Iterable[TableSchemaEntry]) -> None:
        self._entries: Mapping[str, TableSchemaEntry] = MappingProxyType(
            {e.table_name: e for e in entries if e.table_name and e.primary_field}
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "TableSchemaMap":
        """
        Construye el mapa desde un dict.

        Acepta dos formas por tabla:
        - "TABLA": "Campo primario"
        - "TABLA": {"primary": "Campo primario", "all_fields": [...]}
        """
        entries: list[TableSchemaEntry] = []
        for table, raw_entry in raw.items():
            name = str(table or "").strip()
            if isinstance(raw_entry, Mapping):
                primary = str(raw_entry.get("primary") or "").strip()
                all_fields = raw_entry.get("all_fields") or raw_entry.get("key_fields") or []
                fields = tuple(str(f) for f in all_fields if str(f or "").strip())
            else:
                primary = str(raw_entry or "").strip()
                fields = ()
            if not name or not primary:
                logger.warning(f"Schema: tabla '{table}' sin campo primario, se ignora")
                continue
            entries.append(TableSchemaEntry(table_name=name, primary_field=primary, fields=fields))
        return cls(entries)

    @classmethod
    def load(cls, schema_file: str = "") -> "TableSchemaMap":
        """Snapshot por defecto, sobreescrito tabla a tabla por el JSON si se indica."""
        raw: dict[str, Any] = dict(DEFAULT_PRIMARY_FIELDS)
        if schema_file:
            path = Path(schema_file)
            if not path.is_file():
                raise ConfigurationException(
                    f"AIRTABLE_SCHEMA_FILE no existe: {schema_file}",
                    details={"schema_file": schema_file},
                )
            try:
                override = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ConfigurationException(
                    f"AIRTABLE_SCHEMA_FILE no es JSON valido: {e}",
                    details={"schema_file": schema_file},
                ) from e
            if not isinstance(override, dict):
                raise ConfigurationException(
                    "AIRTABLE_SCHEMA_FILE debe contener un objeto tabla -> schema",
                    details={"schema_file": schema_file},
                )
            raw.update(override)
        schema = cls.from_mapping(raw)
        logger.info(f"Schema Airtable cargado: {len(schema)} tablas")
        return schema

    def primary_field_of(self, table_name: str) -> Optional[str]:
        entry = self._entries.get(str(table_name or "").strip())
        return entry.primary_field if entry else None

    def require_primary_field(self, table_name: str) -> str:
        """Como primary_field_of, pero una tabla sin primario es un error de configuracion."""
        primary = self.primary_field_of(table_name)
        if not primary:
            raise ConfigurationException(
                f"Falta el campo primario para la tabla {table_name}",
                details={"table": table_name},
            )
        return primary

    def fields_of(self, table_name: str) -> tuple[str, ...]:
        entry = self._entries.get(str(table_name or "").strip())
        return entry.fields if entry else ()

    def tables(self) -> list[TableSchemaEntry]:
        return sorted(self._entries.values(), key=lambda e: e.table_name)

    def __contains__(self, table_name: object) -> bool:
        return isinstance(table_name, str) and table_name.strip() in self._entries

    def __len__(self) -> int:
        return len(self._entries)
