"""
Construccion de formulas Airtable (filterByFormula).

Funciones puras, sin I/O. Todo valor de usuario pasa por
escape_formula_string antes de entrar en una formula.
"""

from __future__ import annotations

from typing import Any


def escape_formula_string(value: Any) -> str:
    """
    Escapa un valor para usarlo dentro de comillas dobles en una formula.

    - backslash y comillas dobles se escapan
    - CR/LF se reemplazan por espacio (Airtable no acepta saltos en literales)
    """
    s = "" if value is None else str(value)
    return (
        s.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", " ")
        .replace("\n", " ")
        .strip()
    )


def field_ref(field_name: str) -> str:
    return "{" + str(field_name).strip() + "}"


def build_case_insensitive_equals(field_name: str, value: Any) -> str:
    """LOWER({campo}) = LOWER("valor")"""
    return f'LOWER({field_ref(field_name)}) = LOWER("{escape_formula_string(value)}")'

