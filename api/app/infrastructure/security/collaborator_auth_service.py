"""
Autenticacion de colaboradores contra la tabla COLLABORATORI.

El colaborador se busca por email (sin distinguir mayusculas) y el
"Codice accesso" funciona como contrasena (sensible a mayusculas).
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from app.domain.repositories.record_store import IRecordStore
from app.infrastructure.external.airtable.formulas import build_case_insensitive_equals


# Si los campos en Airtable tienen otro nombre, cambiar aqui
COLLABORATOR_FIELDS = {
    "email": "Email",
    "role": "Ruolo",
    "code": "Codice accesso",
    "active": "Attivo",
    "name": "Collaboratore",
}


@dataclass(frozen=True)
class Collaborator:
    id: str
    email: str
    role: str
    code: str
    active: bool
    name: str


class CollaboratorAuthService:
    """
    Verifica email + codice accesso de un colaborador.

    Usa comparacion en tiempo constante (hmac.compare_digest) para reducir leaks
    por timing.
    """

    def __init__(self, store: IRecordStore, table_name: str = "COLLABORATORI") -> None:
        self._store = store
        self._table_name = table_name

    def find_by_email(self, email: str) -> Optional[Collaborator]:
        value = str(email or "").strip()
        if not value:
            return None
        page = self._store.list_records(
            self._table_name,
            filter_formula=build_case_insensitive_equals(COLLABORATOR_FIELDS["email"], value),
            max_records=1,
            page_size=1,
        )
        rec = page.first
        if rec is None:
            return None
        f = rec.fields
        return Collaborator(
            id=rec.id,
            email=str(f.get(COLLABORATOR_FIELDS["email"]) or ""),
            role=str(f.get(COLLABORATOR_FIELDS["role"]) or "").strip(),
            code=str(f.get(COLLABORATOR_FIELDS["code"]) or ""),
            active=bool(f.get(COLLABORATOR_FIELDS["active"])),
            name=str(f.get(COLLABORATOR_FIELDS["name"]) or ""),
        )

    def verify(self, email: str, code: str) -> Optional[Collaborator]:
        """Retorna el colaborador si las credenciales son validas y esta activo."""
        collaborator = self.find_by_email(email)
        if collaborator is None or not collaborator.active:
            logger.info(f"Login rechazado para {email}: inexistente o inactivo")
            return None
        expected = collaborator.code.strip()
        given = str(code or "").strip()
        # compare_digest con str solo acepta ASCII; se comparan bytes
        if not expected or not hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8")):
            logger.info(f"Login rechazado para {email}: codigo incorrecto")
            return None
        return collaborator
