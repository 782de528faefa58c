"""
Interfaz del record store.
Define el contrato que debe cumplir cualquier backend de registros (Airtable).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from app.domain.entities.record import RecordPage, StoreRecord


class IRecordStore(ABC):
    """
    Contrato minimo del record store consumido por el resolver y el upsert.

    Los errores de red/autenticacion/rate limit se propagan tal cual al caller.
    """

    @abstractmethod
    def list_records(
        self,
        table_name: str,
        *,
        filter_formula: Optional[str] = None,
        max_records: Optional[int] = None,
        page_size: int = 100,
        fields: Optional[Sequence[str]] = None,
        sort: Optional[List[Dict[str, str]]] = None,
        view: Optional[str] = None,
    ) -> RecordPage:
        """
        Lista registros filtrados por formula, recorriendo la paginacion.

        Args:
            table_name: Nombre de la tabla
            filter_formula: Formula de filtro (debe soportar LOWER({campo}) = LOWER("v"))
            max_records: Limite total de registros (None = todos)
            page_size: Tamano de pagina (1..100)
            fields: Restringe los fields devueltos
            sort: Lista de {"field", "direction"}
            view: Vista de la tabla

        Returns:
            RecordPage: Registros y token de pagina siguiente si se corto por max_records
        """

    @abstractmethod
    def get_record(self, table_name: str, record_id: str) -> StoreRecord:
        """Obtiene un registro por su record id."""

    @abstractmethod
    def create_record(self, table_name: str, fields: Dict[str, Any]) -> StoreRecord:
        """Crea un registro con los fields indicados."""

    @abstractmethod
    def update_record(self, table_name: str, record_id: str, fields: Dict[str, Any]) -> StoreRecord:
        """Actualizacion parcial: solo se escriben los fields indicados."""

    @abstractmethod
    def is_record_id(self, value: Any) -> bool:
        """
        Indica si el valor ya es un identificador resuelto del store.

        Es una capacidad del store (formato de sus ids), no del resolver.
        """

    @abstractmethod
    def field_exists(self, table_name: str, field_name: str) -> bool:
        """
        Comprueba si la tabla tiene un field con ese nombre exacto.

        Un nombre desconocido retorna False; otros errores del store se propagan.
        """
