"""
Cliente de la REST API de Airtable (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginacion por offset con tope maxRecords
- rate-limit/backoff (429, 5xx)
- timeout por request con un unico reintento opcional
- reintento sin fields[] cuando Airtable no reconoce un nombre de campo
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests
from loguru import logger

from app.domain.entities.record import RecordPage, StoreRecord
from app.domain.repositories.record_store import IRecordStore


# Airtable limita a 100 registros por pagina
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class AirtableCredentials:
    token: str
    base_id: str


class AirtableApiError(RuntimeError):
    """Error de integracion con Airtable."""

    def __init__(self, message: str, *, status_code: int = 502, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def is_unknown_field_error(self) -> bool:
        """Airtable responde 422 UNKNOWN_FIELD_NAME si un fields[] no existe en la tabla."""
        error = self.payload.get("error") if isinstance(self.payload, dict) else None
        if isinstance(error, dict) and str(error.get("type") or "").upper() == "UNKNOWN_FIELD_NAME":
            return True
        msg = str(self).lower()
        return "unknown field name" in msg or "unknown field names" in msg


class AirtableTimeoutError(AirtableApiError):
    """La request no respondio dentro del timeout configurado."""

    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"timeout_after_{timeout_s}s", status_code=504)
        self.timeout_s = timeout_s


def _error_message(resp: requests.Response, payload: Any) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if error:
            return str(error)
    return resp.text or f"HTTP_{resp.status_code}"


class AirtableClient(IRecordStore):
    """
    Cliente HTTP de Airtable que implementa IRecordStore.

    Importante:
    - No hace cast de tipos de campos: devuelve los fields tal cual.
    - No cachea nada: la cache vive en el resolver.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.airtable.com/v0",
        timeout_s: float = 20.0,
        retry_on_timeout: bool = True,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        record_id_prefix: str = "rec",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._creds = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout_s = max(1.0, float(timeout_s))
        self._retry_on_timeout = retry_on_timeout
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._record_id_prefix = record_id_prefix
        self._sleep = sleep
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # IRecordStore
    # ------------------------------------------------------------------

    def is_record_id(self, value: Any) -> bool:
        return isinstance(value, str) and value.startswith(self._record_id_prefix)

    def list_records(
        self,
        table_name: str,
        *,
        filter_formula: Optional[str] = None,
        max_records: Optional[int] = None,
        page_size: int = MAX_PAGE_SIZE,
        fields: Optional[Sequence[str]] = None,
        sort: Optional[List[Dict[str, str]]] = None,
        view: Optional[str] = None,
    ) -> RecordPage:
        """
        Lista registros recorriendo la paginacion por 'offset'.

        Si se piden fields[] y Airtable no reconoce alguno, se reintenta una
        sola vez sin restringir fields (los snapshots de schema pueden quedar
        desactualizados respecto a la base real).
        """
        kwargs = dict(
            filter_formula=filter_formula,
            max_records=max_records,
            page_size=page_size,
            sort=sort,
            view=view,
        )
        wanted = [f for f in (fields or []) if str(f or "").strip()]
        try:
            return self._list_pages(table_name, fields=wanted, **kwargs)
        except AirtableApiError as e:
            if not wanted or not e.is_unknown_field_error:
                raise
            logger.warning(
                f"Airtable '{table_name}': campo desconocido en fields[] ({e}). "
                f"Reintentando sin restringir fields."
            )
            return self._list_pages(table_name, fields=[], **kwargs)

    def get_record(self, table_name: str, record_id: str) -> StoreRecord:
        url = self._record_url(table_name, record_id)
        return self._to_record(self._request_json("GET", url))

    def create_record(self, table_name: str, fields: Dict[str, Any]) -> StoreRecord:
        url = self._table_url(table_name)
        payload = self._request_json("POST", url, body={"fields": dict(fields or {})})
        return self._to_record(payload)

    def update_record(self, table_name: str, record_id: str, fields: Dict[str, Any]) -> StoreRecord:
        url = self._record_url(table_name, record_id)
        payload = self._request_json("PATCH", url, body={"fields": dict(fields or {})})
        return self._to_record(payload)

    def field_exists(self, table_name: str, field_name: str) -> bool:
        name = str(field_name or "").strip()
        if not name:
            return False
        try:
            self._fetch_page(
                table_name,
                filter_formula=None,
                max_records=1,
                page_size=1,
                fields=[name],
                sort=None,
                view=None,
                offset=None,
            )
            return True
        except AirtableApiError as e:
            if e.is_unknown_field_error:
                return False
            raise

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _list_pages(
        self,
        table_name: str,
        *,
        filter_formula: Optional[str],
        max_records: Optional[int],
        page_size: int,
        fields: List[str],
        sort: Optional[List[Dict[str, str]]],
        view: Optional[str],
    ) -> RecordPage:
        limit = int(max_records or 0)
        records: List[StoreRecord] = []
        offset: Optional[str] = None

        while True:
            payload = self._fetch_page(
                table_name,
                filter_formula=filter_formula,
                max_records=limit or None,
                page_size=page_size,
                fields=fields,
                sort=sort,
                view=view,
                offset=offset,
            )
            records.extend(self._to_record(rec) for rec in payload.get("records") or [])
            offset = payload.get("offset")

            if not offset:
                break
            if limit and len(records) >= limit:
                break

        if limit:
            records = records[:limit]
        return RecordPage(records=records, next_page_token=offset)

    def _fetch_page(
        self,
        table_name: str,
        *,
        filter_formula: Optional[str],
        max_records: Optional[int],
        page_size: int,
        fields: List[str],
        sort: Optional[List[Dict[str, str]]],
        view: Optional[str],
        offset: Optional[str],
    ) -> Dict[str, Any]:
        size = min(MAX_PAGE_SIZE, max(1, int(page_size or MAX_PAGE_SIZE)))
        query: List[tuple[str, Any]] = [("pageSize", size)]
        if filter_formula:
            query.append(("filterByFormula", filter_formula))
        if max_records:
            query.append(("maxRecords", int(max_records)))
        if view:
            query.append(("view", view))
        if offset:
            query.append(("offset", offset))

        # Serializacion manual de sort para evitar "sort=field&sort=direction"
        for i, s in enumerate(sort or []):
            if not s.get("field"):
                continue
            query.append((f"sort[{i}][field]", s["field"]))
            if s.get("direction"):
                query.append((f"sort[{i}][direction]", s["direction"]))

        # Airtable permite repetir "fields[]" en querystring.
        for f in fields:
            query.append(("fields[]", f))

        return self._request_json("GET", self._table_url(table_name), query=query)

    def _table_url(self, table_name: str) -> str:
        table = str(table_name or "").strip()
        if not table:
            raise ValueError("Airtable: falta el nombre de tabla")
        return f"{self._base_url}/{self._creds.base_id}/{quote(table, safe='')}"

    def _record_url(self, table_name: str, record_id: str) -> str:
        rid = str(record_id or "").strip()
        if not rid:
            raise ValueError("Airtable: falta el record id")
        return f"{self._table_url(table_name)}/{quote(rid, safe='')}"

    @staticmethod
    def _to_record(payload: Dict[str, Any]) -> StoreRecord:
        if not payload.get("id"):
            # Caso raro; preferimos fallar temprano y visible.
            raise AirtableApiError("Airtable devolvio un record sin 'id'", payload=payload)
        return StoreRecord.from_api(payload)

    def _send(self, method: str, url: str, *, query, body) -> requests.Response:
        """Un envio con timeout; reintenta una vez si expira y esta habilitado."""
        attempts = 2 if self._retry_on_timeout else 1
        for attempt in range(attempts):
            try:
                return self._session.request(
                    method=method,
                    url=url,
                    params=query,
                    json=body,
                    headers={
                        "Authorization": f"Bearer {self._creds.token}",
                        "Content-Type": "application/json",
                    },
                    timeout=self._timeout_s,
                )
            except requests.Timeout as e:
                if attempt + 1 >= attempts:
                    raise AirtableTimeoutError(self._timeout_s) from e
                logger.warning(f"Airtable {method} timeout tras {self._timeout_s}s, reintentando una vez")
            except requests.RequestException as e:
                raise AirtableApiError(f"Airtable request fallo: {e}") from e
        # range(attempts) siempre retorna o lanza antes de llegar aqui
        raise AirtableTimeoutError(self._timeout_s)

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        query: Optional[List[tuple[str, Any]]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter, solo en GET. Un POST/PATCH puede haberse
          aplicado antes del 5xx; reenviarlo duplicaria registros.
        - 4xx (no 429): error inmediato (config/auth/campo mal).
        """
        for attempt in range(self._max_retries + 1):
            resp = self._send(method, url, query=query, body=body)

            try:
                payload = resp.json() if resp.content else {}
            except ValueError:
                payload = {"raw": resp.text}

            if 200 <= resp.status_code < 300:
                return payload

            message = _error_message(resp, payload)

            # Errores recuperables (429 no se procesa en Airtable; 5xx solo en lecturas)
            retryable = resp.status_code == 429 or (
                method == "GET" and 500 <= resp.status_code < 600
            )
            if retryable:
                if attempt >= self._max_retries:
                    raise AirtableApiError(
                        f"Airtable error {resp.status_code} tras {attempt} reintentos: {message}",
                        status_code=502,
                        payload=payload,
                    )

                retry_after = resp.headers.get("Retry-After")
                sleep_s: float
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    # Exponencial simple + jitter proporcional
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                logger.warning(
                    f"Airtable {resp.status_code} en {method}; reintento {attempt + 1}/"
                    f"{self._max_retries} en {math.ceil(sleep_s * 10) / 10}s"
                )
                self._sleep(sleep_s)
                continue

            # Errores no recuperables
            raise AirtableApiError(
                f"Airtable request fallo {resp.status_code}: {message}",
                status_code=502,
                payload=payload,
            )

        raise AirtableApiError("Airtable: reintentos agotados", status_code=502)
