"""
Tests unitarios para AirtableClient.

La sesion HTTP es un doble que registra cada request y devuelve respuestas
encoladas; el sleep del backoff se inyecta para no esperar.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from app.application.services.record_upsert import RecordUpsertService
from app.infrastructure.external.airtable.airtable_client import (
    AirtableApiError,
    AirtableClient,
    AirtableCredentials,
    AirtableTimeoutError,
)


class _FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.headers = headers or {}
        self.text = json.dumps(self._payload)
        self.content = self.text.encode("utf-8")

    def json(self) -> Any:
        return self._payload


class _FakeSession:
    def __init__(self, responses: List[Any]) -> None:
        self._responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params or [], "json": json, "headers": headers})
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


def _page(records: List[Dict[str, Any]], offset: Optional[str] = None) -> _FakeResponse:
    payload: Dict[str, Any] = {"records": records}
    if offset:
        payload["offset"] = offset
    return _FakeResponse(200, payload)


def _rec(rid: str, **fields: Any) -> Dict[str, Any]:
    return {"id": rid, "createdTime": "2024-01-01T00:00:00.000Z", "fields": fields}


def _client(session: _FakeSession, sleeps: Optional[List[float]] = None, **kwargs: Any) -> AirtableClient:
    sleeps = sleeps if sleeps is not None else []
    return AirtableClient(
        AirtableCredentials(token="pat-test", base_id="appTEST"),
        session=session,
        sleep=sleeps.append,
        **kwargs,
    )


def _param_values(call: Dict[str, Any], name: str) -> List[Any]:
    return [v for k, v in call["params"] if k == name]


class TestListRecords:

    def test_follows_offset_pagination(self) -> None:
        session = _FakeSession([
            _page([_rec("rec1", Servizio="A")], offset="itr1"),
            _page([_rec("rec2", Servizio="B")]),
        ])
        client = _client(session)

        page = client.list_records("PRESTAZIONI")

        assert [r.id for r in page.records] == ["rec1", "rec2"]
        assert page.next_page_token is None
        assert _param_values(session.calls[1], "offset") == ["itr1"]

    def test_stops_at_max_records_and_truncates(self) -> None:
        session = _FakeSession([
            _page([_rec("rec1"), _rec("rec2"), _rec("rec3")], offset="itr1"),
        ])
        client = _client(session)

        page = client.list_records("PRESTAZIONI", max_records=2)

        assert [r.id for r in page.records] == ["rec1", "rec2"]
        assert page.next_page_token == "itr1"
        assert len(session.calls) == 1
        assert _param_values(session.calls[0], "maxRecords") == [2]

    def test_query_params_and_headers(self) -> None:
        session = _FakeSession([_page([])])
        client = _client(session)

        client.list_records(
            "FATTURE FIC",
            filter_formula='LOWER({ID Fattura}) = LOWER("FT-1")',
            page_size=500,
            fields=["ID Fattura", "Stato"],
            sort=[{"field": "Data", "direction": "desc"}],
            view="Grid view",
        )

        call = session.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://api.airtable.com/v0/appTEST/FATTURE%20FIC"
        assert call["headers"]["Authorization"] == "Bearer pat-test"
        assert _param_values(call, "pageSize") == [100]
        assert _param_values(call, "filterByFormula") == ['LOWER({ID Fattura}) = LOWER("FT-1")']
        assert _param_values(call, "fields[]") == ["ID Fattura", "Stato"]
        assert _param_values(call, "sort[0][field]") == ["Data"]
        assert _param_values(call, "sort[0][direction]") == ["desc"]
        assert _param_values(call, "view") == ["Grid view"]

    def test_unknown_field_retries_once_without_fields(self) -> None:
        unknown = _FakeResponse(422, {"error": {"type": "UNKNOWN_FIELD_NAME", "message": 'Unknown field name: "Vecchio"'}})
        session = _FakeSession([unknown, _page([_rec("rec1")])])
        client = _client(session)

        page = client.list_records("PRESTAZIONI", fields=["Vecchio"])

        assert [r.id for r in page.records] == ["rec1"]
        assert _param_values(session.calls[0], "fields[]") == ["Vecchio"]
        assert _param_values(session.calls[1], "fields[]") == []

    def test_blank_table_name_is_rejected(self) -> None:
        client = _client(_FakeSession([]))

        with pytest.raises(ValueError):
            client.list_records("  ")


class TestErrors:

    def test_429_honors_retry_after(self) -> None:
        sleeps: List[float] = []
        session = _FakeSession([
            _FakeResponse(429, {"error": "RATE_LIMIT"}, headers={"Retry-After": "2"}),
            _page([_rec("rec1")]),
        ])
        client = _client(session, sleeps)

        page = client.list_records("PRESTAZIONI")

        assert page.first.id == "rec1"
        assert sleeps == [2.0]

    def test_5xx_exhausts_retries(self) -> None:
        sleeps: List[float] = []
        session = _FakeSession([_FakeResponse(503, {"error": "down"}) for _ in range(3)])
        client = _client(session, sleeps, max_retries=2)

        with pytest.raises(AirtableApiError) as exc_info:
            client.list_records("PRESTAZIONI")

        assert exc_info.value.status_code == 502
        assert len(session.calls) == 3
        assert len(sleeps) == 2

    def test_5xx_on_create_is_not_resent(self) -> None:
        sleeps: List[float] = []
        session = _FakeSession([
            _FakeResponse(503, {"error": "down"}),
            _FakeResponse(200, _rec("recNEW")),
        ])
        client = _client(session, sleeps)

        with pytest.raises(AirtableApiError) as exc_info:
            client.create_record("PRESTAZIONI", {"Servizio": "Tecar"})

        assert exc_info.value.status_code == 502
        assert len(session.calls) == 1
        assert sleeps == []

    def test_5xx_on_update_is_not_resent(self) -> None:
        sleeps: List[float] = []
        session = _FakeSession([
            _FakeResponse(500, {"error": "boom"}),
            _FakeResponse(200, _rec("rec1")),
        ])
        client = _client(session, sleeps)

        with pytest.raises(AirtableApiError):
            client.update_record("FATTURE FIC", "rec1", {"Stato": "Void"})

        assert len(session.calls) == 1
        assert sleeps == []

    def test_429_on_create_is_retried(self) -> None:
        sleeps: List[float] = []
        session = _FakeSession([
            _FakeResponse(429, {"error": "RATE_LIMIT"}, headers={"Retry-After": "1"}),
            _FakeResponse(200, _rec("recNEW")),
        ])
        client = _client(session, sleeps)

        assert client.create_record("PRESTAZIONI", {"Servizio": "Tecar"}).id == "recNEW"
        assert [c["method"] for c in session.calls] == ["POST", "POST"]
        assert sleeps == [1.0]

    def test_upsert_does_not_duplicate_after_5xx_on_create(self, schema, cache) -> None:
        session = _FakeSession([
            _page([]),
            _FakeResponse(503, {"error": "down"}),
            _FakeResponse(200, _rec("recDUP")),
        ])
        service = RecordUpsertService(_client(session), schema, cache)

        with pytest.raises(AirtableApiError):
            service.upsert_by_primary("FATTURE FIC", "ID Fattura", "FT-1", {})

        posts = [c for c in session.calls if c["method"] == "POST"]
        assert len(posts) == 1

    def test_4xx_fails_immediately_with_message(self) -> None:
        sleeps: List[float] = []
        session = _FakeSession([
            _FakeResponse(403, {"error": {"type": "INVALID_PERMISSIONS", "message": "Not allowed"}}),
        ])
        client = _client(session, sleeps)

        with pytest.raises(AirtableApiError) as exc_info:
            client.create_record("PRESTAZIONI", {"Servizio": "Tecar"})

        assert "Not allowed" in str(exc_info.value)
        assert exc_info.value.status_code == 502
        assert sleeps == []

    def test_timeout_is_retried_once(self) -> None:
        session = _FakeSession([requests.Timeout("slow"), _page([_rec("rec1")])])
        client = _client(session)

        assert client.list_records("PRESTAZIONI").first.id == "rec1"
        assert len(session.calls) == 2

    def test_second_timeout_raises_timeout_error(self) -> None:
        session = _FakeSession([requests.Timeout("slow"), requests.Timeout("slow")])
        client = _client(session, timeout_s=5)

        with pytest.raises(AirtableTimeoutError) as exc_info:
            client.list_records("PRESTAZIONI")

        assert exc_info.value.status_code == 504
        assert "timeout_after_5.0s" in str(exc_info.value)

    def test_timeout_without_retry(self) -> None:
        session = _FakeSession([requests.Timeout("slow")])
        client = _client(session, retry_on_timeout=False)

        with pytest.raises(AirtableTimeoutError):
            client.list_records("PRESTAZIONI")
        assert len(session.calls) == 1

    def test_connection_error_is_wrapped(self) -> None:
        session = _FakeSession([requests.ConnectionError("refused")])
        client = _client(session)

        with pytest.raises(AirtableApiError):
            client.get_record("PRESTAZIONI", "rec1")


class TestWrites:

    def test_create_posts_fields(self) -> None:
        session = _FakeSession([_FakeResponse(200, _rec("recNEW", Servizio="Tecar"))])
        client = _client(session)

        record = client.create_record("PRESTAZIONI", {"Servizio": "Tecar"})

        assert record.id == "recNEW"
        assert session.calls[0]["method"] == "POST"
        assert session.calls[0]["json"] == {"fields": {"Servizio": "Tecar"}}

    def test_update_patches_record_url(self) -> None:
        session = _FakeSession([_FakeResponse(200, _rec("rec1", Stato="Void"))])
        client = _client(session)

        record = client.update_record("FATTURE FIC", "rec1", {"Stato": "Void"})

        assert record.fields == {"Stato": "Void"}
        assert session.calls[0]["method"] == "PATCH"
        assert session.calls[0]["url"].endswith("/FATTURE%20FIC/rec1")

    def test_record_without_id_is_an_error(self) -> None:
        session = _FakeSession([_FakeResponse(200, {"fields": {}})])
        client = _client(session)

        with pytest.raises(AirtableApiError):
            client.create_record("PRESTAZIONI", {})


class TestHelpers:

    def test_is_record_id_uses_prefix(self) -> None:
        client = _client(_FakeSession([]))

        assert client.is_record_id("recAbc")
        assert not client.is_record_id("Mario Rossi")
        assert not client.is_record_id(None)

    def test_field_exists(self) -> None:
        unknown = _FakeResponse(422, {"error": {"type": "UNKNOWN_FIELD_NAME", "message": "Unknown field name"}})
        session = _FakeSession([_page([]), unknown])
        client = _client(session)

        assert client.field_exists("PRESTAZIONI", "Servizio") is True
        assert client.field_exists("PRESTAZIONI", "Inesistente") is False
        assert client.field_exists("PRESTAZIONI", " ") is False
        assert _param_values(session.calls[0], "pageSize") == [1]

    def test_field_exists_propagates_other_errors(self) -> None:
        session = _FakeSession([_FakeResponse(401, {"error": {"type": "AUTHENTICATION_REQUIRED", "message": "no"}})])
        client = _client(session)

        with pytest.raises(AirtableApiError):
            client.field_exists("PRESTAZIONI", "Servizio")

    def test_close_closes_session(self) -> None:
        session = _FakeSession([])
        _client(session).close()

        assert session.closed
