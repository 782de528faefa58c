"""
Tests unitarios para RecordResolver.

Verifica:
- fast path de ids ya resueltos (cero llamadas al store)
- coincidencia sin distinguir mayusculas
- cache positiva y ausencia de cache negativa
- semantica de allow_missing, vacios y orden
"""
from __future__ import annotations

import pytest

from app.application.services.record_resolver import RecordResolver, resolution_cache_key
from app.domain.entities.record import ResolutionSource
from app.infrastructure.cache.ttl_cache import InMemoryTTLCache
from app.shared.exceptions.base import ConfigurationException
from app.shared.exceptions.domain import ReferenceNotFoundException, ValidationException


@pytest.fixture
def resolver(store, schema, cache) -> RecordResolver:
    return RecordResolver(store, schema, cache, ttl_s=600)


class TestResolveIdentifier:

    @pytest.mark.parametrize("table", ["PRESTAZIONI", "ANAGRAFICA", "TABLA_SIN_SCHEMA"])
    @pytest.mark.parametrize("value", ["recAbc123", "rec_valid", "rec"])
    def test_record_id_is_returned_without_store_calls(self, resolver, store, table, value) -> None:
        result = resolver.resolve_identifier(table, value)

        assert result.record_id == value
        assert result.source == ResolutionSource.RECORD_ID
        assert store.total_calls == 0

    def test_padded_record_id_is_returned_trimmed(self, resolver, store) -> None:
        result = resolver.resolve_identifier("PRESTAZIONI", " recX ")

        assert result.record_id == "recX"
        assert result.source == ResolutionSource.RECORD_ID
        assert store.total_calls == 0

    def test_case_insensitive_match(self, resolver, store) -> None:
        rid = store.seed("PRESTAZIONI", {"Servizio": "Fisioterapia Manuale"})

        assert resolver.resolve_identifier("PRESTAZIONI", "fisioterapia manuale").record_id == rid
        assert resolver.resolve_identifier("PRESTAZIONI", "FISIOTERAPIA MANUALE").record_id == rid

    def test_value_is_trimmed_before_lookup(self, resolver, store) -> None:
        rid = store.seed("ANAGRAFICA", {"Cognome e Nome": "Mario Rossi"})

        result = resolver.resolve_identifier("ANAGRAFICA", "  Mario Rossi  ")

        assert result.record_id == rid
        assert 'LOWER("Mario Rossi")' in store.list_calls[0]["filter_formula"]

    def test_lookup_asks_for_a_single_record(self, resolver, store) -> None:
        store.seed("ANAGRAFICA", {"Cognome e Nome": "Mario Rossi"})

        resolver.resolve_identifier("ANAGRAFICA", "Mario Rossi")

        call = store.list_calls[0]
        assert call["max_records"] == 1
        assert call["filter_formula"] == 'LOWER({Cognome e Nome}) = LOWER("Mario Rossi")'

    def test_second_call_hits_cache(self, resolver, store) -> None:
        rid = store.seed("ANAGRAFICA", {"Cognome e Nome": "Mario Rossi"})

        first = resolver.resolve_identifier("ANAGRAFICA", "Mario Rossi")
        second = resolver.resolve_identifier("ANAGRAFICA", "mario rossi")

        assert first.source == ResolutionSource.STORE
        assert second.source == ResolutionSource.CACHE
        assert second.record_id == rid
        assert len(store.list_calls) == 1

    def test_miss_is_not_cached(self, resolver, store, cache) -> None:
        first = resolver.resolve_identifier("ANAGRAFICA", "Giulia Bianchi")
        assert not first.found
        assert cache.get(resolution_cache_key("ANAGRAFICA", "Giulia Bianchi")) is None

        rid = store.seed("ANAGRAFICA", {"Cognome e Nome": "Giulia Bianchi"})
        second = resolver.resolve_identifier("ANAGRAFICA", "Giulia Bianchi")

        assert second.record_id == rid
        assert len(store.list_calls) == 2

    def test_cache_expires_after_ttl(self, store, schema) -> None:
        now = [1000.0]
        cache = InMemoryTTLCache(clock=lambda: now[0])
        resolver = RecordResolver(store, schema, cache, ttl_s=600)
        store.seed("ANAGRAFICA", {"Cognome e Nome": "Mario Rossi"})

        resolver.resolve_identifier("ANAGRAFICA", "Mario Rossi")
        now[0] += 599
        resolver.resolve_identifier("ANAGRAFICA", "Mario Rossi")
        assert len(store.list_calls) == 1

        now[0] += 2
        resolver.resolve_identifier("ANAGRAFICA", "Mario Rossi")
        assert len(store.list_calls) == 2

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_blank_value_is_not_found_without_calls(self, resolver, store, value) -> None:
        assert not resolver.resolve_identifier("ANAGRAFICA", value).found
        assert store.total_calls == 0

    def test_table_without_primary_field_fails_loudly(self, resolver, store) -> None:
        with pytest.raises(ConfigurationException) as exc_info:
            resolver.resolve_identifier("TABLA_SIN_SCHEMA", "Mario Rossi")

        assert exc_info.value.details["table"] == "TABLA_SIN_SCHEMA"
        assert store.total_calls == 0

    def test_missing_table_name_is_validation_error(self, resolver) -> None:
        with pytest.raises(ValidationException):
            resolver.resolve_identifier("  ", "Mario Rossi")

    def test_quotes_in_value_are_escaped(self, resolver, store) -> None:
        rid = store.seed("PRESTAZIONI", {"Servizio": 'Massaggio "decontratturante"'})

        assert resolver.resolve_identifier("PRESTAZIONI", 'massaggio "decontratturante"').record_id == rid
        assert '\\"decontratturante\\"' in store.list_calls[0]["filter_formula"]


class TestResolveIdentifiers:

    def test_allow_missing_drops_unknown_values(self, resolver, store) -> None:
        ids = resolver.resolve_identifiers("PRESTAZIONI", ["rec_valid", "NoSuchName"], allow_missing=True)

        assert ids == ["rec_valid"]

    def test_required_reference_missing_raises(self, resolver) -> None:
        with pytest.raises(ReferenceNotFoundException) as exc_info:
            resolver.resolve_identifiers("PRESTAZIONI", ["rec_valid", "NoSuchName"], allow_missing=False)

        assert exc_info.value.value == "NoSuchName"
        assert exc_info.value.table == "PRESTAZIONI"
        assert exc_info.value.status_code == 400
        assert "NoSuchName" in exc_info.value.message

    @pytest.mark.parametrize("allow_missing", [True, False])
    def test_blank_elements_are_skipped(self, resolver, store, allow_missing) -> None:
        ids = resolver.resolve_identifiers("PRESTAZIONI", ["", None, "  "], allow_missing=allow_missing)

        assert ids == []
        assert store.total_calls == 0

    def test_order_is_preserved(self, resolver, store) -> None:
        id_a = store.seed("PRESTAZIONI", {"Servizio": "A"})
        id_b = store.seed("PRESTAZIONI", {"Servizio": "B"})
        id_c = store.seed("PRESTAZIONI", {"Servizio": "C"})

        ids = resolver.resolve_identifiers("PRESTAZIONI", ["B", "A", "C"], allow_missing=True)

        assert ids == [id_b, id_a, id_c]

    def test_scalar_value_is_accepted(self, resolver, store) -> None:
        rid = store.seed("COLLABORATORI", {"Collaboratore": "Laura Verdi"})

        assert resolver.resolve_identifiers("COLLABORATORI", "Laura Verdi") == [rid]
        assert resolver.resolve_identifiers("COLLABORATORI", None) == []

    def test_mixed_ids_and_names(self, resolver, store) -> None:
        rid = store.seed("ANAGRAFICA", {"Cognome e Nome": "Mario Rossi"})

        ids = resolver.resolve_identifiers("ANAGRAFICA", ["recExisting0001", "Mario Rossi"])

        assert ids == ["recExisting0001", rid]

    def test_to_link_field_value_returns_only_ids(self, resolver, store) -> None:
        rid = store.seed("PRESTAZIONI", {"Servizio": "Tecar"})

        value = resolver.to_link_field_value(["Tecar", "Inesistente"], table_name="PRESTAZIONI", allow_missing=True)

        assert value == [rid]
