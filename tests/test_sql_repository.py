"""
Smoke tests for the SQLQuoteRepository against a temporary SQLite database.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from cotacoes.core.errors import PersistenceError
from cotacoes.db.models import Cotacao
from cotacoes.domain.cotacao import EDITABLE_FIELDS, CotacaoIn, empty_record
from cotacoes.repositories.sql_repository import SQLQuoteRepository

T0 = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def _record(record_id: str, created: datetime, **fields) -> dict:
    record = empty_record()
    record.update({"id": record_id, "timestamp": created, **fields})
    return record


def test_insert_and_get(database_url):
    repo = SQLQuoteRepository(database_url)
    stored = repo.insert(_record("abc", T0, transportadora="Braspress", valorFrete=350.75, createdBy="api"))

    assert stored["id"] == "abc"
    assert stored["timestamp"] == "2024-03-01T09:30:00.000000+00:00"
    assert stored["updatedAt"] is None
    assert stored["negocioFechado"] is False
    assert repo.get("abc") == stored
    assert repo.get("nope") is None


def test_list_orders_newest_first(database_url):
    repo = SQLQuoteRepository(database_url)
    for i in range(3):
        repo.insert(_record(f"id{i}", T0 + timedelta(minutes=i)))

    assert [r["id"] for r in repo.list_all()] == ["id2", "id1", "id0"]


def test_empty_list(database_url):
    assert SQLQuoteRepository(database_url).list_all() == []


def test_update_only_touches_editable_fields(database_url):
    repo = SQLQuoteRepository(database_url)
    repo.insert(_record("abc", T0, transportadora="A", destino="Recife"))
    later = T0 + timedelta(hours=1)

    updated = repo.update(
        "abc",
        {"transportadora": "B", "id": "hacked", "timestamp": later, "updatedAt": later, "updatedBy": "maria"},
    )

    assert updated["id"] == "abc"
    assert updated["timestamp"] == "2024-03-01T09:30:00.000000+00:00"
    assert updated["updatedAt"] == "2024-03-01T10:30:00.000000+00:00"
    assert updated["transportadora"] == "B"
    assert updated["destino"] == "Recife"
    assert updated["updatedBy"] == "maria"
    assert repo.update("nope", {"destino": "SP"}) is None


def test_delete(database_url):
    repo = SQLQuoteRepository(database_url)
    repo.insert(_record("a", T0))
    repo.insert(_record("b", T0 + timedelta(seconds=1)))

    assert repo.delete("a") is True
    assert repo.delete("a") is False
    assert [r["id"] for r in repo.list_all()] == ["b"]


def test_import_record_is_idempotent(database_url):
    repo = SQLQuoteRepository(database_url)
    record = {"id": "legacy-1", "timestamp": "2023-12-24T10:00:00.000Z", "transportadora": "TNT", "negocioFechado": True}
    repo.import_record(record)
    repo.import_record(record)

    rows = repo.list_all()
    assert len(rows) == 1
    assert rows[0]["timestamp"] == "2023-12-24T10:00:00.000000+00:00"
    assert rows[0]["negocioFechado"] is True


def test_ping(database_url):
    assert SQLQuoteRepository(database_url).ping() is True


def test_backend_failure_becomes_persistence_error(tmp_path):
    # no tables created on this database
    repo = SQLQuoteRepository(f"sqlite:///{tmp_path / 'vazio.db'}")
    with pytest.raises(PersistenceError) as excinfo:
        repo.list_all()
    assert excinfo.value.action == "Erro ao buscar cotações"


def test_string_columns_accept_any_length_the_api_accepts():
    columns = Cotacao.__table__.c
    for wire_name, field in CotacaoIn.model_fields.items():
        if field.annotation != Optional[str]:
            continue
        assert wire_name in EDITABLE_FIELDS
        assert getattr(columns[wire_name].type, "length", None) is None, wire_name
    for audit in ("createdBy", "updatedBy"):
        assert getattr(columns[audit].type, "length", None) is None


def test_long_values_are_stored_intact(database_url):
    repo = SQLQuoteRepository(database_url)
    long_doc = "NF-" + "9" * 200
    repo.insert(_record("longo", T0, numeroDocumento=long_doc, dataCotacao="x" * 40))

    stored = repo.get("longo")
    assert stored["numeroDocumento"] == long_doc
    assert stored["dataCotacao"] == "x" * 40
