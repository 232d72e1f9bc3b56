from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from cotacoes.core.cache import KEY_ALL, CacheService, item_key
from cotacoes.core.errors import NotFoundError
from cotacoes.core.security import Identity
from cotacoes.repositories.json_storage import JSONQuoteRepository
from cotacoes.services.cotacao_service import CotacaoService

from conftest import BrokenRedis, CountingStore, PausingStore


class StepClock:
    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture()
def store(tmp_path):
    return CountingStore(JSONQuoteRepository(tmp_path / "cotacoes.json"))


@pytest.fixture()
def service(store, fake_redis):
    return CotacaoService(store, CacheService(fake_redis), clock=StepClock())


def test_create_stamps_system_fields(service):
    record = service.create({"transportadora": "X", "valorFrete": 100.0}, Identity("maria", "Maria"))

    assert record["id"]
    assert record["timestamp"] == "2024-01-01T12:00:01.000000+00:00"
    assert record["updatedAt"] is None
    assert record["negocioFechado"] is False
    assert record["createdBy"] == "maria"


def test_list_is_read_through(service, store):
    service.create({"transportadora": "A"})
    first = service.list_all()
    second = service.list_all()

    assert first == second
    assert store.calls["list_all"] == 1


def test_write_invalidates_aggregate_view(service, store, fake_redis):
    service.create({"transportadora": "A"})
    service.list_all()
    assert KEY_ALL in fake_redis.store

    service.create({"transportadora": "B"})
    assert KEY_ALL not in fake_redis.store
    records = service.list_all()

    assert store.calls["list_all"] == 2
    assert [r["transportadora"] for r in records] == ["B", "A"]


def test_get_is_read_through_and_update_invalidates_item(service, store, fake_redis):
    created = service.create({"transportadora": "A"})
    service.get(created["id"])
    service.get(created["id"])
    assert store.calls["get"] == 1

    service.update(created["id"], {"transportadora": "Z"}, Identity("joao", "Joao"))
    assert item_key(created["id"]) not in fake_redis.store
    fresh = service.get(created["id"])

    assert store.calls["get"] == 2
    assert fresh["transportadora"] == "Z"
    assert fresh["updatedBy"] == "joao"


def test_update_keeps_identity_and_creation_time(service):
    created = service.create({"transportadora": "A", "valorFrete": 10.0})
    updated = service.update(created["id"], {"valorFrete": 20.0, "negocioFechado": True})

    assert updated["id"] == created["id"]
    assert updated["timestamp"] == created["timestamp"]
    assert updated["updatedAt"] > created["timestamp"]
    assert updated["valorFrete"] == 20.0
    assert updated["transportadora"] == "A"
    assert updated["negocioFechado"] is True


def test_missing_record_raises_not_found(service, store):
    with pytest.raises(NotFoundError):
        service.get("nao-existe")
    with pytest.raises(NotFoundError):
        service.update("nao-existe", {"destino": "SP"})
    with pytest.raises(NotFoundError):
        service.delete("nao-existe")


def test_delete_removes_one_record(service):
    a = service.create({"transportadora": "A"})
    service.create({"transportadora": "B"})
    service.delete(a["id"])

    assert [r["transportadora"] for r in service.list_all()] == ["B"]


def test_cache_outage_does_not_affect_results(store):
    service = CotacaoService(store, CacheService(BrokenRedis()), clock=StepClock())
    created = service.create({"transportadora": "A"})

    assert service.get(created["id"])["transportadora"] == "A"
    assert len(service.list_all()) == 1
    service.delete(created["id"])
    assert service.list_all() == []


def test_health_reports_cache_separately(store, fake_redis):
    assert CotacaoService(store, CacheService(fake_redis)).health() == {
        "status": "healthy",
        "database": "connected",
        "cache": "connected",
    }
    assert "cache" not in CotacaoService(store).health()
    broken = CotacaoService(store, CacheService(BrokenRedis())).health()
    assert broken["status"] == "healthy"
    assert broken["cache"] == "disconnected"


def test_read_racing_a_write_does_not_restore_stale_list(tmp_path, fake_redis):
    store = PausingStore(JSONQuoteRepository(tmp_path / "cotacoes.json"))
    service = CotacaoService(store, CacheService(fake_redis), clock=StepClock())
    store.pause_reads = True

    reader = threading.Thread(target=service.list_all)
    reader.start()
    assert store.fetched.wait(5)

    service.create({"transportadora": "NOVA"})
    store.release.set()
    reader.join(5)
    assert not reader.is_alive()

    assert [r["transportadora"] for r in service.list_all()] == ["NOVA"]
