from __future__ import annotations

import sys
import threading
from pathlib import Path

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

# Garante que o pacote cotacoes seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cotacoes.core.config import Settings  # noqa: E402
from cotacoes.db import models, session as db_session  # noqa: E402

JWT_SECRET = "jwt-secret-for-tests-0123456789abcdef"
API_TOKEN = "api-token-fixo"
BOOT_SECRET = "boot-secret"


def make_settings(**overrides) -> Settings:
    values = dict(
        app_env="test",
        port=3001,
        log_level="INFO",
        storage_backend="sql",
        database_url="",
        database_timeout_seconds=5,
        json_data_file="",
        jwt_secret=JWT_SECRET,
        api_token=API_TOKEN,
        boot_secret=BOOT_SECRET,
        session_secret="session-secret",
        session_ttl_seconds=8 * 60 * 60,
        bootstrap_token_ttl_seconds=30,
        bootstrap_sweep_interval_seconds=60,
        redis_url="",
        cache_ttl_seconds=300,
        cache_timeout_seconds=3,
        cors_origins=(),
        static_dir="",
    )
    values.update(overrides)
    return Settings(**values)


class FakeRedis:
    """Minimal in-memory stand-in for redis.Redis (decode_responses=True)."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[str] = []

    def get(self, key):
        self.calls.append("get")
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.calls.append("set")
        self.store[key] = value
        self.ttls[key] = ex
        return True

    def delete(self, *keys):
        self.calls.append("delete")
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def incr(self, key):
        self.calls.append("incr")
        value = int(self.store.get(key) or 0) + 1
        self.store[key] = str(value)
        return value

    def ping(self):
        return True

    def close(self):
        pass


class BrokenRedis:
    """Every command fails as if the server were unreachable."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise RedisConnectionError("Connection refused")

        return _fail


class CountingStore:
    """Delegates to a real record store and counts calls per operation."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.name = inner.name
        self.calls: dict[str, int] = {}

    def __getattr__(self, op):
        target = getattr(self.inner, op)

        def _wrapped(*args, **kwargs):
            self.calls[op] = self.calls.get(op, 0) + 1
            return target(*args, **kwargs)

        return _wrapped


class PausingStore:
    """Record store whose reads stop after fetching until `release` is set."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.name = inner.name
        self.fetched = threading.Event()
        self.release = threading.Event()
        self.pause_reads = False

    def list_all(self):
        records = self.inner.list_all()
        if self.pause_reads:
            self.pause_reads = False
            self.fetched.set()
            self.release.wait(5)
        return records

    def __getattr__(self, op):
        return getattr(self.inner, op)


@pytest.fixture()
def database_url(tmp_path):
    """SQLite temporário com o schema criado e teardown completo do engine."""
    db_file = tmp_path / "test.db"
    url = f"sqlite:///{db_file}"
    engine = db_session.get_engine(url)
    models.Base.metadata.create_all(bind=engine)

    yield url

    engine.dispose()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def fake_redis():
    return FakeRedis()
