"""
Read-through cache backed by Redis.

The cache is optional: without credentials every lookup is a miss and every
write is a no-op. Backend failures are logged and degrade to the same
behaviour, so a Redis outage never blocks request handling.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis
from redis.exceptions import RedisError

from cotacoes.core.config import Settings
from cotacoes.core.errors import CacheError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
KEY_ALL = "cotacoes:all"
# bumped after every write; readers only store what they fetched under an unchanged value
KEY_GENERATION = "cotacoes:gen"


def item_key(record_id: str) -> str:
    return f"cotacoes:item:{record_id}"


class CacheService:
    """Thin JSON layer over a redis client with degrade-on-failure semantics."""

    def __init__(self, client: Optional[redis.Redis] = None, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self.client = client
        self.default_ttl = default_ttl if default_ttl > 0 else DEFAULT_TTL_SECONDS

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheService":
        if not settings.cache_configured:
            logger.warning("Redis nao configurado; cache desabilitado")
            return cls(None, settings.cache_ttl_seconds)
        try:
            client = redis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_timeout=settings.cache_timeout_seconds,
                socket_connect_timeout=settings.cache_timeout_seconds,
            )
        except (RedisError, ValueError) as exc:
            logger.error("Falha ao configurar Redis: %s", exc)
            return cls(None, settings.cache_ttl_seconds)
        logger.info("Cache Redis habilitado")
        return cls(client, settings.cache_ttl_seconds)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------ backend calls
    def _call(self, op: str, *args, **kwargs):
        try:
            return getattr(self.client, op)(*args, **kwargs)
        except RedisError as exc:
            raise CacheError(f"{op} failed: {exc}") from exc

    # ------------------------------------------------------------------ public API
    def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            raw = self._call("get", key)
        except CacheError as exc:
            logger.warning("Erro ao buscar cache %s: %s", key, exc)
            return None
        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Entrada de cache corrompida descartada: %s", key)
            self.delete(key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.enabled:
            return False
        expires = ttl if ttl and ttl > 0 else self.default_ttl
        try:
            self._call("set", key, json.dumps(value, ensure_ascii=False), ex=expires)
        except CacheError as exc:
            logger.warning("Erro ao salvar cache %s: %s", key, exc)
            return False
        logger.debug("Cache SALVO: %s (expira em %ss)", key, expires)
        return True

    def delete(self, *keys: str) -> bool:
        if not self.enabled or not keys:
            return False
        try:
            self._call("delete", *keys)
        except CacheError as exc:
            logger.warning("Erro ao limpar cache %s: %s", ", ".join(keys), exc)
            return False
        return True

    def generation(self) -> Optional[str]:
        """Current write generation, or None when it cannot be read."""
        if not self.enabled:
            return None
        try:
            value = self._call("get", KEY_GENERATION)
        except CacheError as exc:
            logger.warning("Erro ao ler geracao do cache: %s", exc)
            return None
        return str(value) if value is not None else "0"

    def set_if_current(self, key: str, value: Any, generation: Optional[str], ttl: Optional[int] = None) -> bool:
        """Store a value fetched under `generation` unless a write happened since.

        The generation is checked again after the SET: a write that slipped in
        between the check and the SET bumps it, and the entry is dropped.
        """
        if generation is None or self.generation() != generation:
            logger.debug("Cache NAO SALVO (escrita concorrente): %s", key)
            return False
        if not self.set(key, value, ttl):
            return False
        if self.generation() != generation:
            logger.debug("Cache DESCARTADO (escrita concorrente): %s", key)
            self.delete(key)
            return False
        return True

    def invalidate(self, record_id: Optional[str] = None) -> bool:
        """Drop the aggregate view and, when given, the entry for one record.

        Also bumps the write generation so that reads already in flight do not
        put their older snapshot back.
        """
        keys = [KEY_ALL]
        if record_id:
            keys.append(item_key(record_id))
        deleted = self.delete(*keys)
        if self.enabled:
            try:
                self._call("incr", KEY_GENERATION)
            except CacheError as exc:
                logger.warning("Erro ao incrementar geracao do cache: %s", exc)
        return deleted

    def health_check(self) -> bool:
        if not self.enabled:
            return False
        try:
            return bool(self._call("ping"))
        except CacheError as exc:
            logger.warning("Redis health check falhou: %s", exc)
            return False

    def close(self) -> None:
        if self.client is not None:
            try:
                self.client.close()
            except RedisError as exc:
                logger.warning("Erro ao fechar conexao Redis: %s", exc)
