"""
Quote use cases: read-through listing/lookup and stamped writes.

Reads consult the cache before the record store. Writes hit the record store
first and only then invalidate the cached views they touched; a read that
raced with a write does not store its result.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from cotacoes.core.cache import KEY_ALL, CacheService, item_key
from cotacoes.core.errors import NotFoundError
from cotacoes.core.security import Identity
from cotacoes.domain.cotacao import empty_record, utcnow
from cotacoes.repositories.base import RecordStore

logger = logging.getLogger(__name__)


def new_record_id() -> str:
    return uuid.uuid4().hex


class CotacaoService:
    """Orchestrates the record store and the cache for the quote resource."""

    def __init__(
        self,
        repository: RecordStore,
        cache: Optional[CacheService] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_record_id,
    ) -> None:
        self.repository = repository
        self.cache = cache or CacheService(None)
        self._clock = clock
        self._id_factory = id_factory

    # ------------------------------------------------------------------ reads
    def list_all(self) -> list[dict]:
        cached = self.cache.get(KEY_ALL)
        if cached is not None:
            return cached
        generation = self.cache.generation()
        records = self.repository.list_all()
        logger.info("%d cotações encontradas", len(records))
        self.cache.set_if_current(KEY_ALL, records, generation)
        return records

    def get(self, record_id: str) -> dict:
        key = item_key(record_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        generation = self.cache.generation()
        record = self.repository.get(record_id)
        if record is None:
            raise NotFoundError(record_id)
        self.cache.set_if_current(key, record, generation)
        return record

    # ------------------------------------------------------------------ writes
    def create(self, fields: dict, identity: Optional[Identity] = None) -> dict:
        record = empty_record()
        record.update(fields)
        record.update(
            {
                "id": self._id_factory(),
                "timestamp": self._clock(),
                "updatedAt": None,
                "createdBy": identity.username if identity else None,
                "updatedBy": None,
                "negocioFechado": bool(fields.get("negocioFechado") or False),
            }
        )
        stored = self.repository.insert(record)
        logger.info("Cotação %s criada", stored["id"])
        self.cache.invalidate(stored["id"])
        return stored

    def update(self, record_id: str, fields: dict, identity: Optional[Identity] = None) -> dict:
        changes = dict(fields)
        if "negocioFechado" in changes:
            changes["negocioFechado"] = bool(changes["negocioFechado"])
        changes["updatedAt"] = self._clock()
        changes["updatedBy"] = identity.username if identity else None
        updated = self.repository.update(record_id, changes)
        if updated is None:
            raise NotFoundError(record_id)
        logger.info("Cotação %s atualizada", record_id)
        self.cache.invalidate(record_id)
        return updated

    def delete(self, record_id: str) -> None:
        if not self.repository.delete(record_id):
            raise NotFoundError(record_id)
        logger.info("Cotação %s excluída", record_id)
        self.cache.invalidate(record_id)

    # ------------------------------------------------------------------ health
    def health(self) -> dict:
        database_ok = self.repository.ping()
        report = {
            "status": "healthy" if database_ok else "unhealthy",
            "database": "connected" if database_ok else "disconnected",
        }
        if self.cache.enabled:
            report["cache"] = "connected" if self.cache.health_check() else "disconnected"
        return report
