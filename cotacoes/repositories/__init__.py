"""
Persistence adapters.

Services depend on the RecordStore interface; the concrete adapter (JSON file
or SQL database) is chosen once, from configuration, by build_record_store.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from cotacoes.core.config import Settings
from cotacoes.core.errors import ConfigurationError
from cotacoes.db.create_tables import create_all
from cotacoes.repositories.base import RecordStore
from cotacoes.repositories.json_storage import JSONQuoteRepository
from cotacoes.repositories.sql_repository import SQLQuoteRepository

logger = logging.getLogger(__name__)


def build_record_store(settings: Settings) -> RecordStore:
    if settings.storage_backend == "json":
        return JSONQuoteRepository(settings.json_data_file)
    if settings.storage_backend != "sql":
        raise ConfigurationError(f"STORAGE_BACKEND invalido: {settings.storage_backend!r} (use 'sql' ou 'json')")
    if not settings.database_url:
        raise ConfigurationError("DATABASE_URL nao configurada")
    try:
        create_all(settings.database_url)
    except SQLAlchemyError as exc:
        logger.error("Nao foi possivel preparar as tabelas: %s", exc)
    return SQLQuoteRepository(settings.database_url)


__all__ = ["RecordStore", "JSONQuoteRepository", "SQLQuoteRepository", "build_record_store"]
