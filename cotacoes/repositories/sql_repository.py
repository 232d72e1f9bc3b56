"""Quote persistence backed by SQLAlchemy (Postgres in production)."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError

from cotacoes.core.errors import PersistenceError
from cotacoes.db.models import Cotacao
from cotacoes.db.session import get_session
from cotacoes.domain.cotacao import ALL_FIELDS, EDITABLE_FIELDS, isoformat, parse_datetime

logger = logging.getLogger(__name__)

_DATETIME_ATTRS = {"created_at", "updated_at"}


def _entity_to_dict(entity: Cotacao) -> dict:
    record = {}
    for wire, attr in ALL_FIELDS.items():
        value = getattr(entity, attr)
        record[wire] = isoformat(value) if attr in _DATETIME_ATTRS else value
    record["negocioFechado"] = bool(record["negocioFechado"])
    return record


def _assign(entity: Cotacao, values: dict) -> None:
    for wire, value in values.items():
        attr = ALL_FIELDS.get(wire)
        if not attr:
            continue
        if attr in _DATETIME_ATTRS:
            value = parse_datetime(value)
        setattr(entity, attr, value)


class SQLQuoteRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    name = "Postgres (SQLAlchemy)"

    def __init__(self, database_url: Optional[str] = None) -> None:
        self.database_url = database_url

    def list_all(self) -> list[dict]:
        try:
            with get_session(self.database_url) as session:
                stmt = select(Cotacao).order_by(Cotacao.created_at.desc())
                return [_entity_to_dict(e) for e in session.execute(stmt).scalars().all()]
        except SQLAlchemyError as exc:
            raise PersistenceError("Erro ao buscar cotações", str(exc)) from exc

    def get(self, record_id: str) -> Optional[dict]:
        try:
            with get_session(self.database_url) as session:
                entity = session.get(Cotacao, record_id)
                return _entity_to_dict(entity) if entity else None
        except SQLAlchemyError as exc:
            raise PersistenceError("Erro ao buscar cotação", str(exc)) from exc

    def insert(self, record: dict) -> dict:
        entity = Cotacao()
        _assign(entity, record)
        try:
            with get_session(self.database_url) as session:
                session.add(entity)
                session.commit()
                session.refresh(entity)
                return _entity_to_dict(entity)
        except SQLAlchemyError as exc:
            raise PersistenceError("Erro ao criar cotação", str(exc)) from exc

    def import_record(self, record: dict) -> None:
        """Upsert a record keeping its own id and timestamps (used by migrations)."""
        entity = Cotacao(negocio_fechado=False)
        _assign(entity, record)
        try:
            with get_session(self.database_url) as session:
                session.merge(entity)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Erro ao importar cotação", str(exc)) from exc

    def update(self, record_id: str, changes: dict) -> Optional[dict]:
        allowed = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS or k in ("updatedAt", "updatedBy")}
        try:
            with get_session(self.database_url) as session:
                entity = session.get(Cotacao, record_id)
                if not entity:
                    return None
                _assign(entity, allowed)
                session.commit()
                session.refresh(entity)
                return _entity_to_dict(entity)
        except SQLAlchemyError as exc:
            raise PersistenceError("Erro ao atualizar cotação", str(exc)) from exc

    def delete(self, record_id: str) -> bool:
        try:
            with get_session(self.database_url) as session:
                result = session.execute(delete(Cotacao).where(Cotacao.id == record_id))
                session.commit()
                return bool(result.rowcount)
        except SQLAlchemyError as exc:
            raise PersistenceError("Erro ao excluir cotação", str(exc)) from exc

    def ping(self) -> bool:
        try:
            with get_session(self.database_url) as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.error("Health check do banco falhou: %s", exc)
            return False
