"""
JSON-file persistence adapter.

This is the store the service started with; it remains available as a
deployment option (STORAGE_BACKEND=json) for local use without a database.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from cotacoes.core.errors import PersistenceError
from cotacoes.domain.cotacao import EDITABLE_FIELDS, isoformat, parse_datetime

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _sort_key(record: dict) -> datetime:
    return parse_datetime(record.get("timestamp")) or _EPOCH


def _serializable(record: dict) -> dict:
    return {key: isoformat(value) if isinstance(value, datetime) else value for key, value in record.items()}


class JSONQuoteRepository:
    name = "Arquivo JSON"

    def __init__(self, data_file: str | Path) -> None:
        self.data_file = Path(data_file)
        self._lock = threading.Lock()

    # -------------------------- file access --------------------------
    def load(self) -> dict:
        if self.data_file.exists():
            with self.data_file.open("r", encoding="utf-8") as f:
                return self.db_defaults(json.load(f))
        return self.db_defaults({})

    def save(self, db: dict) -> None:
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        self.data_file.write_text(json.dumps(db, ensure_ascii=False, indent=2), encoding="utf-8")

    @staticmethod
    def db_defaults(db) -> dict:
        # the first file-store variant persisted a bare list of records
        if isinstance(db, list):
            db = {"cotacoes": db}
        db.setdefault("cotacoes", [])
        return db

    def _read(self, action: str) -> dict:
        try:
            return self.load()
        except (OSError, ValueError) as exc:
            raise PersistenceError(action, str(exc)) from exc

    def _write(self, action: str, db: dict) -> None:
        try:
            self.save(db)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(action, str(exc)) from exc

    # -------------------------- record store --------------------------
    def list_all(self) -> list[dict]:
        with self._lock:
            records = self._read("Erro ao buscar cotações")["cotacoes"]
        return sorted(records, key=_sort_key, reverse=True)

    def get(self, record_id: str) -> Optional[dict]:
        with self._lock:
            records = self._read("Erro ao buscar cotação")["cotacoes"]
        return next((r for r in records if r.get("id") == record_id), None)

    def insert(self, record: dict) -> dict:
        stored = _serializable(record)
        with self._lock:
            db = self._read("Erro ao criar cotação")
            db["cotacoes"].append(stored)
            self._write("Erro ao criar cotação", db)
        return dict(stored)

    def update(self, record_id: str, changes: dict) -> Optional[dict]:
        allowed = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS or k in ("updatedAt", "updatedBy")}
        with self._lock:
            db = self._read("Erro ao atualizar cotação")
            for record in db["cotacoes"]:
                if record.get("id") == record_id:
                    record.update(_serializable(allowed))
                    self._write("Erro ao atualizar cotação", db)
                    return dict(record)
        return None

    def delete(self, record_id: str) -> bool:
        with self._lock:
            db = self._read("Erro ao excluir cotação")
            remaining = [r for r in db["cotacoes"] if r.get("id") != record_id]
            if len(remaining) == len(db["cotacoes"]):
                return False
            db["cotacoes"] = remaining
            self._write("Erro ao excluir cotação", db)
        return True

    def ping(self) -> bool:
        try:
            self.load()
        except (OSError, ValueError):
            return False
        return True
