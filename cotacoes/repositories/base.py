"""Record store interface shared by the SQL and JSON adapters."""
from __future__ import annotations

from typing import Optional, Protocol


class RecordStore(Protocol):
    """Persistence gateway for quote records.

    Records travel as plain dicts keyed by their wire names. Adapters raise
    PersistenceError on backend failures and never return partial writes.
    """

    name: str

    def list_all(self) -> list[dict]:
        """All records, newest creation timestamp first."""

    def get(self, record_id: str) -> Optional[dict]: ...

    def insert(self, record: dict) -> dict: ...

    def update(self, record_id: str, changes: dict) -> Optional[dict]:
        """Apply changes; None when the record does not exist."""

    def delete(self, record_id: str) -> bool:
        """False when the record does not exist."""

    def ping(self) -> bool: ...
