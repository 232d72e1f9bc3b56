"""Error taxonomy shared by repositories, services and the HTTP layer."""

from __future__ import annotations


class CotacoesError(Exception):
    """Base class for application errors."""


class ConfigurationError(CotacoesError):
    """Missing or invalid configuration detected at startup."""


class AuthenticationError(CotacoesError):
    def __init__(self, status_code: int, error: str, message: str, details: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(CotacoesError):
    def __init__(self, record_id: str):
        super().__init__(f"Cotacao {record_id} nao encontrada")
        self.record_id = record_id


class PersistenceError(CotacoesError):
    """The record store failed; carries the action that was being attempted."""

    def __init__(self, action: str, detail: str):
        super().__init__(f"{action}: {detail}")
        self.action = action
        self.detail = detail


class CacheError(CotacoesError):
    """Cache backend failure. Never leaves the cache layer."""
