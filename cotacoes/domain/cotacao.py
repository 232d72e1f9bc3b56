"""Quote record fields, request payloads and timestamp helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict

# wire name -> column attribute, for the fields a client may write
EDITABLE_FIELDS = {
    "responsavelCotacao": "responsavel_cotacao",
    "transportadora": "transportadora",
    "destino": "destino",
    "valorFrete": "valor_frete",
    "numeroDocumento": "numero_documento",
    "prazoEntrega": "prazo_entrega",
    "canalComunicacao": "canal_comunicacao",
    "codigoColeta": "codigo_coleta",
    "contatoTransportadora": "contato_transportadora",
    "dataCotacao": "data_cotacao",
    "observacoes": "observacoes",
    "negocioFechado": "negocio_fechado",
}

# server-assigned fields
SYSTEM_FIELDS = {
    "id": "id",
    "timestamp": "created_at",
    "updatedAt": "updated_at",
    "createdBy": "created_by",
    "updatedBy": "updated_by",
}

ALL_FIELDS = {**SYSTEM_FIELDS, **EDITABLE_FIELDS}


class CotacaoIn(BaseModel):
    """Fields accepted on create/update. Unknown and system fields are dropped."""

    model_config = ConfigDict(extra="ignore")

    responsavelCotacao: Optional[str] = None
    transportadora: Optional[str] = None
    destino: Optional[str] = None
    valorFrete: Optional[float] = None
    numeroDocumento: Optional[str] = None
    prazoEntrega: Optional[str] = None
    canalComunicacao: Optional[str] = None
    codigoColeta: Optional[str] = None
    contatoTransportadora: Optional[str] = None
    dataCotacao: Optional[str] = None
    observacoes: Optional[str] = None
    negocioFechado: Optional[bool] = None

    def provided_fields(self) -> dict:
        return self.model_dump(exclude_unset=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Naive datetimes (SQLite) are read back as UTC."""
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def isoformat(value: datetime | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return to_utc(value).isoformat(timespec="microseconds")


def parse_datetime(value: datetime | str | None) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    try:
        return to_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None


def empty_record() -> dict:
    record = {name: None for name in ALL_FIELDS}
    record["negocioFechado"] = False
    return record
