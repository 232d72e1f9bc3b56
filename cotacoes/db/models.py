"""SQLAlchemy model mirroring the quote JSON structure.

Client-supplied strings are unbounded Text: the API sets no length limits.
"""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, String, Text

from .session import Base


class Cotacao(Base):
    __tablename__ = "cotacoes"

    id = Column(String(64), primary_key=True)
    responsavel_cotacao = Column("responsavelCotacao", Text, nullable=True)
    transportadora = Column(Text, nullable=True)
    destino = Column(Text, nullable=True)
    valor_frete = Column("valorFrete", Float, nullable=True)
    numero_documento = Column("numeroDocumento", Text, nullable=True)
    prazo_entrega = Column("prazoEntrega", Text, nullable=True)
    canal_comunicacao = Column("canalComunicacao", Text, nullable=True)
    codigo_coleta = Column("codigoColeta", Text, nullable=True)
    contato_transportadora = Column("contatoTransportadora", Text, nullable=True)
    data_cotacao = Column("dataCotacao", Text, nullable=True)
    observacoes = Column(Text, nullable=True)
    negocio_fechado = Column("negocioFechado", Boolean, default=False, nullable=False)
    created_at = Column("timestamp", DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column("updatedAt", DateTime(timezone=True), nullable=True)
    created_by = Column("createdBy", Text, nullable=True)
    updated_by = Column("updatedBy", Text, nullable=True)
