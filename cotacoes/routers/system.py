"""Service metadata and health endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Request

from cotacoes import __version__
from cotacoes.domain.cotacao import isoformat, utcnow
from cotacoes.services.session_service import session_active

router = APIRouter(tags=["system"])


@router.get("/")
def root(request: Request):
    state = request.app.state
    features = ["token-temporario", "sessao", "jwt"]
    if state.settings.api_token:
        features.append("token-fixo")
    if state.cache.enabled:
        features.append("cache-redis")
    return {
        "message": "API de Cotações de Frete",
        "version": __version__,
        "status": "online",
        "database": state.cotacao_service.repository.name,
        "authentication": "Token Temporário + Sessão / JWT",
        "features": features,
        "sessionActive": session_active(request),
        "endpoints": {
            "health": "GET /health",
            "token": "POST /api/auth/generate-token",
            "cotacoes": {
                "listar": "GET /api/cotacoes",
                "criar": "POST /api/cotacoes",
                "buscar": "GET /api/cotacoes/:id",
                "atualizar": "PUT /api/cotacoes/:id",
                "deletar": "DELETE /api/cotacoes/:id",
            },
        },
        "timestamp": isoformat(utcnow()),
    }


@router.get("/health")
def health(request: Request):
    report = request.app.state.cotacao_service.health()
    report["timestamp"] = isoformat(utcnow())
    return report
