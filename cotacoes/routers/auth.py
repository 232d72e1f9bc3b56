from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from cotacoes.core.rate_limiter import rate_limit_ip
from cotacoes.services.bootstrap_tokens import BootstrapTokenRegistry
from cotacoes.services.session_service import clear_session

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


class GenerateTokenIn(BaseModel):
    secret: str = ""


def _registry(request: Request) -> BootstrapTokenRegistry:
    registry = getattr(request.app.state, "bootstrap_tokens", None)
    if registry is None:
        raise RuntimeError("Registro de tokens temporarios nao configurado")
    return registry


@router.post("/generate-token")
def generate_token(payload: GenerateTokenIn, request: Request):
    rate_limit_ip(request, "auth:generate-token", limit=10, window_seconds=60)
    boot_secret = request.app.state.settings.boot_secret
    supplied = payload.secret or ""
    if not boot_secret or not secrets.compare_digest(supplied.encode(), boot_secret.encode()):
        logger.warning("Tentativa de gerar token com secret invalido")
        return JSONResponse({"success": False, "error": "Não autorizado"}, status_code=401)
    registry = _registry(request)
    token = registry.issue()
    return {"success": True, "token": token, "expiresIn": registry.ttl_seconds}


@router.post("/logout", status_code=204)
def logout(request: Request):
    clear_session(request)
    return Response(status_code=204)
