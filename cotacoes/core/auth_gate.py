"""
Authentication gate.

Every request that is not on the public allow-list must carry an active
session, a redeemable bootstrap token, a valid signed token or the static
fallback token. Rejections short-circuit here, before any persistence access.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from cotacoes.core.errors import AuthenticationError
from cotacoes.core.logging import mask_token
from cotacoes.core.security import SESSION_IDENTITY, VerifierChain
from cotacoes.services.bootstrap_tokens import BootstrapTokenRegistry
from cotacoes.services.session_service import session_state, start_session

logger = logging.getLogger(__name__)

TOKEN_QUERY_PARAM = "token"
PUBLIC_PREFIXES = ("/static", "/css", "/js", "/images", "/favicon")
PUBLIC_PATHS = ("/health", "/api/auth/generate-token")
PROBE_METHODS = ("HEAD", "OPTIONS")


def extract_credential(request: Request) -> tuple[Optional[str], bool]:
    """Return (credential, came_from_query). Query parameter wins over the header."""
    query_token = (request.query_params.get(TOKEN_QUERY_PARAM) or "").strip()
    if query_token:
        return query_token, True
    header = (request.headers.get("authorization") or "").strip()
    if header[:7].lower() == "bearer ":
        header = header[7:].strip()
    return (header or None), False


def _wants_html(request: Request) -> bool:
    return "text/html" in (request.headers.get("accept") or "")


class AuthGateMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        registry: BootstrapTokenRegistry,
        verifiers: VerifierChain,
        templates: Jinja2Templates,
        session_ttl_seconds: int,
        public_prefixes: Iterable[str] = PUBLIC_PREFIXES,
        public_paths: Iterable[str] = PUBLIC_PATHS,
    ) -> None:
        super().__init__(app)
        self.registry = registry
        self.verifiers = verifiers
        self.templates = templates
        self.session_ttl_seconds = session_ttl_seconds
        self.public_prefixes = tuple(public_prefixes)
        self.public_paths = frozenset(public_paths)

    def is_public(self, request: Request) -> bool:
        if request.method in PROBE_METHODS:
            return True
        path = request.url.path
        return path in self.public_paths or path.startswith(self.public_prefixes)

    async def dispatch(self, request: Request, call_next):
        if self.is_public(request):
            return await call_next(request)

        state = session_state(request)
        if state == "active":
            request.state.user = SESSION_IDENTITY
            return await call_next(request)

        credential, from_query = extract_credential(request)
        if not credential:
            if state == "expired":
                return self._reject(request, self._session_expired())
            return self._reject(
                request,
                AuthenticationError(401, "Token não fornecido", "Cabeçalho Authorization ausente"),
            )

        if self.registry.redeem(credential):
            start_session(request, self.session_ttl_seconds)
            request.state.user = SESSION_IDENTITY
            logger.info("Sessao criada a partir de token temporario")
            if from_query:
                url = request.url.remove_query_params(TOKEN_QUERY_PARAM)
                target = url.path + (f"?{url.query}" if url.query else "")
                return RedirectResponse(target or "/", status_code=303)
            return await call_next(request)

        if self.registry.looks_like_token(credential):
            return self._reject(
                request,
                AuthenticationError(
                    401,
                    "Link de acesso expirado",
                    f"O link de acesso vale por {self.registry.ttl_seconds} segundos e pode ser usado uma única vez.",
                ),
                credential,
            )

        outcome = self.verifiers.verify(credential)
        if outcome.accepted:
            request.state.user = outcome.identity
            logger.debug("Autenticado como %s", outcome.identity.username)
            return await call_next(request)
        return self._reject(
            request,
            AuthenticationError(
                outcome.status_code,
                "Token inválido ou expirado",
                "Faça login novamente no sistema central",
                details=outcome.reason,
            ),
            credential,
        )

    def _session_expired(self) -> AuthenticationError:
        hours = max(1, self.session_ttl_seconds // 3600)
        return AuthenticationError(
            401,
            "Sessão expirada",
            f"Sua sessão expirou após {hours} horas. Faça login novamente pelo portal principal.",
        )

    def _reject(self, request: Request, err: AuthenticationError, credential: str | None = None) -> Response:
        logger.info(
            "Acesso bloqueado %s %s (%s) %s",
            request.method,
            request.url.path,
            err.error,
            mask_token(credential),
        )
        if _wants_html(request):
            return self.templates.TemplateResponse(
                request,
                "acesso_negado.html",
                {
                    "error": err.error,
                    "message": err.message,
                    "token_ttl_seconds": self.registry.ttl_seconds,
                    "session_hours": max(1, self.session_ttl_seconds // 3600),
                },
                status_code=err.status_code,
            )
        return JSONResponse(err.to_dict(), status_code=err.status_code)
