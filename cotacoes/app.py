from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import secrets
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from cotacoes import __version__
from cotacoes.core.auth_gate import AuthGateMiddleware
from cotacoes.core.cache import CacheService
from cotacoes.core.config import Settings, get_settings
from cotacoes.core.errors import ConfigurationError, NotFoundError, PersistenceError
from cotacoes.core.logging import configure_logging
from cotacoes.core.rate_limiter import RateLimiter
from cotacoes.core.security import build_verifier_chain
from cotacoes.repositories import RecordStore, build_record_store
from cotacoes.routers import auth as auth_router
from cotacoes.routers import cotacoes as cotacoes_router
from cotacoes.routers import system as system_router
from cotacoes.services.bootstrap_tokens import BootstrapTokenRegistry, sweep_periodically
from cotacoes.services.cotacao_service import CotacaoService
from cotacoes.services.session_service import SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)

BASE = os.path.dirname(__file__)
TEMPLATES_DIR = os.path.join(BASE, "templates")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, nosniff, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        logger.info("Cotação não encontrada: %s", exc.record_id)
        return JSONResponse({"error": "Cotação não encontrada", "id": exc.record_id}, status_code=404)

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        logger.error("%s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse({"error": exc.action, "details": exc.detail}, status_code=500)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            body = {
                "error": "Rota não encontrada",
                "message": f"A rota {request.method} {request.url.path} não existe",
            }
        else:
            body = {"error": exc.detail}
        return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"error": "Dados inválidos", "details": jsonable_encoder(exc.errors())},
            status_code=422,
        )


def _cors_kwargs(settings: Settings) -> dict:
    kwargs = dict(
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    if settings.cors_origins:
        kwargs["allow_origins"] = list(settings.cors_origins)
    else:
        # reflect any origin, as the browser clients are served from several hosts
        kwargs["allow_origin_regex"] = ".*"
    return kwargs


def create_app(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[RecordStore] = None,
    cache: Optional[CacheService] = None,
    registry: Optional[BootstrapTokenRegistry] = None,
) -> FastAPI:
    """Build the application. Raises ConfigurationError on missing mandatory settings."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if not settings.signing_secret:
        raise ConfigurationError("JWT_SECRET ou API_TOKEN precisa estar configurado")
    if not settings.boot_secret:
        logger.warning("SECRET_TOKEN ausente; emissao de tokens temporarios desabilitada")
    session_secret = settings.session_secret
    if not session_secret:
        logger.warning("SESSION_SECRET ausente; usando segredo aleatorio (sessoes nao sobrevivem a reinicios)")
        session_secret = secrets.token_urlsafe(32)

    repository = repository or build_record_store(settings)
    cache = cache if cache is not None else CacheService.from_settings(settings)
    registry = registry or BootstrapTokenRegistry(settings.bootstrap_token_ttl_seconds)
    templates = Jinja2Templates(directory=TEMPLATES_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(sweep_periodically(registry, settings.bootstrap_sweep_interval_seconds))
        logger.info(
            "API de cotações pronta (banco: %s, cache: %s, token expira em %ss, sessão dura %sh)",
            repository.name,
            "Redis" if cache.enabled else "desabilitado",
            registry.ttl_seconds,
            settings.session_ttl_seconds // 3600,
        )
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            cache.close()

    app = FastAPI(title="API de Cotações de Frete", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.cache = cache
    app.state.bootstrap_tokens = registry
    app.state.rate_limiter = RateLimiter()
    app.state.templates = templates
    app.state.cotacao_service = CotacaoService(repository, cache)

    # the last middleware added runs first: CORS, session, headers, log, auth gate
    app.add_middleware(
        AuthGateMiddleware,
        registry=registry,
        verifiers=build_verifier_chain(settings.jwt_secret, settings.api_token),
        templates=templates,
        session_ttl_seconds=settings.session_ttl_seconds,
    )
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        max_age=settings.session_ttl_seconds,
        same_site="lax",
        https_only=settings.app_env == "prod",
    )
    app.add_middleware(CORSMiddleware, **_cors_kwargs(settings))

    _register_error_handlers(app)

    static_dir = settings.static_dir
    if static_dir and os.path.isdir(static_dir):
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon():
        ico_path = os.path.join(static_dir or "", "favicon.ico")
        if static_dir and os.path.exists(ico_path):
            return FileResponse(ico_path, media_type="image/x-icon")
        return Response(status_code=204)

    app.include_router(system_router.router)
    app.include_router(auth_router.router)
    app.include_router(cotacoes_router.router, prefix="/api/cotacoes")
    app.include_router(cotacoes_router.router, prefix="/cotacoes", include_in_schema=False)
    return app
