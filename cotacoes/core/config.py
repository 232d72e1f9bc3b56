"""
Configuration helpers for the cotacoes backend.

Routers and services read a frozen Settings object instead of fetching
os.environ directly. A local .env file is loaded once, before the first read.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    port: int
    log_level: str
    storage_backend: str
    database_url: str
    database_timeout_seconds: int
    json_data_file: str
    jwt_secret: str
    api_token: str
    boot_secret: str
    session_secret: str
    session_ttl_seconds: int
    bootstrap_token_ttl_seconds: int
    bootstrap_sweep_interval_seconds: float
    redis_url: str
    cache_ttl_seconds: int
    cache_timeout_seconds: int
    cors_origins: tuple[str, ...] = ()
    static_dir: str = "public"
    trust_proxy_headers: bool = False

    @property
    def signing_secret(self) -> str:
        """Secret used to verify signed tokens (JWT_SECRET, falling back to API_TOKEN)."""
        return self.jwt_secret or self.api_token

    @property
    def cache_configured(self) -> bool:
        return bool(self.redis_url)


def _int(value: str | None, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _upstash_url() -> str:
    """Build a rediss:// URL out of the Upstash REST credentials, when present."""
    rest_url = (os.getenv("UPSTASH_REDIS_REST_URL") or "").strip()
    token = (os.getenv("UPSTASH_REDIS_REST_TOKEN") or "").strip()
    if not (rest_url and token):
        return ""
    host = rest_url.split("://", 1)[-1].split("/", 1)[0]
    return f"rediss://default:{token}@{host}:6379"


def _csv(value: str | None) -> tuple[str, ...]:
    return tuple(item.strip().rstrip("/") for item in (value or "").split(",") if item.strip())


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    load_dotenv()
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        port=_int(os.getenv("PORT"), 3001),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        storage_backend=(os.getenv("STORAGE_BACKEND") or "sql").strip().lower(),
        database_url=(os.getenv("DATABASE_URL") or "").strip(),
        database_timeout_seconds=_int(os.getenv("DATABASE_TIMEOUT_SECONDS"), 5),
        json_data_file=os.getenv("JSON_DATA_FILE", os.path.join("data", "cotacoes.json")),
        jwt_secret=os.getenv("JWT_SECRET", ""),
        api_token=os.getenv("API_TOKEN", ""),
        boot_secret=os.getenv("SECRET_TOKEN", ""),
        session_secret=os.getenv("SESSION_SECRET", ""),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS"), 8 * 60 * 60),
        bootstrap_token_ttl_seconds=_int(os.getenv("BOOTSTRAP_TOKEN_TTL_SECONDS"), 30),
        bootstrap_sweep_interval_seconds=_int(os.getenv("BOOTSTRAP_SWEEP_INTERVAL_SECONDS"), 60),
        redis_url=(os.getenv("REDIS_URL") or "").strip() or _upstash_url(),
        cache_ttl_seconds=_int(os.getenv("CACHE_TTL_SECONDS"), 300),
        cache_timeout_seconds=_int(os.getenv("CACHE_TIMEOUT_SECONDS"), 3),
        cors_origins=_csv(os.getenv("CORS_ORIGINS")),
        static_dir=os.getenv("STATIC_DIR", "public"),
        trust_proxy_headers=(os.getenv("TRUST_PROXY_HEADERS") or "").strip().lower() in ("1", "true", "yes"),
    )
