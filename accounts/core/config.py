"""
Configuration helpers for the accounts service.

Settings are read from environment variables once and cached, so that
routers/services never touch os.environ directly.

APP_ENV defaults to "dev", which also enables the built-in JWT secrets.
Unexpected error text is only returned to clients when EXPOSE_ERROR_DETAILS
is set, whatever the environment.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    frontend_url: str
    jwt_secret: str
    jwt_refresh_secret: str
    access_token_ttl_seconds: int
    refresh_token_ttl_seconds: int
    password_reset_ttl_seconds: int
    password_hash_time_cost: int
    password_hash_memory_cost: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    smtp_timeout_seconds: float
    auth_rate_limit: int
    auth_rate_window_seconds: int
    cors_origins: tuple[str, ...]
    log_level: str
    expose_error_details: bool

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"


DEV_JWT_SECRET = "dev-only-access-token-secret-change-me"
DEV_JWT_REFRESH_SECRET = "dev-only-refresh-token-secret-change-me"


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str | None, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None) -> bool:
        return (value or "").strip().lower() in {"1", "true", "yes", "on"}

    def _list(value: str | None) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    app_env = (os.getenv("APP_ENV") or "dev").lower()
    # prod must provide real secrets; see accounts.app.create_app
    default_access = "" if app_env == "prod" else DEV_JWT_SECRET
    default_refresh = "" if app_env == "prod" else DEV_JWT_REFRESH_SECRET

    return Settings(
        app_env=app_env,
        database_url=os.getenv("DATABASE_URL", "sqlite:///./accounts.db"),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
        jwt_secret=os.getenv("JWT_SECRET", default_access),
        jwt_refresh_secret=os.getenv("JWT_REFRESH_SECRET", default_refresh),
        access_token_ttl_seconds=_int(os.getenv("ACCESS_TOKEN_TTL_SECONDS"), 7 * 24 * 3600),
        refresh_token_ttl_seconds=_int(os.getenv("REFRESH_TOKEN_TTL_SECONDS"), 30 * 24 * 3600),
        password_reset_ttl_seconds=_int(os.getenv("PASSWORD_RESET_TTL_SECONDS"), 600),
        password_hash_time_cost=_int(os.getenv("PASSWORD_HASH_TIME_COST"), 3),
        password_hash_memory_cost=_int(os.getenv("PASSWORD_HASH_MEMORY_COST"), 65536),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT"), 587),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        smtp_timeout_seconds=float(_int(os.getenv("SMTP_TIMEOUT_SECONDS"), 10)),
        auth_rate_limit=_int(os.getenv("AUTH_RATE_LIMIT"), 5),
        auth_rate_window_seconds=_int(os.getenv("AUTH_RATE_WINDOW_SECONDS"), 900),
        cors_origins=_list(os.getenv("CORS_ORIGINS")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        expose_error_details=_bool(os.getenv("EXPOSE_ERROR_DETAILS")),
    )
