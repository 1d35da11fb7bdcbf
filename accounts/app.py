import logging
from datetime import datetime
from http import HTTPStatus
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from accounts.core.config import Settings, get_settings
from accounts.core.errors import ErrorKind, Failure, OperationalError
from accounts.core.logging import configure_logging
from accounts.core.mailer import Notifier, SMTPNotifier
from accounts.core.tokens import TokenService, utcnow
from accounts.repositories.account_repository import AccountRepository
from accounts.routers import auth as auth_router
from accounts.routers import users as users_router
from accounts.services.auth_service import AuthService
from accounts.services.session_service import AuthGate
from accounts.services.user_service import UserService

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _error_body(failure: Failure) -> dict:
    body = {
        "status": "error" if failure.status_code >= 500 else "fail",
        "error": failure.kind.value,
        "message": failure.message,
    }
    if failure.details:
        body["details"] = list(failure.details)
    return body


def _check_secrets(settings: Settings) -> None:
    if not settings.is_production:
        return
    if not settings.jwt_secret or not settings.jwt_refresh_secret:
        raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must be set in production.")
    if settings.jwt_secret == settings.jwt_refresh_secret:
        raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must differ.")


def _install_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(OperationalError)
    async def operational_error(request: Request, exc: OperationalError):
        return JSONResponse(_error_body(exc.failure), status_code=exc.failure.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        details = []
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            message = str(err.get("msg", "")).removeprefix("Value error, ")
            details.append({"field": ".".join(loc) or "body", "message": message})
        logger.warning("Validation error on %s: %s", request.url.path, details)
        failure = Failure(ErrorKind.VALIDATION, "Validation failed", tuple(details))
        return JSONResponse(_error_body(failure), status_code=failure.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            failure = Failure(ErrorKind.NOT_FOUND, f"Route {request.url.path} not found")
            return JSONResponse(_error_body(failure), status_code=404)
        body = {
            "status": "error" if exc.status_code >= 500 else "fail",
            "error": HTTPStatus(exc.status_code).phrase.replace(" ", ""),
            "message": str(exc.detail),
        }
        return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if settings.expose_error_details else ""
        failure = Failure(ErrorKind.INTERNAL, message)
        return JSONResponse(_error_body(failure), status_code=failure.status_code)


def create_app(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[AccountRepository] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Build the API with its collaborators; tests pass their own repository, notifier or clock."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    _check_secrets(settings)

    repository = repository or AccountRepository()
    tokens = TokenService(settings, clock)
    notifier = notifier or SMTPNotifier(settings)

    app = FastAPI(title="Accounts API", version="1.0.0")
    app.state.settings = settings
    app.state.auth_service = AuthService(
        repository=repository, tokens=tokens, notifier=notifier, settings=settings, clock=clock
    )
    app.state.user_service = UserService(repository=repository)
    app.state.auth_gate = AuthGate(tokens, repository)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.is_production)
    _install_error_handlers(app, settings)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(auth_router.router, prefix=API_PREFIX)
    app.include_router(users_router.router, prefix=API_PREFIX)
    logger.info("Accounts API configured (env=%s)", settings.app_env)
    return app
