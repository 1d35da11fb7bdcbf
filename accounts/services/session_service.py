"""Session helpers: bearer/cookie extraction, the authentication gate and auth cookies."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request, Response

from accounts.core.config import Settings
from accounts.core.errors import ErrorKind, Failure, Ok, OperationalError, Result, unwrap
from accounts.core.tokens import TokenPair, TokenService
from accounts.domain.accounts import AccountView, Role
from accounts.repositories.account_repository import AccountRepository

logger = logging.getLogger(__name__)

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"


def extract_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, else the access token cookie."""
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(ACCESS_COOKIE_NAME) or None


class AuthGate:
    """Turns an access token into the live account it belongs to."""

    def __init__(self, tokens: TokenService, repository: AccountRepository):
        self.tokens = tokens
        self.repository = repository

    def resolve(self, token: Optional[str]) -> Result[AccountView]:
        if not token:
            return Failure(ErrorKind.MISSING_TOKEN)
        verified = self.tokens.verify_access(token)
        if isinstance(verified, Failure):
            return verified
        account = self.repository.find_by_id(verified.value)
        if account is None:
            return Failure(ErrorKind.USER_GONE)
        if not account.is_active:
            return Failure(ErrorKind.ACCOUNT_DEACTIVATED, "User account is deactivated")
        return Ok(AccountView.from_account(account))


def _gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def authenticate(request: Request) -> AccountView:
    """Dependency for protected routes; rejects the request when no valid account is attached."""
    account = unwrap(_gate(request).resolve(extract_token(request)))
    request.state.account = account
    return account


def optional_auth(request: Request) -> Optional[AccountView]:
    """Like authenticate, but any failure leaves the request anonymous."""
    token = extract_token(request)
    if not token:
        return None
    result = _gate(request).resolve(token)
    if isinstance(result, Failure):
        logger.debug("Optional auth ignored token: %s", result.kind.value)
        return None
    request.state.account = result.value
    return result.value


def authorize(*roles: Role | str):
    """Build a dependency that only lets accounts with one of ``roles`` through."""
    allowed = frozenset(Role(role).value for role in roles)

    def dependency(account: AccountView = Depends(authenticate)) -> AccountView:
        if account.role not in allowed:
            logger.info("Forbidden: %s (%s) not in %s", account.id, account.role, sorted(allowed))
            raise OperationalError(Failure(ErrorKind.FORBIDDEN))
        return account

    return dependency


def set_auth_cookies(response: Response, tokens: TokenPair, settings: Settings) -> None:
    secure_cookie = settings.is_production
    response.set_cookie(
        ACCESS_COOKIE_NAME,
        tokens.access_token,
        httponly=True,
        secure=secure_cookie,
        samesite="strict",
        max_age=settings.access_token_ttl_seconds,
        path="/",
    )
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        tokens.refresh_token,
        httponly=True,
        secure=secure_cookie,
        samesite="strict",
        max_age=settings.refresh_token_ttl_seconds,
        path="/",
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE_NAME, path="/")
    response.delete_cookie(REFRESH_COOKIE_NAME, path="/")
