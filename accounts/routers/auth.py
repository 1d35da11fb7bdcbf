from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from accounts.core.errors import ErrorKind, Failure, OperationalError, unwrap
from accounts.core.rate_limiter import auth_rate_limit
from accounts.domain.accounts import AccountView
from accounts.routers.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from accounts.services.auth_service import AuthService
from accounts.services.session_service import (
    REFRESH_COOKIE_NAME,
    authenticate,
    clear_auth_cookies,
    optional_auth,
    set_auth_cookies,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _success(message: str | None = None, **data) -> dict:
    body: dict = {"status": "success"}
    if message:
        body["message"] = message
    if data:
        body["data"] = data
    return body


@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(auth_rate_limit)])
def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    result = unwrap(service.register(body.to_draft()))
    return _success(
        "Registration successful. Please check your email for verification.",
        user=result.account.as_dict(),
        tokens=result.tokens.as_dict(),
        emailSent=result.email_sent,
    )


@router.post("/login", dependencies=[Depends(auth_rate_limit)])
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    result = unwrap(service.login(body.email, body.password))
    set_auth_cookies(response, result.tokens, request.app.state.settings)
    return _success("Login successful", user=result.account.as_dict(), tokens=result.tokens.as_dict())


@router.post("/logout")
def logout(response: Response, account: Optional[AccountView] = Depends(optional_auth)):
    # tokens are stateless: a copied refresh token stays valid until it expires
    clear_auth_cookies(response)
    if account:
        logger.info("User logged out: %s", account.email)
    return _success("Logout successful")


@router.post("/refresh-token")
def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    service: AuthService = Depends(get_auth_service),
):
    token = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        raise OperationalError(Failure(ErrorKind.MISSING_TOKEN, "Refresh token required"))
    tokens = unwrap(service.refresh_token(token))
    set_auth_cookies(response, tokens, request.app.state.settings)
    return _success("Token refreshed successfully", tokens=tokens.as_dict())


@router.post("/forgot-password", dependencies=[Depends(auth_rate_limit)])
def forgot_password(body: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return _success(unwrap(service.forgot_password(body.email)))


@router.post("/reset-password", dependencies=[Depends(auth_rate_limit)])
def reset_password(body: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return _success(unwrap(service.reset_password(body.token, body.password)))


@router.get("/verify-email/{token}")
def verify_email(token: str, service: AuthService = Depends(get_auth_service)):
    return _success(unwrap(service.verify_email(token)))


@router.get("/profile")
def profile(account: AccountView = Depends(authenticate)):
    return _success(user=account.as_dict())
