"""
Error taxonomy and result types shared by the store, services and routers.

Services return ``Ok(value)`` or ``Failure(kind, message)`` instead of raising.
Only the HTTP boundary turns a Failure into an ``OperationalError`` so FastAPI
can short-circuit the request; ``accounts.app`` renders it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    DUPLICATE_EMAIL = "DuplicateEmail"
    INVALID_CREDENTIALS = "InvalidCredentials"
    ACCOUNT_DEACTIVATED = "AccountDeactivated"
    MISSING_TOKEN = "MissingToken"
    INVALID_TOKEN = "InvalidToken"
    TOKEN_EXPIRED = "TokenExpired"
    USER_GONE = "UserGone"
    INVALID_REFRESH_TOKEN = "InvalidRefreshToken"
    INVALID_OR_EXPIRED_TOKEN = "InvalidOrExpiredToken"
    INVALID_VERIFICATION_TOKEN = "InvalidVerificationToken"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    TOO_MANY_REQUESTS = "TooManyRequests"
    INTERNAL = "InternalError"


_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.DUPLICATE_EMAIL: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.ACCOUNT_DEACTIVATED: 401,
    ErrorKind.MISSING_TOKEN: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.USER_GONE: 401,
    ErrorKind.INVALID_REFRESH_TOKEN: 401,
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: 400,
    ErrorKind.INVALID_VERIFICATION_TOKEN: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.TOO_MANY_REQUESTS: 429,
    ErrorKind.INTERNAL: 500,
}

_DEFAULT_MESSAGES = {
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.DUPLICATE_EMAIL: "User with this email already exists",
    ErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorKind.ACCOUNT_DEACTIVATED: "Account is deactivated",
    ErrorKind.MISSING_TOKEN: "Access token required",
    ErrorKind.INVALID_TOKEN: "Invalid token",
    ErrorKind.TOKEN_EXPIRED: "Token expired",
    ErrorKind.USER_GONE: "User no longer exists",
    ErrorKind.INVALID_REFRESH_TOKEN: "Invalid refresh token",
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: "Invalid or expired reset token",
    ErrorKind.INVALID_VERIFICATION_TOKEN: "Invalid verification token",
    ErrorKind.FORBIDDEN: "Insufficient permissions",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.TOO_MANY_REQUESTS: "Too many requests, please try again later",
    ErrorKind.INTERNAL: "Internal server error",
}


def status_for(kind: ErrorKind) -> int:
    return _STATUS[kind]


@dataclass(frozen=True)
class Failure:
    """Tagged, expected failure of an operation."""

    kind: ErrorKind
    message: str = ""
    details: tuple = field(default=(), compare=False)

    def __post_init__(self):
        if not self.message:
            object.__setattr__(self, "message", _DEFAULT_MESSAGES[self.kind])

    @property
    def status_code(self) -> int:
        return _STATUS[self.kind]


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


Result = Union[Ok[T], Failure]


class OperationalError(Exception):
    """Carries a Failure across the FastAPI dependency/route boundary."""

    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure


def unwrap(result: Result[T]) -> T:
    """Return the Ok value or raise the Failure as an OperationalError."""
    if isinstance(result, Failure):
        raise OperationalError(result)
    return result.value
