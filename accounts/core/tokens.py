"""Signed access/refresh token pairs (HS256 JWT)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from .config import Settings
from .errors import ErrorKind, Failure, Ok, Result

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def as_dict(self) -> dict:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


class TokenService:
    """
    Issues and verifies token pairs.

    Tokens only carry ``sub`` (account id) and ``exp``. Verification needs the
    secret alone; nothing is looked up or stored, so a refresh token stays
    valid until it expires even after logout.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow):
        if not settings.jwt_secret or not settings.jwt_refresh_secret:
            raise ValueError("JWT secrets must be configured")
        self._access_secret = settings.jwt_secret
        self._refresh_secret = settings.jwt_refresh_secret
        self._access_ttl = timedelta(seconds=settings.access_token_ttl_seconds)
        self._refresh_ttl = timedelta(seconds=settings.refresh_token_ttl_seconds)
        self._clock = clock

    def _sign(self, user_id: str, secret: str, ttl: timedelta) -> str:
        payload = {"sub": str(user_id), "exp": self._clock() + ttl}
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def issue(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self._sign(user_id, self._access_secret, self._access_ttl),
            refresh_token=self._sign(user_id, self._refresh_secret, self._refresh_ttl),
        )

    def _verify(self, token: str, secret: str) -> Result[str]:
        if not token:
            return Failure(ErrorKind.INVALID_TOKEN)
        try:
            # expiry is compared against the service clock below, not the wall clock
            claims = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected token: %s", exc)
            return Failure(ErrorKind.INVALID_TOKEN)
        user_id = claims.get("sub")
        expires = claims.get("exp")
        if not isinstance(user_id, str) or not user_id:
            return Failure(ErrorKind.INVALID_TOKEN)
        if isinstance(expires, bool) or not isinstance(expires, (int, float)):
            return Failure(ErrorKind.INVALID_TOKEN)
        if expires <= self._clock().timestamp():
            return Failure(ErrorKind.TOKEN_EXPIRED)
        return Ok(user_id)

    def verify_access(self, token: str) -> Result[str]:
        return self._verify(token, self._access_secret)

    def verify_refresh(self, token: str) -> Result[str]:
        return self._verify(token, self._refresh_secret)
