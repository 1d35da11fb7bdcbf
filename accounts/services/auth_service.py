"""
Authentication and account lifecycle use cases.

Every operation returns ``Ok(value)`` or a tagged ``Failure``; routers decide
how a failure is rendered.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from accounts.core.config import Settings, get_settings
from accounts.core.errors import ErrorKind, Failure, Ok, Result
from accounts.core.mailer import Notifier, SMTPNotifier
from accounts.core.tokens import TokenPair, TokenService, utcnow
from accounts.db.models import Account
from accounts.domain.accounts import AccountView, Role, password_problem
from accounts.repositories.account_repository import AccountRepository

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If email exists, reset instructions have been sent"
REGISTRATION_FIELDS = ("email", "password", "first_name", "last_name", "phone")


@dataclass
class RegisterResult:
    account: AccountView
    tokens: TokenPair
    email_sent: bool


@dataclass
class LoginResult:
    account: AccountView
    tokens: TokenPair


@dataclass
class AuthService:
    """Handles registration, login, token refresh, verification and password reset flows."""

    repository: AccountRepository = field(default_factory=AccountRepository)
    tokens: Optional[TokenService] = None
    notifier: Optional[Notifier] = None
    settings: Settings = field(default_factory=get_settings)
    clock: Callable[[], datetime] = utcnow

    def __post_init__(self):
        if self.tokens is None:
            self.tokens = TokenService(self.settings, self.clock)
        if self.notifier is None:
            self.notifier = SMTPNotifier(self.settings)

    # -------------------------------------- helpers --------------------------------------
    @staticmethod
    def _expired(expires_at: datetime | None, now: datetime) -> bool:
        if expires_at is None:
            return True
        # SQLite hands back naive datetimes; they were stored as UTC.
        normalized = expires_at.astimezone(timezone.utc) if expires_at.tzinfo else expires_at.replace(tzinfo=timezone.utc)
        return normalized <= now

    def _notify(self, send: Callable[[str, str], bool], email: str, token: str, what: str) -> bool:
        try:
            sent = bool(send(email, token))
        except Exception:  # the account change is already committed
            logger.exception("Failed to send %s email to %s", what, email)
            return False
        if not sent:
            logger.warning("%s email to %s was not sent", what.capitalize(), email)
        return sent

    # -------------------------------------- registration --------------------------------------
    def register(self, draft: Mapping[str, Any]) -> Result[RegisterResult]:
        if self.repository.find_by_email(draft.get("email") or ""):
            return Failure(ErrorKind.DUPLICATE_EMAIL)
        fields = {key: draft.get(key) for key in REGISTRATION_FIELDS}
        fields["role"] = Role.USER.value
        fields["email_verification_token"] = uuid.uuid4().hex
        created = self.repository.create(fields)
        if isinstance(created, Failure):
            return created
        account = created.value
        tokens = self.tokens.issue(account.id)
        email_sent = self._notify(
            self.notifier.send_verification, account.email, account.email_verification_token, "verification"
        )
        logger.info("User registered: %s (%s)", account.email, account.id)
        return Ok(RegisterResult(account=AccountView.from_account(account), tokens=tokens, email_sent=email_sent))

    # -------------------------------------- login --------------------------------------
    def login(self, email: str, password: str) -> Result[LoginResult]:
        account = self.repository.find_by_email(email)
        # compare even without an account so both failure paths cost the same
        password_ok = self.repository.compare_password(account, password)
        if account is None or not password_ok:
            return Failure(ErrorKind.INVALID_CREDENTIALS)
        if not account.is_active:
            return Failure(ErrorKind.ACCOUNT_DEACTIVATED)
        if self.repository.hash_is_stale(account):
            self.repository.rehash_password(account.id, password)
        updated = self.repository.update(account.id, {"last_login": self.clock()})
        if isinstance(updated, Failure):
            return Failure(ErrorKind.INVALID_CREDENTIALS)
        logger.info("User logged in: %s", account.email)
        return Ok(LoginResult(account=AccountView.from_account(updated.value), tokens=self.tokens.issue(account.id)))

    def refresh_token(self, refresh_token: str) -> Result[TokenPair]:
        verified = self.tokens.verify_refresh(refresh_token)
        if isinstance(verified, Failure):
            logger.info("Refresh rejected: %s", verified.kind.value)
            return Failure(ErrorKind.INVALID_REFRESH_TOKEN)
        account = self.repository.find_by_id(verified.value)
        if account is None or not account.is_active:
            return Failure(ErrorKind.INVALID_REFRESH_TOKEN)
        return Ok(self.tokens.issue(account.id))

    # -------------------------------------- verification --------------------------------------
    def verify_email(self, token: str) -> Result[str]:
        account = self.repository.find_by_verification_token((token or "").strip())
        if account is None:
            return Failure(ErrorKind.INVALID_VERIFICATION_TOKEN)
        updated = self.repository.update(account.id, {"email_verified": True, "email_verification_token": None})
        if isinstance(updated, Failure):
            return Failure(ErrorKind.INVALID_VERIFICATION_TOKEN)
        logger.info("Email verified: %s", account.email)
        return Ok("Email verified successfully")

    # -------------------------------------- password reset --------------------------------------
    def forgot_password(self, email: str) -> Result[str]:
        account: Optional[Account] = self.repository.find_by_email(email)
        if account is None:
            return Ok(FORGOT_PASSWORD_MESSAGE)
        token = secrets.token_hex(32)
        expires = self.clock() + timedelta(seconds=self.settings.password_reset_ttl_seconds)
        updated = self.repository.update(
            account.id, {"password_reset_token": token, "password_reset_expires": expires}
        )
        if isinstance(updated, Failure):
            return Ok(FORGOT_PASSWORD_MESSAGE)
        self._notify(self.notifier.send_password_reset, account.email, token, "password reset")
        logger.info("Password reset requested: %s", account.email)
        return Ok(FORGOT_PASSWORD_MESSAGE)

    def reset_password(self, token: str, new_password: str) -> Result[str]:
        reason = password_problem(new_password)
        if reason:
            return Failure(ErrorKind.VALIDATION, reason, ({"field": "password", "message": reason},))
        account = self.repository.find_by_reset_token((token or "").strip())
        if account is None or self._expired(account.password_reset_expires, self.clock()):
            return Failure(ErrorKind.INVALID_OR_EXPIRED_TOKEN)
        updated = self.repository.update(
            account.id,
            {"password": new_password, "password_reset_token": None, "password_reset_expires": None},
        )
        if isinstance(updated, Failure):
            return Failure(ErrorKind.INVALID_OR_EXPIRED_TOKEN)
        logger.info("Password reset completed: %s", account.email)
        return Ok("Password reset successful")
