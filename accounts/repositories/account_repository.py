"""Credential store: account persistence backed by SQLAlchemy."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Mapping, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounts.core.errors import ErrorKind, Failure, Ok, Result
from accounts.core.security import hash_password, needs_rehash, verify_password
from accounts.db.models import Account
from accounts.db.session import get_session
from accounts.domain.accounts import Role, field_problems, normalize_email

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "phone",
        "is_active",
        "email_verified",
        "email_verification_token",
        "password",
        "password_reset_token",
        "password_reset_expires",
        "last_login",
        "role",
    }
)

SORTABLE_FIELDS = {
    "createdAt": Account.created_at,
    "updatedAt": Account.updated_at,
    "email": Account.email,
    "firstName": Account.first_name,
    "lastName": Account.last_name,
    "lastLogin": Account.last_login,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_name(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class AccountRepository:
    """CRUD helpers wrapping the SQLAlchemy session; only live (not deleted) rows are visible."""

    def __init__(self, session_factory: Callable[[], ContextManager[Session]] = get_session):
        self._session = session_factory

    def _live(self):
        return select(Account).where(Account.deleted_at.is_(None))

    # -------------------------- lookups --------------------------
    def find_by_id(self, account_id: str) -> Optional[Account]:
        if not account_id:
            return None
        with self._session() as session:
            stmt = self._live().where(Account.id == account_id)
            return session.execute(stmt).scalar_one_or_none()

    def find_by_email(self, email: str) -> Optional[Account]:
        value = normalize_email(email)
        if not value:
            return None
        with self._session() as session:
            stmt = self._live().where(Account.email == value)
            return session.execute(stmt).scalar_one_or_none()

    def find_by_verification_token(self, token: str) -> Optional[Account]:
        if not token:
            return None
        with self._session() as session:
            stmt = self._live().where(Account.email_verification_token == token)
            return session.execute(stmt).scalar_one_or_none()

    def find_by_reset_token(self, token: str) -> Optional[Account]:
        """Match on the token only; callers re-check ``password_reset_expires``."""
        if not token:
            return None
        with self._session() as session:
            stmt = self._live().where(Account.password_reset_token == token)
            return session.execute(stmt).scalar_one_or_none()

    def list_accounts(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        search: str = "",
        is_active: Optional[bool] = None,
    ) -> tuple[list[Account], int]:
        stmt = self._live()
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Account.first_name).like(pattern),
                    func.lower(Account.last_name).like(pattern),
                    Account.email.like(pattern),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Account.is_active == is_active)
        column = SORTABLE_FIELDS.get(sort_by, Account.created_at)
        order = column.asc() if (sort_order or "").lower() == "asc" else column.desc()
        page = max(1, page)
        limit = max(1, limit)
        with self._session() as session:
            total = session.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
            rows = session.execute(stmt.order_by(order, Account.id).offset((page - 1) * limit).limit(limit)).scalars().all()
        return list(rows), int(total)

    @staticmethod
    def pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    # -------------------------- writes --------------------------
    def create(self, draft: Mapping[str, Any]) -> Result[Account]:
        problems = field_problems(draft)
        if problems:
            return Failure(ErrorKind.VALIDATION, "Validation failed", tuple(problems))
        email = normalize_email(draft["email"])
        if self.find_by_email(email):
            return Failure(ErrorKind.DUPLICATE_EMAIL)
        now = _utcnow()
        account = Account(
            email=email,
            password_hash=hash_password(draft["password"]),
            first_name=_clean_name(draft["first_name"]),
            last_name=_clean_name(draft["last_name"]),
            phone=draft.get("phone") or None,
            is_active=draft.get("is_active", True),
            email_verified=bool(draft.get("email_verified", False)),
            email_verification_token=draft.get("email_verification_token"),
            role=draft.get("role") or Role.USER.value,
            created_at=now,
            updated_at=now,
        )
        with self._session() as session:
            session.add(account)
            try:
                session.commit()
            except IntegrityError:
                # a concurrent insert won the unique index
                session.rollback()
                logger.info("Duplicate email rejected by store: %s", email)
                return Failure(ErrorKind.DUPLICATE_EMAIL)
            session.refresh(account)
        return Ok(account)

    def update(self, account_id: str, patch: Mapping[str, Any]) -> Result[Account]:
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"fields cannot be updated: {sorted(unknown)}")
        problems = field_problems(patch, partial=True)
        if problems:
            return Failure(ErrorKind.VALIDATION, "Validation failed", tuple(problems))
        values = {key: _clean_name(value) for key, value in patch.items() if key != "password"}
        if "phone" in values and not values["phone"]:
            values["phone"] = None
        if patch.get("password"):
            values["password_hash"] = hash_password(patch["password"])
        return self._apply(account_id, values)

    def rehash_password(self, account_id: str, password: str) -> Result[Account]:
        """Store a fresh hash of an already accepted password (cost parameters changed)."""
        return self._apply(account_id, {"password_hash": hash_password(password)})

    def _apply(self, account_id: str, values: Mapping[str, Any]) -> Result[Account]:
        with self._session() as session:
            stmt = self._live().where(Account.id == account_id)
            account = session.execute(stmt).scalar_one_or_none()
            if account is None:
                return Failure(ErrorKind.NOT_FOUND, "User not found")
            for key, value in values.items():
                setattr(account, key, value)
            account.updated_at = _utcnow()
            session.commit()
            session.refresh(account)
            return Ok(account)

    def soft_delete(self, account_id: str) -> Result[None]:
        with self._session() as session:
            stmt = self._live().where(Account.id == account_id)
            account = session.execute(stmt).scalar_one_or_none()
            if account is None:
                return Failure(ErrorKind.NOT_FOUND, "User not found")
            now = _utcnow()
            account.deleted_at = now
            account.updated_at = now
            session.commit()
        return Ok(None)

    # -------------------------- credentials --------------------------
    @staticmethod
    def compare_password(account: Optional[Account], candidate: str) -> bool:
        return verify_password(candidate or "", account.password_hash if account else None)

    @staticmethod
    def hash_is_stale(account: Account) -> bool:
        return needs_rehash(account.password_hash)
