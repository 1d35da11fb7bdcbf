"""Domain helpers for account fields, roles and the public account view."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
PHONE_PATTERN = re.compile(r"[0-9]{10,15}")
PASSWORD_PATTERN = re.compile(r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&]).+")
NAME_MIN, NAME_MAX = 2, 50
PASSWORD_MIN, PASSWORD_MAX = 8, 128
EMAIL_MAX = 255


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = (Role.ADMIN, Role.SUPER_ADMIN)


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def is_valid_email(value: str | None) -> bool:
    if not value or len(value) > EMAIL_MAX:
        return False
    return bool(EMAIL_PATTERN.fullmatch(value))


def is_valid_phone(value: str | None) -> bool:
    return bool(value) and bool(PHONE_PATTERN.fullmatch(value))


def is_valid_name(value: str | None) -> bool:
    return NAME_MIN <= len((value or "").strip()) <= NAME_MAX


def password_problem(value: str | None) -> Optional[str]:
    """Return why a new password is rejected, or None when it is acceptable."""
    value = value or ""
    if not (PASSWORD_MIN <= len(value) <= PASSWORD_MAX):
        return f"Password must be between {PASSWORD_MIN} and {PASSWORD_MAX} characters"
    if not PASSWORD_PATTERN.match(value):
        return "Password must contain at least one uppercase, lowercase, number, and special character"
    return None


def field_problems(fields: Mapping[str, Any], *, partial: bool = False) -> list[dict]:
    """
    Validate the storable account fields of a draft or patch.

    With ``partial`` only the keys present are checked; otherwise email,
    password, first_name and last_name are required.
    """
    problems: list[dict] = []

    def check(key: str, ok: bool, message: str) -> None:
        if ok:
            return
        problems.append({"field": key, "message": message})

    required = () if partial else ("email", "password", "first_name", "last_name")
    for key in required:
        if fields.get(key) in (None, ""):
            problems.append({"field": key, "message": f"{key} is required"})
    if fields.get("email"):
        check("email", is_valid_email(normalize_email(fields["email"])), "email must be a valid email")
    if fields.get("password"):
        reason = password_problem(fields["password"])
        check("password", reason is None, reason or "")
    for key in ("first_name", "last_name"):
        if key in fields and fields[key] is not None:
            check(key, is_valid_name(fields[key]), f"{key} must be {NAME_MIN}-{NAME_MAX} characters")
    if fields.get("phone"):
        check("phone", is_valid_phone(fields["phone"]), "phone must be 10-15 digits")
    if fields.get("role") is not None:
        check("role", fields["role"] in {r.value for r in Role}, "role is not recognised")
    return problems


@dataclass(frozen=True)
class AccountView:
    """Public representation of an account; holds no hash and no token."""

    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str]
    is_active: bool
    email_verified: bool
    last_login: Optional[datetime]
    role: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_account(cls, account: Any) -> "AccountView":
        return cls(
            id=account.id,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            phone=account.phone,
            is_active=bool(account.is_active),
            email_verified=bool(account.email_verified),
            last_login=account.last_login,
            role=account.role,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

    def as_dict(self) -> dict:
        def _ts(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "isActive": self.is_active,
            "emailVerified": self.email_verified,
            "lastLogin": _ts(self.last_login),
            "role": self.role,
            "createdAt": _ts(self.created_at),
            "updatedAt": _ts(self.updated_at),
        }
