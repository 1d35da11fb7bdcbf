"""Request bodies for the auth and user routers."""
from __future__ import annotations

from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from accounts.domain.accounts import (
    EMAIL_MAX,
    PASSWORD_MAX,
    is_valid_email,
    is_valid_name,
    is_valid_phone,
    normalize_email,
    password_problem,
)


def _email(value: str) -> str:
    value = normalize_email(value)
    if not is_valid_email(value):
        raise ValueError("email must be a valid email")
    return value


def _new_password(value: str) -> str:
    reason = password_problem(value)
    if reason:
        raise ValueError(reason)
    return value


def _name(value: str) -> str:
    value = (value or "").strip()
    if not is_valid_name(value):
        raise ValueError("must be between 2 and 50 characters")
    return value


def _phone(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if not is_valid_phone(value):
        raise ValueError("phone must be 10-15 digits")
    return value


Email = Annotated[str, Field(max_length=EMAIL_MAX), AfterValidator(_email)]
NewPassword = Annotated[str, Field(max_length=PASSWORD_MAX), AfterValidator(_new_password)]
Name = Annotated[str, AfterValidator(_name)]
Phone = Annotated[Optional[str], AfterValidator(_phone)]


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RegisterRequest(_Body):
    email: Email
    password: NewPassword
    first_name: Name = Field(alias="firstName")
    last_name: Name = Field(alias="lastName")
    phone: Phone = None

    def to_draft(self) -> dict:
        return {
            "email": self.email,
            "password": self.password,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
        }


class LoginRequest(_Body):
    email: Email
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)


class RefreshTokenRequest(_Body):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class ForgotPasswordRequest(_Body):
    email: Email


class ResetPasswordRequest(_Body):
    token: str = Field(min_length=1)
    password: NewPassword


class UserUpdateRequest(_Body):
    first_name: Optional[Name] = Field(default=None, alias="firstName")
    last_name: Optional[Name] = Field(default=None, alias="lastName")
    phone: Phone = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    def to_patch(self) -> dict:
        """Only the fields the client actually sent; an explicit empty phone clears it."""
        sent = self.model_dump(exclude_unset=True)
        return {key: value for key, value in sent.items() if value is not None or key == "phone"}
