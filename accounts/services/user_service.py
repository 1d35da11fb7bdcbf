"""Administrative user management: listing, lookup, create, update and soft delete."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from accounts.core.errors import ErrorKind, Failure, Ok, Result
from accounts.domain.accounts import AccountView, Role
from accounts.repositories.account_repository import AccountRepository

logger = logging.getLogger(__name__)

ADMIN_EDITABLE_FIELDS = ("first_name", "last_name", "phone", "is_active")


@dataclass
class UserPage:
    users: list[AccountView]
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    def as_dict(self) -> dict:
        return {
            "users": [user.as_dict() for user in self.users],
            "pagination": {
                "currentPage": self.current_page,
                "totalPages": self.total_pages,
                "totalItems": self.total_items,
                "itemsPerPage": self.items_per_page,
            },
        }


@dataclass
class UserService:
    repository: AccountRepository = field(default_factory=AccountRepository)

    def list_users(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        search: str = "",
        is_active: Optional[bool] = None,
    ) -> Result[UserPage]:
        rows, total = self.repository.list_accounts(
            page=page, limit=limit, sort_by=sort_by, sort_order=sort_order, search=search, is_active=is_active
        )
        return Ok(
            UserPage(
                users=[AccountView.from_account(row) for row in rows],
                current_page=page,
                total_pages=self.repository.pages(total, limit),
                total_items=total,
                items_per_page=limit,
            )
        )

    def get_user(self, account_id: str) -> Result[AccountView]:
        account = self.repository.find_by_id(account_id)
        if account is None:
            return Failure(ErrorKind.NOT_FOUND, "User not found")
        return Ok(AccountView.from_account(account))

    def create_user(self, draft: Mapping[str, Any]) -> Result[AccountView]:
        fields = {key: draft.get(key) for key in ("email", "password", "first_name", "last_name", "phone")}
        fields["role"] = Role.USER.value
        fields["email_verification_token"] = uuid.uuid4().hex
        created = self.repository.create(fields)
        if isinstance(created, Failure):
            return created
        logger.info("New user created: %s", created.value.email)
        return Ok(AccountView.from_account(created.value))

    def update_user(self, account_id: str, patch: Mapping[str, Any]) -> Result[AccountView]:
        values = {key: patch[key] for key in ADMIN_EDITABLE_FIELDS if key in patch}
        if not values:
            return self.get_user(account_id)
        updated = self.repository.update(account_id, values)
        if isinstance(updated, Failure):
            return updated
        if "is_active" in values:
            logger.info("User %s %s", account_id, "activated" if values["is_active"] else "deactivated")
        logger.info("User updated: %s", updated.value.email)
        return Ok(AccountView.from_account(updated.value))

    def delete_user(self, account_id: str) -> Result[str]:
        deleted = self.repository.soft_delete(account_id)
        if isinstance(deleted, Failure):
            return deleted
        logger.info("User deleted: %s", account_id)
        return Ok("User deleted successfully")
