from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from accounts.core.errors import unwrap
from accounts.domain.accounts import Role
from accounts.routers.schemas import RegisterRequest, UserUpdateRequest
from accounts.services.session_service import authorize
from accounts.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])

admins = authorize(Role.ADMIN, Role.SUPER_ADMIN)
super_admins = authorize(Role.SUPER_ADMIN)


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


@router.get("", dependencies=[Depends(admins)])
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    search: str = Query("", max_length=100),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    service: UserService = Depends(get_user_service),
):
    result = unwrap(
        service.list_users(
            page=page, limit=limit, sort_by=sort_by, sort_order=sort_order, search=search, is_active=is_active
        )
    )
    return {"status": "success", "data": result.as_dict()}


@router.get("/{user_id}", dependencies=[Depends(admins)])
def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    user = unwrap(service.get_user(user_id))
    return {"status": "success", "data": {"user": user.as_dict()}}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(admins)])
def create_user(body: RegisterRequest, service: UserService = Depends(get_user_service)):
    user = unwrap(service.create_user(body.to_draft()))
    return {"status": "success", "message": "User created successfully", "data": {"user": user.as_dict()}}


@router.put("/{user_id}", dependencies=[Depends(admins)])
def update_user(user_id: str, body: UserUpdateRequest, service: UserService = Depends(get_user_service)):
    user = unwrap(service.update_user(user_id, body.to_patch()))
    return {"status": "success", "message": "User updated successfully", "data": {"user": user.as_dict()}}


@router.delete("/{user_id}", dependencies=[Depends(super_admins)])
def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    return {"status": "success", "message": unwrap(service.delete_user(user_id))}
