from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront_admin.config import settings
from storefront_admin.database import get_db
from storefront_admin.models import UserStatus
from storefront_admin.routes import page_response, unwrap
from storefront_admin.schemas import (
    BulkCreateUsersRequest,
    BulkCreateUsersResponse,
    CreateUserRequest,
    PageResponse,
    UpdateUserRequest,
    UserResponse,
)
from storefront_admin.services import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=PageResponse)
def list_users(
    search: Optional[str] = None,
    status_filter: Optional[UserStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_per_page, ge=1, le=settings.max_per_page),
    db: Session = Depends(get_db),
) -> PageResponse:
    """List users, newest first."""
    filters = {"search": search, "status": status_filter.value if status_filter else None}
    return page_response(UserService(db).list_users(filters, page, per_page), UserResponse)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(request: CreateUserRequest, db: Session = Depends(get_db)) -> UserResponse:
    """Create a user."""
    user = unwrap(UserService(db).create_user(request.model_dump()))
    return UserResponse.model_validate(user)


@router.post("/bulk", response_model=BulkCreateUsersResponse, status_code=status.HTTP_201_CREATED)
def bulk_create_users(request: BulkCreateUsersRequest, db: Session = Depends(get_db)) -> BulkCreateUsersResponse:
    """Create up to 100 active users; one bad row rejects the whole batch."""
    count = unwrap(UserService(db).bulk_create_users([entry.model_dump() for entry in request.users]))
    return BulkCreateUsersResponse(message=f"{count} users created", count=count)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)) -> UserResponse:
    """Get user details."""
    return UserResponse.model_validate(unwrap(UserService(db).get_user(user_id)))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(user_id: int, request: UpdateUserRequest, db: Session = Depends(get_db)) -> UserResponse:
    """Update a user."""
    user = unwrap(UserService(db).update_user(user_id, request.model_dump(exclude_unset=True)))
    return UserResponse.model_validate(user)


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)) -> dict:
    """Delete a user without orders."""
    unwrap(UserService(db).delete_user(user_id))
    return {"message": f"User {user_id} deleted"}


@router.post("/{user_id}/toggle-status", response_model=UserResponse)
def toggle_status(user_id: int, db: Session = Depends(get_db)) -> UserResponse:
    """Flip a user between active and inactive."""
    return UserResponse.model_validate(unwrap(UserService(db).toggle_user_status(user_id)))
