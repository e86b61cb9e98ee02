from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from urban_transit.database import get_db
from urban_transit.auth.dependencies import get_current_active_user, require_admin
from urban_transit.auth.schemas import UserResponse, MessageResponse
from urban_transit.enums import UserRole
from urban_transit.models import User
from urban_transit.pagination import PagedResponse
from urban_transit.users.schemas import (
    UserProfileUpdate, PasswordChangeRequest, UserSummaryResponse,
    RoleUpdateRequest, StatusUpdateRequest, RoleCountResponse
)
from urban_transit.users.service import UserService

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])

# ================================
# Profile
# ================================
@router.get("/me", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_active_user)):
    return current_user

@router.put("/me", response_model=UserResponse)
def update_profile(
    update: UserProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Update the current user's display name"""
    return UserService.update_profile(db, current_user, update.full_name)

@router.put("/me/password", response_model=MessageResponse)
def change_password(
    request: PasswordChangeRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    UserService.change_password(db, current_user, request.current_password, request.new_password)
    return MessageResponse(message="Password changed successfully")

@router.post("/me/deactivate", response_model=MessageResponse)
def deactivate_account(current_user: User = Depends(get_current_active_user), db: Session = Depends(get_db)):
    UserService.deactivate_account(db, current_user)
    return MessageResponse(message="Account deactivated successfully")

# ================================
# Admin
# ================================
@admin_router.get("", response_model=PagedResponse[UserSummaryResponse])
def list_users(page: int = Query(0, ge=0), size: int = Query(20, ge=1), db: Session = Depends(get_db)):
    return UserService.list_users(db, page, size)

@admin_router.get("/search", response_model=PagedResponse[UserSummaryResponse])
def search_users(
    term: str = Query(..., min_length=1),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    db: Session = Depends(get_db)
):
    return UserService.search_users(db, term, page, size)

@admin_router.get("/role/{role}", response_model=List[UserSummaryResponse])
def users_by_role(role: UserRole, db: Session = Depends(get_db)):
    return UserService.users_by_role(db, role)

@admin_router.get("/without-tickets", response_model=PagedResponse[UserSummaryResponse])
def users_without_tickets(page: int = Query(0, ge=0), size: int = Query(20, ge=1), db: Session = Depends(get_db)):
    """Users that never bought a ticket"""
    return UserService.users_without_tickets(db, page, size)

@admin_router.get("/recent", response_model=List[UserSummaryResponse])
def recently_registered(days: int = Query(7, ge=1, le=365), db: Session = Depends(get_db)):
    return UserService.recently_registered(db, days)

@admin_router.get("/count-by-role", response_model=RoleCountResponse)
def count_by_role(db: Session = Depends(get_db)):
    counts = UserService.count_by_role(db)
    return RoleCountResponse(counts=counts, total=sum(counts.values()))

@admin_router.get("/email/{email}", response_model=UserResponse)
def get_user_by_email(email: str, db: Session = Depends(get_db)):
    return UserService.get_user_by_email(db, email)

@admin_router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService.get_user_or_404(db, user_id)

@admin_router.put("/{user_id}/role", response_model=UserResponse)
def update_role(user_id: int, request: RoleUpdateRequest, db: Session = Depends(get_db)):
    return UserService.update_role(db, user_id, request.role)

@admin_router.put("/{user_id}/status", response_model=MessageResponse)
def update_status(user_id: int, request: StatusUpdateRequest, db: Session = Depends(get_db)):
    return MessageResponse(message=UserService.update_status(db, user_id, request.active))

@admin_router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    return MessageResponse(message=UserService.delete_user(db, user_id))
