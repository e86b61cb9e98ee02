from datetime import datetime, timedelta
from typing import List, Optional

from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from urban_transit.auth.utils import get_password_hash, verify_password
from urban_transit.auth.service import normalize_email
from urban_transit.enums import UserRole
from urban_transit.exceptions import NotFound, InvalidRequest
from urban_transit.models import User, Ticket
from urban_transit.pagination import PagedResponse, paginate
from urban_transit.users.schemas import UserSummaryResponse

def to_summary(user: User) -> UserSummaryResponse:
    return UserSummaryResponse.model_validate(user)

class UserService:
    # ================================
    # Lookups
    # ================================
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()
    
    @staticmethod
    def get_user_or_404(db: Session, user_id: int) -> User:
        user = UserService.get_user_by_id(db, user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user
    
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> User:
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if user is None:
            raise NotFound(f"User with email {email} not found")
        return user
    
    # ================================
    # Profile
    # ================================
    @staticmethod
    def update_profile(db: Session, user: User, full_name: str) -> User:
        user.full_name = full_name.strip()
        db.commit()
        db.refresh(user)
        logger.info("Profile updated for user {}", user.email)
        return user
    
    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password):
            logger.warning("Password change rejected for user {}: wrong current password", user.email)
            raise InvalidRequest("Current password is incorrect")
        if len(new_password) < 6:
            raise InvalidRequest("Password must be at least 6 characters long")
        user.password = get_password_hash(new_password)
        db.commit()
        logger.info("Password changed for user {}", user.email)
    
    @staticmethod
    def deactivate_account(db: Session, user: User) -> None:
        if user.role == UserRole.ADMIN and UserService._active_admin_count(db) <= 1:
            raise InvalidRequest("Cannot deactivate the last admin account")
        user.active = False
        db.commit()
        logger.info("Account deactivated by owner: {}", user.email)
    
    # ================================
    # Admin operations
    # ================================
    @staticmethod
    def list_users(db: Session, page: int, size: int) -> PagedResponse:
        query = db.query(User).order_by(User.created_at.desc(), User.id.desc())
        return paginate(query, page, size, to_summary)
    
    @staticmethod
    def search_users(db: Session, term: str, page: int, size: int) -> PagedResponse:
        """Case-insensitive match on full name or email"""
        pattern = f"%{term.strip().lower()}%"
        query = db.query(User).filter(
            or_(func.lower(User.full_name).like(pattern), func.lower(User.email).like(pattern))
        ).order_by(User.full_name)
        return paginate(query, page, size, to_summary)
    
    @staticmethod
    def users_by_role(db: Session, role: UserRole) -> List[UserSummaryResponse]:
        users = db.query(User).filter(User.role == role).order_by(User.full_name).all()
        return [to_summary(u) for u in users]
    
    @staticmethod
    def update_role(db: Session, user_id: int, role: UserRole) -> User:
        user = UserService.get_user_or_404(db, user_id)
        if user.role == UserRole.ADMIN and role != UserRole.ADMIN and user.active and UserService._active_admin_count(db) <= 1:
            raise InvalidRequest("Cannot change role of the last admin account")
        user.role = role
        db.commit()
        db.refresh(user)
        logger.info("Role of user {} set to {}", user.email, role.value)
        return user
    
    @staticmethod
    def update_status(db: Session, user_id: int, active: bool) -> str:
        user = UserService.get_user_or_404(db, user_id)
        if user.role == UserRole.ADMIN and not active and user.active and UserService._active_admin_count(db) <= 1:
            raise InvalidRequest("Cannot deactivate the last admin account")
        user.active = active
        db.commit()
        logger.info("User {} {}", user.email, "activated" if active else "deactivated")
        return "User activated successfully" if active else "User deactivated successfully"
    
    @staticmethod
    def delete_user(db: Session, user_id: int) -> str:
        """Soft delete: accounts are deactivated, never removed"""
        user = UserService.get_user_or_404(db, user_id)
        if user.role == UserRole.ADMIN and user.active and UserService._active_admin_count(db) <= 1:
            raise InvalidRequest("Cannot delete the last admin account")
        user.active = False
        db.commit()
        logger.info("User {} deleted (deactivated)", user.email)
        return "User deleted successfully"
    
    @staticmethod
    def users_without_tickets(db: Session, page: int, size: int) -> PagedResponse:
        query = db.query(User).filter(~User.tickets.any()).order_by(User.created_at.desc(), User.id.desc())
        return paginate(query, page, size, to_summary)
    
    @staticmethod
    def recently_registered(db: Session, days: int = 7, now: Optional[datetime] = None) -> List[UserSummaryResponse]:
        since = (now or datetime.now()) - timedelta(days=days)
        users = db.query(User).filter(User.created_at >= since).order_by(User.created_at.desc()).all()
        return [to_summary(u) for u in users]
    
    @staticmethod
    def count_by_role(db: Session) -> dict:
        rows = db.query(User.role, func.count(User.id)).group_by(User.role).all()
        counts = {role: 0 for role in UserRole}
        for role, count in rows:
            counts[UserRole(role)] = count
        return counts
    
    # ================================
    # Helpers
    # ================================
    @staticmethod
    def _active_admin_count(db: Session) -> int:
        return db.query(User).filter(User.role == UserRole.ADMIN, User.active.is_(True)).count()
