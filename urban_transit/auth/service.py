from typing import Optional

import jwt
from loguru import logger
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from urban_transit.auth.schemas import RegisterRequest, LoginRequest, AuthResponse, UserResponse
from urban_transit.auth.utils import get_password_hash, verify_password, create_access_token, decode_token
from urban_transit.enums import UserRole
from urban_transit.exceptions import Conflict, PermissionDenied, InvalidRequest
from urban_transit.models import User

def normalize_email(email: str) -> str:
    return email.strip().lower()

class AuthService:
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == normalize_email(email)).first()
    
    @staticmethod
    def is_email_registered(db: Session, email: str) -> bool:
        return AuthService.get_user_by_email(db, email) is not None
    
    @staticmethod
    def issue_token(user: User) -> AuthResponse:
        access_token = create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": user.role.value}
        )
        return AuthResponse(
            access_token=access_token,
            token_type="bearer",
            user=UserResponse.model_validate(user)
        )
    
    @staticmethod
    def register(db: Session, request: RegisterRequest) -> AuthResponse:
        """Create a USER account and log it in"""
        email = normalize_email(request.email)
        if AuthService.is_email_registered(db, email):
            logger.warning("Registration rejected, email already registered: {}", email)
            raise Conflict("Email is already registered")
        
        db_user = User(
            email=email,
            full_name=request.full_name.strip(),
            password=get_password_hash(request.password),
            role=UserRole.USER,
            active=True
        )
        
        try:
            db.add(db_user)
            db.commit()
            db.refresh(db_user)
        except IntegrityError:
            db.rollback()
            raise Conflict("Email is already registered")
        
        logger.info("User registered: {}", db_user.email)
        return AuthService.issue_token(db_user)
    
    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match"""
        user = AuthService.get_user_by_email(db, email)
        if not user:
            return None
        if not verify_password(password, user.password):
            return None
        return user
    
    @staticmethod
    def login(db: Session, request: LoginRequest) -> Optional[AuthResponse]:
        """None on bad credentials; PermissionDenied for deactivated accounts"""
        user = AuthService.authenticate(db, request.email, request.password)
        if user is None:
            logger.warning("Login failed, invalid credentials for {}", request.email)
            return None
        if not user.active:
            logger.warning("Login failed, account deactivated: {}", user.email)
            raise PermissionDenied("Account has been deactivated")
        
        logger.info("User logged in: {}", user.email)
        return AuthService.issue_token(user)
    
    @staticmethod
    def user_from_token(db: Session, token: str) -> Optional[User]:
        try:
            payload = decode_token(token)
            user_id = int(payload.get("sub"))
        except (jwt.PyJWTError, TypeError, ValueError):
            return None
        return db.query(User).filter(User.id == user_id).first()
    
    @staticmethod
    def refresh(db: Session, token: str) -> Optional[AuthResponse]:
        """Issue a fresh token for a still-valid one"""
        user = AuthService.user_from_token(db, token)
        if user is None:
            logger.warning("Token refresh failed, invalid token")
            return None
        if not user.active:
            raise PermissionDenied("Account has been deactivated")
        return AuthService.issue_token(user)
    
    @staticmethod
    def logout(db: Session, token: str) -> str:
        # Tokens are stateless; logout only confirms the token was ours
        user = AuthService.user_from_token(db, token)
        if user is None:
            raise InvalidRequest("Invalid token")
        logger.info("User logged out: {}", user.email)
        return "Logged out successfully"
