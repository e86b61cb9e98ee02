from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from urban_transit.database import get_db
from urban_transit.auth.schemas import (
    RegisterRequest, LoginRequest, RefreshRequest, AuthResponse, UserResponse,
    Token, EmailCheckResponse, MessageResponse
)
from urban_transit.auth.service import AuthService
from urban_transit.auth.dependencies import get_current_active_user, oauth2_scheme
from urban_transit.models import User

router = APIRouter()

def _invalid_credentials(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_user(request: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user and return an access token"""
    return AuthService.register(db, request)

@router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Log in with email and password"""
    auth = AuthService.login(db, request)
    if auth is None:
        raise _invalid_credentials("Invalid email or password")
    return auth

@router.post("/token", response_model=Token)
def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """OAuth2 password flow, used by the interactive docs"""
    auth = AuthService.login(db, LoginRequest(email=form_data.username, password=form_data.password))
    if auth is None:
        raise _invalid_credentials("Incorrect email or password")
    return Token(access_token=auth.access_token, token_type="bearer")

@router.post("/refresh", response_model=AuthResponse)
def refresh_token(request: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a valid token for a new one"""
    auth = AuthService.refresh(db, request.token)
    if auth is None:
        raise _invalid_credentials("Invalid or expired token")
    return auth

@router.post("/logout", response_model=MessageResponse)
def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    return MessageResponse(message=AuthService.logout(db, token))

@router.get("/check-email", response_model=EmailCheckResponse)
def check_email(email: str = Query(..., min_length=3), db: Session = Depends(get_db)):
    """Check whether an email is already registered"""
    return EmailCheckResponse(email=email, registered=AuthService.is_email_registered(db, email))

@router.get("/me", response_model=UserResponse)
def read_users_me(current_user: User = Depends(get_current_active_user)):
    """Get current user profile"""
    return current_user
