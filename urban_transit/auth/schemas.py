from pydantic import BaseModel, EmailStr, validator
from typing import Optional
from datetime import datetime
from urban_transit.enums import UserRole

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    
    @validator('full_name')
    def validate_full_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Full name is required')
        return v.strip()
    
    @validator('password')
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        return v

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class RefreshRequest(BaseModel):
    token: str

class UserResponse(BaseModel):
    id: int
    email: EmailStr
    full_name: str
    role: UserRole
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

class Token(BaseModel):
    access_token: str
    token_type: str

class EmailCheckResponse(BaseModel):
    email: str
    registered: bool

class MessageResponse(BaseModel):
    message: str
