from pydantic import BaseModel, EmailStr, validator
from typing import Dict
from urban_transit.enums import UserRole

class UserProfileUpdate(BaseModel):
    full_name: str
    
    @validator('full_name')
    def validate_full_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Full name is required')
        return v.strip()

class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
    
    @validator('new_password')
    def validate_new_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        return v

class UserSummaryResponse(BaseModel):
    id: int
    full_name: str
    email: EmailStr
    role: UserRole
    active: bool
    
    class Config:
        from_attributes = True

class RoleUpdateRequest(BaseModel):
    role: UserRole

class StatusUpdateRequest(BaseModel):
    active: bool

class RoleCountResponse(BaseModel):
    counts: Dict[UserRole, int]
    total: int
