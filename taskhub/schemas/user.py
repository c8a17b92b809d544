"""
User Schemas - Pydantic models for request/response validation
"""

from pydantic import BaseModel, EmailStr, validator
from typing import Optional
from datetime import datetime


class UserRegister(BaseModel):
    """
    Schema for registration - fields are optional here because the account
    rules (models.user.validate_registration) report every problem at once
    """
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None  # Checked only when sent


class UserLogin(BaseModel):
    """Schema for login request"""
    email: str  # Not EmailStr: a malformed email is just a failed login
    password: str


class UserResponse(BaseModel):
    """Schema for user data in responses - excludes password_hash"""
    id: int
    name: str
    email: EmailStr
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True  # Allow creation from SQLAlchemy models


class Identity(BaseModel):
    """Verified caller identity as returned by the user service's verify endpoint"""
    id: int
    email: EmailStr
    name: str
    created_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """Schema for updating own profile - only provided fields change"""
    name: Optional[str] = None
    current_password: Optional[str] = None  # Required when password is set
    password: Optional[str] = None
    password_confirmation: Optional[str] = None

    @validator('name')
    def validate_name(cls, v):
        """Same length rules as registration"""
        if v is not None:
            if not v.strip():
                raise ValueError("Name can't be blank")
            if len(v.strip()) < 2:
                raise ValueError('Name is too short (minimum is 2 characters)')
            if len(v.strip()) > 50:
                raise ValueError('Name is too long (maximum is 50 characters)')
            return v.strip()
        return v

    @validator('password')
    def validate_password(cls, v):
        if v is not None and len(v) < 8:
            raise ValueError('Password is too short (minimum is 8 characters)')
        return v
