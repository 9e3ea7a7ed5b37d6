"""
User-related Pydantic schemas.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    """Base user schema."""
    username: str = Field(..., min_length=3, max_length=255)
    email: EmailStr | None = None
    full_name: str = Field("", max_length=255)


class UserCreate(UserBase):
    """Schema for creating a new user."""
    password: str = Field(..., min_length=8)


class UserRead(UserBase):
    """Schema for reading user data."""
    email: str | None = None
    id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class Token(BaseModel):
    """JWT token response schema."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    """Login request schema; ``login`` is a username or an email."""
    login: str
    password: str


class RefreshRequest(BaseModel):
    """Token refresh request schema."""
    refresh_token: str
