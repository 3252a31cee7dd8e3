"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication and user endpoints.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional


class LoginRequest(BaseModel):
    """Schema for POST /auth/login."""
    email: str = Field(..., min_length=1, description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class RegisterRequest(BaseModel):
    """
    Schema for POST /auth/register.

    Without role_id the user gets the basic "usuario" role.
    """
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    name: str = Field(..., min_length=1, max_length=200)
    role_id: Optional[int] = Field(default=None, description="Role to assign (defaults to 'usuario')")


class RoleRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: List[str]
    created_at: datetime

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """User as returned by the API; the password hash never leaves the server."""
    id: int
    email: str
    name: str
    is_active: bool
    role: RoleRef
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserProfileResponse(UserResponse):
    """User plus the capability tags granted by their role."""
    permissions: List[str] = []


class TokenResponse(BaseModel):
    """Returned by a successful login."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserProfileResponse


class UserCreate(BaseModel):
    """Schema for POST /users (administrative creation)."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=200)
    role_id: int


class UserUpdate(BaseModel):
    """Schema for PUT /users/{id}; only provided fields change."""
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    role_id: Optional[int] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)


class ProfileUpdate(BaseModel):
    """Schema for PUT /users/profile (self-service)."""
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    password: Optional[str] = Field(None, min_length=6)
