"""User and authentication models."""

from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, EmailStr, Field

UserRole = Literal["customer", "shop_owner"]


class UserCreate(BaseModel):
    """Schema for user registration."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=2)
    phone: Optional[str] = None


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Schema for user response (excludes password)."""
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    role: str = "customer"
    created_at: datetime


class ShopSummary(BaseModel):
    """The shop owned by the authenticated user, if any."""
    shop_id: str
    shop_name: str


class TokenResponse(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    shop: Optional[ShopSummary] = None
