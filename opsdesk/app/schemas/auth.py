"""
Authentication Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from opsdesk.app.models.enums import AdminRole


class AdminLogin(BaseModel):
    """
    Schema for admin login.
    
    Supports login with either username or email.
    """
    username: str = Field(..., description="Username or email")
    password: str = Field(..., description="Password")


class TokenResponse(BaseModel):
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    admin_id: int
    username: str
    role: AdminRole


class AdminProfileResponse(BaseModel):
    id: int
    email: str
    username: str
    display_name: Optional[str] = None
    role: AdminRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True
