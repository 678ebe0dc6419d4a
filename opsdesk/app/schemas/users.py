"""
Customer account schemas.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Literal


class CustomerResponse(BaseModel):
    id: int
    email: str
    username: str
    display_name: Optional[str] = None
    language_code: Optional[str] = None
    level: int
    credit_score: int
    is_banned: bool
    created_at: datetime
    
    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    customers: List[CustomerResponse]
    total: int
    page: int
    page_size: int


class BanToggleRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=200, description="Reason for the audit log")


class CustomerProfileUpdate(BaseModel):
    """Profile fields to change; omitted fields are left as they are."""
    display_name: Optional[str] = Field(None, min_length=1, max_length=50)
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    language_code: Optional[Literal["en", "zh", "th"]] = None
    level: Optional[int] = Field(None, ge=1, le=10)
    credit_score: Optional[int] = Field(None, ge=0, le=1000)
    is_banned: Optional[bool] = None
    
    @field_validator("username", "level", "credit_score", "is_banned")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class PasswordResetRequest(BaseModel):
    new_password: str = Field(..., min_length=8, max_length=50)
