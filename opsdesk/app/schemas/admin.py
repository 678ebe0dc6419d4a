"""
Admin API Schema Definitions.

Pydantic schemas for admin management and audit endpoints.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from opsdesk.app.models.enums import AdminRole
from opsdesk.app.schemas.auth import AdminProfileResponse


class AdminCreate(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    display_name: Optional[str] = Field(None, max_length=100)
    role: AdminRole = AdminRole.SUPPORT


class AdminListResponse(BaseModel):
    admins: List[AdminProfileResponse]
    total: int
    page: int
    page_size: int


class AdminActionResponse(BaseModel):
    """Outcome of a single audited admin action."""
    success: bool
    message: str
    target_id: int
    action: str
    audit_log_id: int


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int]
    actor_username: Optional[str]
    action: str
    target_type: Optional[str]
    target_id: Optional[int]
    target_label: Optional[str]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime
    
    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
