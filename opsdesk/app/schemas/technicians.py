"""
Technician management schemas.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List
from opsdesk.app.models.enums import TechnicianStatus

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"


class TechnicianResponse(BaseModel):
    id: int
    technician_number: int
    name: str
    username: str
    city_id: Optional[int] = None
    is_blocked: bool
    is_verified: bool
    status: TechnicianStatus
    max_travel_distance: int
    cooldown_until: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TechnicianListResponse(BaseModel):
    technicians: List[TechnicianResponse]
    total: int
    page: int
    page_size: int


class TechnicianCreate(BaseModel):
    technician_number: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=50)
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    city_id: Optional[int] = None
    max_travel_distance: int = Field(10, ge=1, le=100, description="Service radius in km")
    is_verified: bool = False
    is_blocked: bool = False


class TechnicianUpdate(BaseModel):
    """Profile fields to change; omitted fields are left as they are."""
    technician_number: Optional[int] = Field(None, ge=1)
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    city_id: Optional[int] = None
    max_travel_distance: Optional[int] = Field(None, ge=1, le=100)

    @field_validator("technician_number", "name", "username", "max_travel_distance")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class TechnicianStatusResponse(BaseModel):
    technician_id: int
    status: TechnicianStatus
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    next_available_at: Optional[datetime] = None
    cooldown_until: Optional[datetime] = None
    in_cooldown: bool


class TechnicianStatusUpdate(BaseModel):
    status: TechnicianStatus
    current_lat: Optional[float] = Field(None, ge=-90, le=90)
    current_lng: Optional[float] = Field(None, ge=-180, le=180)
    next_available_at: Optional[datetime] = None


class CooldownRequest(BaseModel):
    hours: float = Field(..., gt=0, description="Cooldown length in hours")


class WorkStatsResponse(BaseModel):
    technician_id: int
    today_hours: float
    week_hours: float
    month_hours: float
    total_hours: float
