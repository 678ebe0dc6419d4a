"""
Order monitoring schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Literal

from opsdesk.app.domain.orders.abnormality import AbnormalityKind
from opsdesk.app.models.order_enums import OrderStatus
from opsdesk.app.schemas.finance import TechnicianSummary


class AbnormalityResponse(BaseModel):
    flag: bool
    reason: Optional[str] = None
    kind: Optional[AbnormalityKind] = None
    minutes: Optional[int] = None


class MonitoredOrder(BaseModel):
    id: int
    order_number: str
    status: OrderStatus
    service_name: Optional[str] = None
    service_duration: int
    total_amount: float
    technician_id: Optional[int] = None
    customer_id: Optional[int] = None
    created_at: datetime
    estimated_arrival_at: Optional[datetime] = None
    service_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    technician: Optional[TechnicianSummary] = None
    abnormality: AbnormalityResponse = AbnormalityResponse(flag=False)

    class Config:
        from_attributes = True


class OrderMonitorFilters(BaseModel):
    search: Optional[str] = None
    statuses: Optional[List[OrderStatus]] = None
    time_range: Literal["today", "3days", "7days", "custom", "all"] = "all"
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    only_abnormal: bool = False
    page: int = Field(1, ge=1)
    page_size: int = Field(50, ge=1, le=200)


class MonitoredOrderListResponse(BaseModel):
    orders: List[MonitoredOrder]
    total: int
    page: int
    page_size: int
    total_pages: int


class OrderStats(BaseModel):
    pending: int
    pending_overtime: int
    active: int
    active_abnormal: int
    today_completed: int
    today_cancelled: int
