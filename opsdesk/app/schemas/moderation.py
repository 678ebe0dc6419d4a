"""
Review and report moderation schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from opsdesk.app.models.review import ReviewStatus
from opsdesk.app.models.report import ReportStatus, ReporterRole


class ReviewResponse(BaseModel):
    id: int
    order_id: Optional[int] = None
    customer_id: Optional[int] = None
    technician_id: int
    rating: int
    content: Optional[str] = None
    status: ReviewStatus
    level: int
    reject_reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    
    class Config:
        from_attributes = True


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    total: int
    page: int
    page_size: int


class ReviewRejectRequest(BaseModel):
    reason: str


class ReviewLevelUpdate(BaseModel):
    level: int


class ReportResponse(BaseModel):
    id: int
    reporter_id: int
    reporter_role: ReporterRole
    reported_technician_id: Optional[int] = None
    reported_customer_id: Optional[int] = None
    report_type: str
    description: Optional[str] = None
    status: ReportStatus
    admin_notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    
    class Config:
        from_attributes = True


class ReportListResponse(BaseModel):
    reports: List[ReportResponse]
    total: int
    page: int
    page_size: int


class ReportResolveRequest(BaseModel):
    admin_notes: Optional[str] = Field(None, max_length=2000)


class ReviewStatsResponse(BaseModel):
    pending: int
    today_new: int
    approved: int
    rejected: int


class ReportStatsResponse(BaseModel):
    pending: int
    today_new: int
    technician_reports: int
    customer_reports: int


class ReportPartySummary(BaseModel):
    id: int
    label: str


class ReportDetailResponse(ReportResponse):
    """A report with the parties it concerns; parties may have been deleted."""
    reporter: Optional[ReportPartySummary] = None
    reported_technician: Optional[ReportPartySummary] = None
    reported_customer: Optional[ReportPartySummary] = None
