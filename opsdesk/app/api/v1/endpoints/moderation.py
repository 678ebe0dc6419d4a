"""
Moderation API Endpoints.

Customer review approval and user report resolution.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from opsdesk.app.db.session import get_db
from opsdesk.app.db.store import RecordStore, get_store
from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from opsdesk.app.core.guards import require_role, OPERATIONS_ROLES
from opsdesk.app.domain.finance.fiscal_window import FiscalSelector, compute_fiscal_window
from opsdesk.app.models.customer import Customer
from opsdesk.app.models.technician import Technician
from opsdesk.app.models.review import Review, ReviewStatus
from opsdesk.app.models.report import Report, ReportStatus, ReporterRole
from opsdesk.app.models.notification import NotificationType
from opsdesk.app.schemas.moderation import (
    ReviewResponse, ReviewListResponse, ReviewRejectRequest, ReviewLevelUpdate,
    ReviewStatsResponse, ReportResponse, ReportListResponse, ReportResolveRequest,
    ReportStatsResponse, ReportDetailResponse, ReportPartySummary
)
from opsdesk.app.services.audit import log_admin_action, AuditAction
from opsdesk.app.services.notification_service import NotificationService

router = APIRouter(prefix="/moderation", tags=["Moderation"])

MIN_REVIEW_LEVEL = 0
MAX_REVIEW_LEVEL = 9


async def _get_review(db: AsyncSession, review_id: int) -> Review:
    review = await db.get(Review, review_id)
    if not review:
        raise NotFoundError("Review", review_id)
    return review


async def _count(db: AsyncSession, model, *conditions) -> int:
    return (await db.execute(select(func.count(model.id)).where(*conditions))).scalar()


async def _party(db: AsyncSession, model, party_id: Optional[int]) -> Optional[ReportPartySummary]:
    if party_id is None:
        return None
    party = await db.get(model, party_id)
    if not party:
        return None
    label = party.username if model is Customer else f"#{party.technician_number} {party.name}"
    return ReportPartySummary(id=party.id, label=label)


# ============================================================================
# Reviews
# ============================================================================

@router.get("/reviews/stats", response_model=ReviewStatsResponse)
async def get_review_stats(
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Review counts by status, plus reviews received this fiscal day."""
    today_start = compute_fiscal_window(FiscalSelector.CURRENT, utcnow()).start_utc
    return ReviewStatsResponse(
        pending=await _count(db, Review, Review.status == ReviewStatus.PENDING),
        today_new=await _count(db, Review, Review.created_at >= today_start),
        approved=await _count(db, Review, Review.status == ReviewStatus.APPROVED),
        rejected=await _count(db, Review, Review.status == ReviewStatus.REJECTED)
    )


@router.get("/reviews", response_model=ReviewListResponse)
async def list_reviews(
    status: Optional[ReviewStatus] = Query(None),
    technician_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    query = select(Review)
    count_query = select(func.count(Review.id))
    
    if status:
        query = query.where(Review.status == status)
        count_query = count_query.where(Review.status == status)
    
    if technician_id:
        query = query.where(Review.technician_id == technician_id)
        count_query = count_query.where(Review.technician_id == technician_id)
    
    total = (await db.execute(count_query)).scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Review.created_at.desc(), Review.id.desc()).offset(offset).limit(page_size)
    )
    
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/reviews/{review_id}/approve", response_model=ReviewResponse)
async def approve_review(
    review_id: int,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    review = await _get_review(db, review_id)
    
    if review.status == ReviewStatus.APPROVED:
        raise InvalidStateError("Review is already approved", current_state=review.status)
    if review.status == ReviewStatus.REJECTED:
        raise InvalidStateError("Cannot approve a rejected review", current_state=review.status)
    
    review.status = ReviewStatus.APPROVED
    review.reviewed_by = admin["user_id"]
    review.reviewed_at = utcnow()
    await db.commit()
    await db.refresh(review)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.REVIEW_APPROVED,
        target_type="review",
        target_id=review.id
    )
    
    return ReviewResponse.model_validate(review)


@router.post("/reviews/{review_id}/reject", response_model=ReviewResponse)
async def reject_review(
    review_id: int,
    payload: ReviewRejectRequest,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    reason = payload.reason.strip()
    if not reason:
        raise ValidationError("A reject reason is required")
    
    review = await _get_review(db, review_id)
    if review.status != ReviewStatus.PENDING:
        raise InvalidStateError(f"Review is already {review.status.value}", current_state=review.status)
    
    review.status = ReviewStatus.REJECTED
    review.reject_reason = reason
    review.reviewed_by = admin["user_id"]
    review.reviewed_at = utcnow()
    await db.commit()
    await db.refresh(review)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.REVIEW_REJECTED,
        target_type="review",
        target_id=review.id,
        metadata={"reason": reason}
    )
    
    return ReviewResponse.model_validate(review)


@router.patch("/reviews/{review_id}/level", response_model=ReviewResponse)
async def update_review_level(
    review_id: int,
    payload: ReviewLevelUpdate,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Set the display weight of a review (0-9)."""
    if not MIN_REVIEW_LEVEL <= payload.level <= MAX_REVIEW_LEVEL:
        raise ValidationError(
            f"Review level must be between {MIN_REVIEW_LEVEL} and {MAX_REVIEW_LEVEL}",
            details={"level": payload.level}
        )
    
    review = await _get_review(db, review_id)
    previous = review.level
    review.level = payload.level
    await db.commit()
    await db.refresh(review)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.REVIEW_LEVEL_CHANGED,
        target_type="review",
        target_id=review.id,
        metadata={"previous_level": previous, "level": payload.level}
    )
    
    return ReviewResponse.model_validate(review)


# ============================================================================
# Reports
# ============================================================================

@router.get("/reports", response_model=ReportListResponse)
async def list_reports(
    status: Optional[ReportStatus] = Query(None),
    reporter_role: Optional[ReporterRole] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    query = select(Report)
    count_query = select(func.count(Report.id))
    
    if status:
        query = query.where(Report.status == status)
        count_query = count_query.where(Report.status == status)
    
    if reporter_role:
        query = query.where(Report.reporter_role == reporter_role)
        count_query = count_query.where(Report.reporter_role == reporter_role)
    
    total = (await db.execute(count_query)).scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Report.created_at.desc(), Report.id.desc()).offset(offset).limit(page_size)
    )
    
    return ReportListResponse(
        reports=[ReportResponse.model_validate(r) for r in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/reports/stats", response_model=ReportStatsResponse)
async def get_report_stats(
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    today_start = compute_fiscal_window(FiscalSelector.CURRENT, utcnow()).start_utc
    return ReportStatsResponse(
        pending=await _count(db, Report, Report.status == ReportStatus.PENDING),
        today_new=await _count(db, Report, Report.created_at >= today_start),
        technician_reports=await _count(db, Report, Report.reporter_role == ReporterRole.TECHNICIAN),
        customer_reports=await _count(db, Report, Report.reporter_role == ReporterRole.CUSTOMER)
    )


@router.get("/reports/{report_id}", response_model=ReportDetailResponse)
async def get_report(
    report_id: int,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """A single report with the reporter and reported parties resolved to labels."""
    report = await db.get(Report, report_id)
    if not report:
        raise NotFoundError("Report", report_id)
    
    reporter_model = Customer if report.reporter_role == ReporterRole.CUSTOMER else Technician
    detail = ReportDetailResponse.model_validate(report)
    detail.reporter = await _party(db, reporter_model, report.reporter_id)
    detail.reported_technician = await _party(db, Technician, report.reported_technician_id)
    detail.reported_customer = await _party(db, Customer, report.reported_customer_id)
    return detail


@router.post("/reports/{report_id}/resolve", response_model=ReportResponse)
async def resolve_report(
    report_id: int,
    payload: ReportResolveRequest,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    db: AsyncSession = Depends(get_db),
    store: RecordStore = Depends(get_store)
):
    """
    Mark a report resolved.
    
    A customer reporter is notified when the resolution carries notes.
    """
    report = await db.get(Report, report_id)
    if not report:
        raise NotFoundError("Report", report_id)
    if report.status != ReportStatus.PENDING:
        raise InvalidStateError("Report is already resolved", current_state=report.status)
    
    notes = (payload.admin_notes or "").strip() or None
    report.status = ReportStatus.RESOLVED
    report.admin_notes = notes
    report.reviewed_by = admin["user_id"]
    report.reviewed_at = utcnow()
    await db.commit()
    await db.refresh(report)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.REPORT_RESOLVED,
        target_type="report",
        target_id=report.id,
        metadata={"admin_notes": notes}
    )
    
    if notes and report.reporter_role == ReporterRole.CUSTOMER:
        await NotificationService.notify_customer(
            store,
            report.reporter_id,
            title="Your report has been handled",
            message=notes,
            type=NotificationType.REPORT_UPDATE,
            metadata={"report_id": report.id}
        )
    
    return ReportResponse.model_validate(report)
