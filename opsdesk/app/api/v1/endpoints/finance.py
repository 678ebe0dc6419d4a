"""
Finance API Endpoints.

Order settlement review, fiscal-day reporting and the debt classifier.
Every mutation is written to the audit log after it succeeds.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.app.db.session import get_db
from opsdesk.app.db.store import RecordStore, get_store
from opsdesk.app.core.guards import require_role, FINANCE_ROLES
from opsdesk.app.domain.finance.debt import classify_debt
from opsdesk.app.domain.finance.fiscal_window import FiscalSelector
from opsdesk.app.domain.finance.reporting import FinanceReporting
from opsdesk.app.domain.finance.settlement_lifecycle import SettlementLifecycle
from opsdesk.app.models.finance_enums import SettlementStatus
from opsdesk.app.schemas.finance import (
    BatchSettleRequest,
    BatchSettleResponse,
    DebtClassificationResponse,
    FinanceDayStats,
    FiscalWindowResponse,
    PendingOverview,
    SettlementActionResponse,
    SettlementListFilters,
    SettlementListResponse,
    SettlementPaymentUpdate,
    SettlementRejectRequest,
    SettlementResponse,
)
from opsdesk.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/finance", tags=["Finance"])


def get_reporting(store: RecordStore = Depends(get_store)) -> FinanceReporting:
    return FinanceReporting(store)


def get_lifecycle(store: RecordStore = Depends(get_store)) -> SettlementLifecycle:
    return SettlementLifecycle(store)


# ============================================================================
# Fiscal day and debt helpers
# ============================================================================

@router.get("/fiscal-window", response_model=FiscalWindowResponse)
async def get_fiscal_window(
    selector: str = Query("current", description="current | previous | two_periods_back (or today/yesterday/day_before_yesterday)"),
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    reporting: FinanceReporting = Depends(get_reporting)
):
    """UTC bounds of a fiscal day (06:00 to 06:00, UTC+7)."""
    return reporting.window(FiscalSelector.parse(selector))


@router.get("/debt-classification", response_model=DebtClassificationResponse)
async def get_debt_classification(
    balance: float = Query(..., description="Balance owed to the platform"),
    deposit_ceiling: float = Query(..., description="Deposit ceiling"),
    admin: dict = Depends(require_role(FINANCE_ROLES))
):
    result = classify_debt(balance, deposit_ceiling)
    return DebtClassificationResponse(band=result.band, ratio=result.ratio, progress=result.progress)


# ============================================================================
# Reporting
# ============================================================================

@router.get("/stats/day", response_model=FinanceDayStats)
async def get_day_stats(
    selector: str = Query("current", description="Fiscal day to summarise"),
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    reporting: FinanceReporting = Depends(get_reporting)
):
    """Settlement counts and amounts for one fiscal day."""
    return await reporting.day_stats(FiscalSelector.parse(selector))


@router.get("/stats/pending", response_model=PendingOverview)
async def get_pending_overview(
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    reporting: FinanceReporting = Depends(get_reporting)
):
    return await reporting.pending_overview()


# ============================================================================
# Settlements
# ============================================================================

@router.get("/settlements", response_model=SettlementListResponse)
async def list_settlements(
    status: Optional[SettlementStatus] = Query(None, description="Filter by settlement status"),
    technician_id: Optional[int] = Query(None, description="Filter by technician"),
    order_number: Optional[str] = Query(None, description="Order number (partial match)"),
    platform_collected: Optional[bool] = Query(None, description="Customer paid the platform directly"),
    fiscal_day: Optional[str] = Query(None, description="Restrict to one fiscal day; overrides date_from/date_to"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    amount_min: Optional[float] = Query(None, ge=0),
    amount_max: Optional[float] = Query(None, ge=0),
    sort_by: Literal["created_at", "service_fee", "platform_should_get"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    reporting: FinanceReporting = Depends(get_reporting)
):
    filters = SettlementListFilters(
        status=status,
        technician_id=technician_id,
        order_number=order_number,
        platform_collected=platform_collected,
        fiscal_day=FiscalSelector.parse(fiscal_day) if fiscal_day else None,
        date_from=date_from,
        date_to=date_to,
        amount_min=amount_min,
        amount_max=amount_max,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    result = await reporting.list_settlements(filters)
    
    return SettlementListResponse(
        settlements=result.items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages
    )


@router.get("/settlements/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(
    settlement_id: int,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    reporting: FinanceReporting = Depends(get_reporting)
):
    return await reporting.get_settlement(settlement_id)


@router.patch("/settlements/{settlement_id}/payment", response_model=SettlementActionResponse)
async def update_settlement_payment(
    settlement_id: int,
    payload: SettlementPaymentUpdate,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    lifecycle: SettlementLifecycle = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db)
):
    """Edit payment fields of a pending settlement."""
    result = await lifecycle.update_payment(settlement_id, payload, operator_id=admin["user_id"])
    result.unwrap()
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.SETTLEMENT_PAYMENT_UPDATED,
        target_type="settlement",
        target_id=settlement_id,
        metadata={"fields": payload.model_dump(mode="json", exclude_unset=True)}
    )
    
    return SettlementActionResponse(
        settlement_id=settlement_id,
        status=SettlementStatus.PENDING,
        message="Payment details updated"
    )


@router.post("/settlements/batch-settle", response_model=BatchSettleResponse)
async def batch_settle(
    payload: BatchSettleRequest,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    lifecycle: SettlementLifecycle = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db)
):
    """
    Settle many pending settlements at once.
    
    Each record succeeds or fails on its own; the response tallies both.
    """
    outcome = await lifecycle.batch_mark_settled(payload.settlement_ids, operator_id=admin["user_id"])
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.SETTLEMENT_BATCH_SETTLED,
        target_type="settlement",
        metadata={
            "settlement_ids": payload.settlement_ids,
            "succeeded": outcome.succeeded,
            "failed": outcome.failed,
        }
    )
    
    return BatchSettleResponse(
        succeeded=outcome.succeeded,
        failed=outcome.failed,
        failures=outcome.failures,
        message=outcome.summary
    )


@router.post("/settlements/{settlement_id}/settle", response_model=SettlementActionResponse)
async def settle_settlement(
    settlement_id: int,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    lifecycle: SettlementLifecycle = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db)
):
    result = await lifecycle.mark_settled(settlement_id, operator_id=admin["user_id"])
    result.unwrap()
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.SETTLEMENT_SETTLED,
        target_type="settlement",
        target_id=settlement_id
    )
    
    return SettlementActionResponse(
        settlement_id=settlement_id,
        status=SettlementStatus.SETTLED,
        message="Settlement marked as settled"
    )


@router.post("/settlements/{settlement_id}/reject", response_model=SettlementActionResponse)
async def reject_settlement(
    settlement_id: int,
    payload: SettlementRejectRequest,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    lifecycle: SettlementLifecycle = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db)
):
    result = await lifecycle.reject(settlement_id, payload.reason, operator_id=admin["user_id"])
    result.unwrap()
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.SETTLEMENT_REJECTED,
        target_type="settlement",
        target_id=settlement_id,
        metadata={"reason": payload.reason.strip()}
    )
    
    return SettlementActionResponse(
        settlement_id=settlement_id,
        status=SettlementStatus.REJECTED,
        message="Settlement rejected"
    )
