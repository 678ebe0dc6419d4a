"""
Settlement and withdrawal request endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.app.db.session import get_db
from opsdesk.app.db.store import RecordStore, get_store
from opsdesk.app.core.guards import require_role, FINANCE_ROLES
from opsdesk.app.domain.finance.reporting import FinanceReporting
from opsdesk.app.domain.finance.transaction_review import TransactionReview
from opsdesk.app.models.finance_enums import TransactionStatus, TransactionType
from opsdesk.app.schemas.transactions import (
    ApproveTransactionRequest,
    RejectTransactionRequest,
    TransactionActionResponse,
    TransactionListFilters,
    TransactionListResponse,
    TransactionStats,
)
from opsdesk.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/finance/transactions", tags=["Finance"])


def get_reporting(store: RecordStore = Depends(get_store)) -> FinanceReporting:
    return FinanceReporting(store)


def get_review(store: RecordStore = Depends(get_store)) -> TransactionReview:
    return TransactionReview(store)


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    transaction_type: Optional[TransactionType] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    city_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Technician number or name"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    reporting: FinanceReporting = Depends(get_reporting)
):
    """Requests with pending ones first, newest first within a status."""
    result = await reporting.list_transactions(TransactionListFilters(
        transaction_type=transaction_type,
        status=status,
        city_id=city_id,
        search=search,
        page=page,
        page_size=page_size,
    ))
    
    return TransactionListResponse(
        transactions=result.items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages
    )


@router.get("/stats", response_model=TransactionStats)
async def get_transaction_stats(
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    reporting: FinanceReporting = Depends(get_reporting)
):
    return await reporting.transaction_stats()


@router.post("/{transaction_id}/approve", response_model=TransactionActionResponse)
async def approve_transaction(
    transaction_id: int,
    payload: Optional[ApproveTransactionRequest] = None,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    review: TransactionReview = Depends(get_review),
    db: AsyncSession = Depends(get_db)
):
    notes = payload.notes if payload else None
    transaction = (await review.approve(transaction_id, operator_id=admin["user_id"], notes=notes)).unwrap()
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.TRANSACTION_APPROVED,
        target_type="settlement_transaction",
        target_id=transaction_id,
        metadata={
            "transaction_type": transaction.transaction_type.value,
            "amount": transaction.amount,
            "technician_id": transaction.technician_id,
        }
    )
    
    return TransactionActionResponse(
        transaction_id=transaction_id,
        status=TransactionStatus.CONFIRMED,
        message="Transaction approved"
    )


@router.post("/{transaction_id}/reject", response_model=TransactionActionResponse)
async def reject_transaction(
    transaction_id: int,
    payload: RejectTransactionRequest,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    review: TransactionReview = Depends(get_review),
    db: AsyncSession = Depends(get_db)
):
    transaction = (await review.reject(transaction_id, payload.reason, operator_id=admin["user_id"])).unwrap()
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.TRANSACTION_REJECTED,
        target_type="settlement_transaction",
        target_id=transaction_id,
        metadata={"reason": payload.reason.strip(), "technician_id": transaction.technician_id}
    )
    
    return TransactionActionResponse(
        transaction_id=transaction_id,
        status=TransactionStatus.CANCELLED,
        message="Transaction rejected"
    )
