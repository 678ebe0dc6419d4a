"""
Settlement account endpoints.

Balances are read-only here; only the deposit ceiling can be changed.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.app.db.session import get_db
from opsdesk.app.db.store import RecordStore, get_store
from opsdesk.app.core.guards import require_role, FINANCE_ROLES
from opsdesk.app.domain.finance.accounts import SettlementAccounts
from opsdesk.app.domain.finance.debt import DebtBand
from opsdesk.app.schemas.finance import (
    AccountListFilters, AccountListResponse, DepositUpdateRequest, SettlementAccountResponse
)
from opsdesk.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/finance/accounts", tags=["Finance"])


def get_accounts(store: RecordStore = Depends(get_store)) -> SettlementAccounts:
    return SettlementAccounts(store)


@router.get("", response_model=AccountListResponse)
async def list_accounts(
    search: Optional[str] = Query(None, description="Technician number or name"),
    city_id: Optional[int] = Query(None),
    debt_status: Optional[DebtBand] = Query(None, description="normal | warning | exceeded"),
    balance_min: Optional[float] = Query(None),
    balance_max: Optional[float] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    accounts: SettlementAccounts = Depends(get_accounts)
):
    """Accounts ordered by balance owed, with per-band counts."""
    result, band_counts = await accounts.list_accounts(AccountListFilters(
        search=search,
        city_id=city_id,
        debt_status=debt_status,
        balance_min=balance_min,
        balance_max=balance_max,
        page=page,
        page_size=page_size,
    ))
    
    return AccountListResponse(
        accounts=result.items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        band_counts=band_counts
    )


@router.get("/{technician_id}", response_model=SettlementAccountResponse)
async def get_account(
    technician_id: int,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    accounts: SettlementAccounts = Depends(get_accounts)
):
    return await accounts.get_account(technician_id)


@router.put("/{technician_id}/deposit", response_model=SettlementAccountResponse)
async def update_deposit(
    technician_id: int,
    payload: DepositUpdateRequest,
    admin: dict = Depends(require_role(FINANCE_ROLES)),
    accounts: SettlementAccounts = Depends(get_accounts),
    db: AsyncSession = Depends(get_db)
):
    change = (await accounts.update_deposit(
        technician_id, payload.deposit_amount, operator_id=admin["user_id"]
    )).unwrap()
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.DEPOSIT_UPDATED,
        target_type="settlement_account",
        target_id=change["account_id"],
        metadata={
            "technician_id": technician_id,
            "previous_deposit": change["previous_deposit"],
            "deposit_amount": change["deposit_amount"],
        }
    )
    
    return await accounts.get_account(technician_id)
