"""
Technician settlement accounts.

Balances are trigger-maintained and only read here; each account is
annotated with its debt classification. The deposit ceiling is the one
writable field.
"""

import logging
from typing import List, Optional, Tuple

from opsdesk.app.core.exceptions import AppException, NotFoundError, ValidationError
from opsdesk.app.core.result import Result
from opsdesk.app.db.store import Ordering, QueryFilter, RecordStore
from opsdesk.app.domain.finance.debt import DebtBand, DebtClassification, classify_debt
from opsdesk.app.domain.lookups import technician_ids_matching
from opsdesk.app.domain.pagination import Page, slice_page
from opsdesk.app.models.settlement_account import TechnicianSettlementAccount
from opsdesk.app.schemas.finance import (
    AccountListFilters, DebtClassificationResponse, SettlementAccountResponse, TechnicianSummary
)

logger = logging.getLogger(__name__)


def account_response(account: TechnicianSettlementAccount, debt: DebtClassification) -> SettlementAccountResponse:
    technician = account.technician
    return SettlementAccountResponse(
        id=account.id,
        technician_id=account.technician_id,
        deposit_amount=account.deposit_amount,
        balance=account.balance,
        platform_collected_rmb_balance=account.platform_collected_rmb_balance,
        currency=account.currency,
        updated_at=account.updated_at,
        technician=TechnicianSummary.model_validate(technician) if technician is not None else None,
        debt=DebtClassificationResponse(band=debt.band, ratio=debt.ratio, progress=debt.progress),
    )


class SettlementAccounts:

    def __init__(self, store: RecordStore):
        self._store = store

    async def list_accounts(self, filters: AccountListFilters) -> Tuple[Page[SettlementAccountResponse], dict]:
        """
        List accounts, most indebted first.

        The debt band depends on two columns, so band filtering and the
        per-band counts are computed after the rows are fetched.
        """
        conditions: List[QueryFilter] = []
        if filters.balance_min is not None:
            conditions.append(QueryFilter("balance", "gte", filters.balance_min))
        if filters.balance_max is not None:
            conditions.append(QueryFilter("balance", "lte", filters.balance_max))

        band_counts = {band: 0 for band in DebtBand}
        technician_ids = await technician_ids_matching(self._store, filters.search, filters.city_id)
        if technician_ids is not None:
            if not technician_ids:
                return slice_page([], filters.page, filters.page_size), band_counts
            conditions.append(QueryFilter("technician_id", "in", technician_ids))

        accounts = (await self._store.query(
            TechnicianSettlementAccount,
            conditions,
            order=[Ordering("balance", True), Ordering("id")],
        )).unwrap()

        rows = []
        for account in accounts:
            debt = classify_debt(account.balance, account.deposit_amount)
            band_counts[debt.band] += 1
            if filters.debt_status is None or debt.band == filters.debt_status:
                rows.append(account_response(account, debt))

        return slice_page(rows, filters.page, filters.page_size), band_counts

    async def get_account(self, technician_id: int) -> SettlementAccountResponse:
        account = await self._find(technician_id)
        return account_response(account, classify_debt(account.balance, account.deposit_amount))

    async def update_deposit(self, technician_id: int, deposit_amount: float, *, operator_id: int) -> Result[dict]:
        """Change the deposit ceiling; returns previous and new values."""
        try:
            if deposit_amount is None or deposit_amount < 0:
                raise ValidationError("Deposit amount cannot be negative")
            account = await self._find(technician_id)
            (await self._store.update(
                TechnicianSettlementAccount, account.id, {"deposit_amount": deposit_amount}
            )).unwrap()
        except AppException as exc:
            return Result.failure(exc)

        logger.info(
            "Deposit updated",
            extra={"technician_id": technician_id, "operator_id": operator_id, "deposit_amount": deposit_amount}
        )
        return Result.success({
            "account_id": account.id,
            "previous_deposit": account.deposit_amount,
            "deposit_amount": deposit_amount,
        })

    async def _find(self, technician_id: int) -> TechnicianSettlementAccount:
        accounts = (await self._store.query(
            TechnicianSettlementAccount,
            [QueryFilter("technician_id", "eq", technician_id)],
            limit=1,
        )).unwrap()
        if not accounts:
            raise NotFoundError("Settlement account for technician", technician_id)
        return accounts[0]
