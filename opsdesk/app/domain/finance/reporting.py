"""
Finance reporting queries.

Read-only views over settlements and transactions, bucketed by fiscal
day. Independent reads are issued concurrently and joined before the
result is assembled.
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional

from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.exceptions import NotFoundError
from opsdesk.app.db.store import Ordering, QueryFilter, RecordStore
from opsdesk.app.domain.finance.fiscal_window import (
    FiscalSelector, FiscalWindow, classify_fiscal_day, compute_fiscal_window
)
from opsdesk.app.domain.lookups import order_ids_matching, technician_ids_matching
from opsdesk.app.domain.pagination import Page
from opsdesk.app.models.finance_enums import SettlementStatus, TransactionStatus, TransactionType
from opsdesk.app.models.settlement import OrderSettlement
from opsdesk.app.models.settlement_transaction import SettlementTransaction
from opsdesk.app.schemas.finance import (
    FinanceDayStats, FiscalWindowResponse, PendingOverview, SettlementListFilters, SettlementResponse
)
from opsdesk.app.schemas.transactions import TransactionListFilters, TransactionResponse, TransactionStats


def window_filters(window: FiscalWindow, field: str = "created_at") -> List[QueryFilter]:
    return [QueryFilter(field, "gte", window.start_utc), QueryFilter(field, "lt", window.end_utc)]


def fiscal_window_response(selector: FiscalSelector, window: FiscalWindow) -> FiscalWindowResponse:
    return FiscalWindowResponse(
        selector=selector,
        business_date=window.business_date.isoformat(),
        **window.as_iso(),
    )


class FinanceReporting:

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    async def day_stats(self, selector: FiscalSelector = FiscalSelector.CURRENT) -> FinanceDayStats:
        """Counts and amounts of settlements created within one fiscal day."""
        selector = FiscalSelector.parse(selector)
        window = compute_fiscal_window(selector, self._clock())
        in_window = window_filters(window)

        def with_status(status: SettlementStatus) -> List[QueryFilter]:
            return in_window + [QueryFilter("settlement_status", "eq", status)]

        results = await asyncio.gather(
            self._store.count(OrderSettlement, in_window),
            self._store.count(OrderSettlement, with_status(SettlementStatus.PENDING)),
            self._store.count(OrderSettlement, with_status(SettlementStatus.SETTLED)),
            self._store.count(OrderSettlement, with_status(SettlementStatus.REJECTED)),
            self._store.sum(OrderSettlement, "platform_should_get", in_window),
            self._store.sum(OrderSettlement, "actual_paid_amount", in_window),
        )
        total, pending, settled, rejected, should_get, actual_paid = [r.unwrap() for r in results]

        return FinanceDayStats(
            window=fiscal_window_response(selector, window),
            total_count=total,
            pending_count=pending,
            settled_count=settled,
            rejected_count=rejected,
            platform_should_get_total=round(should_get, 2),
            actual_paid_total=round(actual_paid, 2),
        )

    async def pending_overview(self) -> PendingOverview:
        """Pending settlements split by fiscal-day age, plus pending transactions."""
        now = self._clock()
        today = compute_fiscal_window(FiscalSelector.CURRENT, now)
        yesterday = compute_fiscal_window(FiscalSelector.PREVIOUS, now)
        pending = [QueryFilter("settlement_status", "eq", SettlementStatus.PENDING)]

        results = await asyncio.gather(
            self._store.count(OrderSettlement, pending),
            self._store.count(OrderSettlement, pending + [QueryFilter("created_at", "gte", today.start_utc)]),
            self._store.count(OrderSettlement, pending + window_filters(yesterday)),
            self._store.count(OrderSettlement, pending + [QueryFilter("created_at", "lt", yesterday.start_utc)]),
            self._store.count(SettlementTransaction, [QueryFilter("status", "eq", TransactionStatus.PENDING)]),
        )
        total, today_count, yesterday_count, older_count, transactions = [r.unwrap() for r in results]

        return PendingOverview(
            pending_settlements_count=total,
            today_pending_count=today_count,
            yesterday_pending_count=yesterday_count,
            older_pending_count=older_count,
            pending_transactions_count=transactions,
        )

    async def transaction_stats(self) -> TransactionStats:
        today = compute_fiscal_window(FiscalSelector.CURRENT, self._clock())
        confirmed_today = [QueryFilter("status", "eq", TransactionStatus.CONFIRMED)] + window_filters(today, "confirmed_at")

        def of_type(kind: TransactionType) -> List[QueryFilter]:
            return confirmed_today + [QueryFilter("transaction_type", "eq", kind)]

        results = await asyncio.gather(
            self._store.count(SettlementTransaction, [QueryFilter("status", "eq", TransactionStatus.PENDING)]),
            self._store.count(SettlementTransaction, confirmed_today),
            self._store.sum(SettlementTransaction, "amount", of_type(TransactionType.SETTLEMENT)),
            self._store.sum(SettlementTransaction, "amount", of_type(TransactionType.WITHDRAWAL)),
        )
        pending, confirmed, settled_amount, withdrawn_amount = [r.unwrap() for r in results]

        return TransactionStats(
            pending_count=pending,
            today_confirmed_count=confirmed,
            today_settlement_amount=round(settled_amount, 2),
            today_withdrawal_amount=round(withdrawn_amount, 2),
        )

    async def list_settlements(self, filters: SettlementListFilters) -> Page[SettlementResponse]:
        now = self._clock()
        conditions: List[QueryFilter] = []

        if filters.status:
            conditions.append(QueryFilter("settlement_status", "eq", filters.status))
        if filters.technician_id:
            conditions.append(QueryFilter("technician_id", "eq", filters.technician_id))
        if filters.platform_collected is not None:
            op = "gt" if filters.platform_collected else "eq"
            conditions.append(QueryFilter("customer_paid_to_platform", op, 0))

        order_ids = await order_ids_matching(self._store, filters.order_number)
        if order_ids is not None:
            if not order_ids:
                return Page(items=[], total=0, page=filters.page, page_size=filters.page_size)
            conditions.append(QueryFilter("order_id", "in", order_ids))

        if filters.fiscal_day:
            conditions.extend(window_filters(compute_fiscal_window(filters.fiscal_day, now)))
        else:
            if filters.date_from:
                conditions.append(QueryFilter("created_at", "gte", filters.date_from))
            if filters.date_to:
                conditions.append(QueryFilter("created_at", "lte", filters.date_to))

        if filters.amount_min is not None:
            conditions.append(QueryFilter("platform_should_get", "gte", filters.amount_min))
        if filters.amount_max is not None:
            conditions.append(QueryFilter("platform_should_get", "lte", filters.amount_max))

        descending = filters.sort_order == "desc"
        page = Page(items=[], total=0, page=filters.page, page_size=filters.page_size)
        total, rows = await asyncio.gather(
            self._store.count(OrderSettlement, conditions),
            self._store.query(
                OrderSettlement,
                conditions,
                order=[Ordering(filters.sort_by, descending), Ordering("id", descending)],
                offset=page.offset,
                limit=filters.page_size,
            ),
        )
        page.total = total.unwrap()
        page.items = [self._settlement_response(row, now) for row in rows.unwrap()]
        return page

    async def get_settlement(self, settlement_id: int) -> SettlementResponse:
        settlement = (await self._store.get(OrderSettlement, settlement_id)).unwrap()
        if settlement is None:
            raise NotFoundError("Settlement", settlement_id)
        return self._settlement_response(settlement, self._clock())

    async def list_transactions(self, filters: TransactionListFilters) -> Page[TransactionResponse]:
        conditions: List[QueryFilter] = []
        if filters.transaction_type:
            conditions.append(QueryFilter("transaction_type", "eq", filters.transaction_type))
        if filters.status:
            conditions.append(QueryFilter("status", "eq", filters.status))

        technician_ids = await technician_ids_matching(self._store, filters.search, filters.city_id)
        if technician_ids is not None:
            if not technician_ids:
                return Page(items=[], total=0, page=filters.page, page_size=filters.page_size)
            conditions.append(QueryFilter("technician_id", "in", technician_ids))

        page = Page(items=[], total=0, page=filters.page, page_size=filters.page_size)
        # status values sort pending > confirmed > cancelled, so descending puts pending first
        total, rows = await asyncio.gather(
            self._store.count(SettlementTransaction, conditions),
            self._store.query(
                SettlementTransaction,
                conditions,
                order=[Ordering("status", True), Ordering("created_at", True), Ordering("id", True)],
                offset=page.offset,
                limit=filters.page_size,
            ),
        )
        page.total = total.unwrap()
        page.items = [TransactionResponse.model_validate(row) for row in rows.unwrap()]
        return page

    @staticmethod
    def _settlement_response(row: OrderSettlement, now: datetime) -> SettlementResponse:
        response = SettlementResponse.model_validate(row)
        response.fiscal_day = classify_fiscal_day(row.created_at, now)
        return response

    def window(self, selector: Optional[FiscalSelector] = None) -> FiscalWindowResponse:
        selector = FiscalSelector.parse(selector or FiscalSelector.CURRENT)
        return fiscal_window_response(selector, compute_fiscal_window(selector, self._clock()))
