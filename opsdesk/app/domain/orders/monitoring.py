"""
Order monitoring.

Lists in-flight and recent orders with their derived abnormality flag,
and summarises the operations board counters.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, List

from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.exceptions import NotFoundError, ValidationError
from opsdesk.app.db.store import Ordering, QueryFilter, RecordStore
from opsdesk.app.domain.finance.fiscal_window import FiscalSelector, compute_fiscal_window
from opsdesk.app.domain.finance.reporting import window_filters
from opsdesk.app.domain.orders.abnormality import PENDING_CONFIRMATION_LIMIT, detect_abnormal
from opsdesk.app.domain.pagination import Page, slice_page
from opsdesk.app.models.order import Order
from opsdesk.app.models.order_enums import ACTIVE_ORDER_STATUSES, OrderStatus
from opsdesk.app.schemas.orders import AbnormalityResponse, MonitoredOrder, OrderMonitorFilters, OrderStats

RANGE_DAYS = {"3days": 3, "7days": 7}
ORDER_NEWEST_FIRST = [Ordering("created_at", True), Ordering("id", True)]


def monitored(order: Order, now: datetime) -> MonitoredOrder:
    item = MonitoredOrder.model_validate(order)
    result = detect_abnormal(order, now)
    item.abnormality = AbnormalityResponse(
        flag=result.flag, reason=result.reason, kind=result.kind, minutes=result.minutes
    )
    return item


class OrderMonitor:

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    async def list_orders(self, filters: OrderMonitorFilters) -> Page[MonitoredOrder]:
        now = self._clock()
        conditions = self._conditions(filters, now)

        if filters.only_abnormal:
            # abnormality is derived, so filter before paginating
            orders = (await self._store.query(Order, conditions, order=ORDER_NEWEST_FIRST)).unwrap()
            flagged = [item for item in (monitored(o, now) for o in orders) if item.abnormality.flag]
            return slice_page(flagged, filters.page, filters.page_size)

        page = Page(items=[], total=0, page=filters.page, page_size=filters.page_size)
        total, orders = await asyncio.gather(
            self._store.count(Order, conditions),
            self._store.query(Order, conditions, order=ORDER_NEWEST_FIRST, offset=page.offset, limit=filters.page_size),
        )
        page.total = total.unwrap()
        page.items = [monitored(order, now) for order in orders.unwrap()]
        return page

    async def get_order(self, order_id: int) -> MonitoredOrder:
        order = (await self._store.get(Order, order_id)).unwrap()
        if order is None:
            raise NotFoundError("Order", order_id)
        return monitored(order, self._clock())

    async def order_stats(self) -> OrderStats:
        now = self._clock()
        today = compute_fiscal_window(FiscalSelector.CURRENT, now)

        def status_is(status: OrderStatus) -> List[QueryFilter]:
            return [QueryFilter("status", "eq", status)]

        results = await asyncio.gather(
            self._store.count(Order, status_is(OrderStatus.PENDING)),
            self._store.count(Order, status_is(OrderStatus.PENDING) + [
                QueryFilter("created_at", "lt", now - PENDING_CONFIRMATION_LIMIT)
            ]),
            self._store.query(Order, [QueryFilter("status", "in", list(ACTIVE_ORDER_STATUSES))]),
            self._store.count(Order, status_is(OrderStatus.COMPLETED) + window_filters(today, "completed_at")),
            self._store.count(Order, status_is(OrderStatus.CANCELLED) + window_filters(today, "cancelled_at")),
        )
        pending, overtime, active, completed, cancelled = [r.unwrap() for r in results]

        return OrderStats(
            pending=pending,
            pending_overtime=overtime,
            active=len(active),
            active_abnormal=sum(1 for order in active if detect_abnormal(order, now).flag),
            today_completed=completed,
            today_cancelled=cancelled,
        )

    @staticmethod
    def _conditions(filters: OrderMonitorFilters, now: datetime) -> List[QueryFilter]:
        conditions: List[QueryFilter] = []
        if filters.statuses:
            conditions.append(QueryFilter("status", "in", filters.statuses))
        if filters.search and filters.search.strip():
            conditions.append(QueryFilter("order_number", "ilike", filters.search.strip()))

        if filters.time_range == "today":
            today = compute_fiscal_window(FiscalSelector.CURRENT, now)
            conditions.append(QueryFilter("created_at", "gte", today.start_utc))
        elif filters.time_range in RANGE_DAYS:
            conditions.append(QueryFilter("created_at", "gte", now - timedelta(days=RANGE_DAYS[filters.time_range])))
        elif filters.time_range == "custom":
            if not filters.date_from and not filters.date_to:
                raise ValidationError("A custom time range needs date_from or date_to")
            if filters.date_from:
                conditions.append(QueryFilter("created_at", "gte", filters.date_from))
            if filters.date_to:
                conditions.append(QueryFilter("created_at", "lte", filters.date_to))
        return conditions
