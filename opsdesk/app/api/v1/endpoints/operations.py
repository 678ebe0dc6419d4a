"""
Operations API Endpoints.

Live order board: filtered order lists with derived abnormality flags and
the board counters.
"""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from opsdesk.app.db.store import RecordStore, get_store
from opsdesk.app.core.guards import require_role, OPERATIONS_ROLES
from opsdesk.app.domain.orders.monitoring import OrderMonitor
from opsdesk.app.models.order_enums import OrderStatus
from opsdesk.app.schemas.orders import (
    MonitoredOrder, MonitoredOrderListResponse, OrderMonitorFilters, OrderStats
)

router = APIRouter(prefix="/operations/orders", tags=["Operations"])


def get_monitor(store: RecordStore = Depends(get_store)) -> OrderMonitor:
    return OrderMonitor(store)


@router.get("", response_model=MonitoredOrderListResponse)
async def list_orders(
    search: Optional[str] = Query(None, description="Order number (partial match)"),
    statuses: Optional[List[OrderStatus]] = Query(None, description="Repeat to filter several statuses"),
    time_range: Literal["today", "3days", "7days", "custom", "all"] = Query("all"),
    date_from: Optional[datetime] = Query(None, description="Used with time_range=custom"),
    date_to: Optional[datetime] = Query(None, description="Used with time_range=custom"),
    only_abnormal: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    monitor: OrderMonitor = Depends(get_monitor)
):
    result = await monitor.list_orders(OrderMonitorFilters(
        search=search,
        statuses=statuses,
        time_range=time_range,
        date_from=date_from,
        date_to=date_to,
        only_abnormal=only_abnormal,
        page=page,
        page_size=page_size,
    ))
    
    return MonitoredOrderListResponse(
        orders=result.items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages
    )


@router.get("/stats", response_model=OrderStats)
async def get_order_stats(
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    monitor: OrderMonitor = Depends(get_monitor)
):
    """Board counters; "today" is the current fiscal day."""
    return await monitor.order_stats()


@router.get("/{order_id}", response_model=MonitoredOrder)
async def get_order(
    order_id: int,
    admin: dict = Depends(require_role(OPERATIONS_ROLES)),
    monitor: OrderMonitor = Depends(get_monitor)
):
    return await monitor.get_order(order_id)
