"""
Cross-table lookups used to narrow list queries.

The record store filters one table at a time, so searches on a related
table are resolved to an id list first and applied as an `in` filter.
"""

from typing import List, Optional

from opsdesk.app.db.store import QueryFilter, RecordStore
from opsdesk.app.models.order import Order
from opsdesk.app.models.technician import Technician


async def technician_ids_matching(
    store: RecordStore,
    search: Optional[str] = None,
    city_id: Optional[int] = None,
) -> Optional[List[int]]:
    """
    Resolve a technician search to ids.

    A numeric search matches the technician number exactly, anything else
    matches the name. Returns None when there is nothing to filter on.
    """
    search = (search or "").strip()
    if not search and city_id is None:
        return None

    filters = []
    if city_id is not None:
        filters.append(QueryFilter("city_id", "eq", city_id))
    if search.isdigit():
        filters.append(QueryFilter("technician_number", "eq", int(search)))
    elif search:
        filters.append(QueryFilter("name", "ilike", search))

    technicians = (await store.query(Technician, filters)).unwrap()
    return [technician.id for technician in technicians]


async def order_ids_matching(store: RecordStore, order_number: Optional[str]) -> Optional[List[int]]:
    order_number = (order_number or "").strip()
    if not order_number:
        return None
    orders = (await store.query(Order, [QueryFilter("order_number", "ilike", order_number)])).unwrap()
    return [order.id for order in orders]
