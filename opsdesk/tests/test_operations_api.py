"""
Integration tests for the order monitoring board.
"""

import pytest
from datetime import timedelta

from opsdesk.app.core.clock import utcnow
from opsdesk.app.models.order_enums import OrderStatus
from opsdesk.tests.conftest import auth, create_order


@pytest.fixture
async def orders(db_session, technician):
    now = utcnow()
    return {
        "stale": await create_order(
            db_session, "OPS-STALE", status=OrderStatus.PENDING, created_at=now - timedelta(minutes=20)
        ),
        "fresh": await create_order(
            db_session, "OPS-FRESH", status=OrderStatus.PENDING, created_at=now - timedelta(minutes=2)
        ),
        "overrun": await create_order(
            db_session, "OPS-OVERRUN", technician_id=technician.id, status=OrderStatus.IN_SERVICE,
            created_at=now - timedelta(hours=3), service_started_at=now - timedelta(hours=2), service_duration=60
        ),
        "old": await create_order(
            db_session, "OPS-OLD", status=OrderStatus.COMPLETED,
            created_at=now - timedelta(days=10), completed_at=now - timedelta(days=10)
        ),
    }


async def test_list_orders_flags_abnormal(client, support_token, orders):
    response = await client.get("/v1/operations/orders", headers=auth(support_token))
    
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 4
    by_number = {o["order_number"]: o for o in data["orders"]}
    assert by_number["OPS-STALE"]["abnormality"]["kind"] == "confirmation_timeout"
    assert not by_number["OPS-FRESH"]["abnormality"]["flag"]
    assert by_number["OPS-OVERRUN"]["abnormality"]["kind"] == "service_overrun"
    assert by_number["OPS-OVERRUN"]["technician"]["name"] == "Somchai"


async def test_only_abnormal_filter(client, support_token, orders):
    response = await client.get(
        "/v1/operations/orders", params={"only_abnormal": "true"}, headers=auth(support_token)
    )
    
    numbers = {o["order_number"] for o in response.json()["orders"]}
    assert numbers == {"OPS-STALE", "OPS-OVERRUN"}
    assert response.json()["total"] == 2


async def test_status_and_range_filters(client, support_token, orders):
    response = await client.get(
        "/v1/operations/orders",
        params=[("statuses", "pending"), ("statuses", "in_service"), ("time_range", "7days")],
        headers=auth(support_token)
    )
    assert response.json()["total"] == 3
    
    response = await client.get(
        "/v1/operations/orders", params={"search": "fresh"}, headers=auth(support_token)
    )
    assert [o["order_number"] for o in response.json()["orders"]] == ["OPS-FRESH"]


async def test_custom_range_requires_dates(client, support_token, orders):
    response = await client.get(
        "/v1/operations/orders", params={"time_range": "custom"}, headers=auth(support_token)
    )
    
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


async def test_order_stats(client, support_token, orders):
    response = await client.get("/v1/operations/orders/stats", headers=auth(support_token))
    
    assert response.status_code == 200
    assert response.json() == {
        "pending": 2,
        "pending_overtime": 1,
        "active": 1,
        "active_abnormal": 1,
        "today_completed": 0,
        "today_cancelled": 0,
    }


async def test_order_detail(client, support_token, orders):
    response = await client.get(f"/v1/operations/orders/{orders['overrun'].id}", headers=auth(support_token))
    assert response.status_code == 200
    assert response.json()["abnormality"]["minutes"] == 60
    
    response = await client.get("/v1/operations/orders/424242", headers=auth(support_token))
    assert response.status_code == 404


async def test_finance_role_cannot_monitor_orders(client, finance_token):
    response = await client.get("/v1/operations/orders", headers=auth(finance_token))
    
    assert response.status_code == 403
