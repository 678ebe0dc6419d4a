"""
Integration tests for the settlement review API.
"""

import pytest
from datetime import timedelta
from sqlalchemy import select

from opsdesk.app.core.clock import utcnow
from opsdesk.app.domain.finance.fiscal_window import FiscalSelector, compute_fiscal_window
from opsdesk.app.models.audit_log import AuditLog
from opsdesk.app.models.finance_enums import SettlementStatus
from opsdesk.app.models.settlement import OrderSettlement
from opsdesk.app.services.audit import AuditAction
from opsdesk.tests.conftest import auth, create_settlement


def today_start():
    return compute_fiscal_window(FiscalSelector.CURRENT, utcnow()).start_utc


def yesterday_start():
    return compute_fiscal_window(FiscalSelector.PREVIOUS, utcnow()).start_utc


@pytest.fixture
async def settlements(db_session, technician):
    return [
        await create_settlement(db_session, technician.id, "ORD-1", created_at=today_start() + timedelta(seconds=1)),
        await create_settlement(db_session, technician.id, "ORD-2", created_at=today_start() + timedelta(seconds=1)),
        await create_settlement(db_session, technician.id, "ORD-3", created_at=yesterday_start() + timedelta(hours=1)),
    ]


async def fetch(db_session, settlement_id) -> OrderSettlement:
    result = await db_session.execute(
        select(OrderSettlement).where(OrderSettlement.id == settlement_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def test_fiscal_window_endpoint(client, finance_token):
    response = await client.get("/v1/finance/fiscal-window", params={"selector": "yesterday"}, headers=auth(finance_token))
    
    assert response.status_code == 200
    data = response.json()
    assert data["selector"] == "previous"
    assert data["start_utc"].endswith("Z")


async def test_unknown_selector_is_validation_error(client, finance_token):
    response = await client.get("/v1/finance/fiscal-window", params={"selector": "someday"}, headers=auth(finance_token))
    
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


async def test_debt_classification_endpoint(client, finance_token):
    response = await client.get(
        "/v1/finance/debt-classification",
        params={"balance": 850, "deposit_ceiling": 1000},
        headers=auth(finance_token)
    )
    
    assert response.status_code == 200
    assert response.json()["band"] == "warning"


async def test_support_cannot_access_finance(client, support_token):
    response = await client.get("/v1/finance/settlements", headers=auth(support_token))
    
    assert response.status_code == 403


async def test_requires_authentication(client):
    response = await client.get("/v1/finance/settlements")
    
    assert response.status_code in (401, 403)


async def test_list_settlements_with_fiscal_day(client, finance_token, settlements):
    response = await client.get("/v1/finance/settlements", headers=auth(finance_token))
    
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    by_id = {item["id"]: item for item in data["settlements"]}
    assert by_id[settlements[0].id]["fiscal_day"] == "today"
    assert by_id[settlements[2].id]["fiscal_day"] == "yesterday"
    assert by_id[settlements[0].id]["order"]["order_number"] == "ORD-1"
    
    response = await client.get(
        "/v1/finance/settlements", params={"fiscal_day": "today"}, headers=auth(finance_token)
    )
    assert response.json()["total"] == 2


async def test_list_settlements_by_order_number(client, finance_token, settlements):
    response = await client.get(
        "/v1/finance/settlements", params={"order_number": "ORD-3"}, headers=auth(finance_token)
    )
    
    assert response.json()["total"] == 1
    assert response.json()["settlements"][0]["id"] == settlements[2].id


async def test_settle_flow(client, db_session, finance_token, finance_admin, settlements):
    settlement_id = settlements[0].id
    
    response = await client.post(f"/v1/finance/settlements/{settlement_id}/settle", headers=auth(finance_token))
    assert response.status_code == 200
    assert response.json()["status"] == "settled"
    
    settled = await fetch(db_session, settlement_id)
    assert settled.settlement_status == SettlementStatus.SETTLED
    assert settled.reviewed_by == finance_admin.id
    assert settled.settled_at is not None
    
    response = await client.post(f"/v1/finance/settlements/{settlement_id}/settle", headers=auth(finance_token))
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"
    
    logs = (await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.SETTLEMENT_SETTLED)
    )).scalars().all()
    assert len(logs) == 1
    assert logs[0].target_id == settlement_id


async def test_reject_requires_reason(client, db_session, finance_token, settlements):
    settlement_id = settlements[1].id
    
    response = await client.post(
        f"/v1/finance/settlements/{settlement_id}/reject", json={"reason": "   "}, headers=auth(finance_token)
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    
    response = await client.post(
        f"/v1/finance/settlements/{settlement_id}/reject", json={"reason": "duplicate order"}, headers=auth(finance_token)
    )
    assert response.status_code == 200
    
    rejected = await fetch(db_session, settlement_id)
    assert rejected.settlement_status == SettlementStatus.REJECTED
    assert rejected.reject_reason == "duplicate order"


async def test_update_payment(client, db_session, finance_token, settlements):
    settlement_id = settlements[0].id
    
    response = await client.patch(
        f"/v1/finance/settlements/{settlement_id}/payment",
        json={"actual_paid_amount": 210.0, "payment_method": "alipay", "payment_notes": "paid by QR"},
        headers=auth(finance_token)
    )
    assert response.status_code == 200
    
    updated = await fetch(db_session, settlement_id)
    assert updated.actual_paid_amount == 210.0
    assert updated.payment_notes == "paid by QR"
    assert updated.settlement_status == SettlementStatus.PENDING


async def test_update_payment_rejects_negative_amount(client, finance_token, settlements):
    response = await client.patch(
        f"/v1/finance/settlements/{settlements[0].id}/payment",
        json={"actual_paid_amount": -5},
        headers=auth(finance_token)
    )
    
    assert response.status_code == 422


async def test_update_payment_rejects_null_ledger_amount(client, db_session, finance_token, settlements):
    response = await client.patch(
        f"/v1/finance/settlements/{settlements[0].id}/payment",
        json={"platform_should_get": None},
        headers=auth(finance_token)
    )

    assert response.status_code == 422
    assert (await fetch(db_session, settlements[0].id)).platform_should_get == 220.0


async def test_settle_missing_settlement(client, finance_token):
    response = await client.post("/v1/finance/settlements/999/settle", headers=auth(finance_token))
    
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


async def test_batch_settle_partial_failure(client, db_session, finance_token, settlements):
    first, second, third = [s.id for s in settlements]
    await client.post(f"/v1/finance/settlements/{first}/settle", headers=auth(finance_token))
    
    response = await client.post(
        "/v1/finance/settlements/batch-settle",
        json={"settlement_ids": [first, second, third, 999]},
        headers=auth(finance_token)
    )
    
    assert response.status_code == 200
    data = response.json()
    assert data["succeeded"] == 2
    assert data["failed"] == 2
    assert data["message"] == "2 succeeded, 2 failed"
    assert set(data["failures"]) == {str(first), "999"}
    assert (await fetch(db_session, third)).settlement_status == SettlementStatus.SETTLED


async def test_batch_settle_requires_ids(client, finance_token):
    response = await client.post(
        "/v1/finance/settlements/batch-settle", json={"settlement_ids": []}, headers=auth(finance_token)
    )
    
    assert response.status_code == 422


async def test_day_stats_and_pending_overview(client, finance_token, settlements):
    await client.post(f"/v1/finance/settlements/{settlements[2].id}/settle", headers=auth(finance_token))
    
    response = await client.get("/v1/finance/stats/day", params={"selector": "previous"}, headers=auth(finance_token))
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_count"] == 1
    assert stats["settled_count"] == 1
    assert stats["platform_should_get_total"] == 220.0
    
    response = await client.get("/v1/finance/stats/day", headers=auth(finance_token))
    assert response.json()["pending_count"] == 2
    
    response = await client.get("/v1/finance/stats/pending", headers=auth(finance_token))
    overview = response.json()
    assert overview["pending_settlements_count"] == 2
    assert overview["today_pending_count"] == 2
    assert overview["yesterday_pending_count"] == 0
