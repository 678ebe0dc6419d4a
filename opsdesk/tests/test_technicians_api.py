"""
Integration tests for technician profiles, live status and cooldowns.
"""

import pytest
from datetime import timedelta
from sqlalchemy import select

from opsdesk.app.core.clock import as_utc, utcnow
from opsdesk.app.models.audit_log import AuditLog
from opsdesk.app.models.enums import TechnicianStatus
from opsdesk.app.models.technician import Technician, TechnicianWorkSession
from opsdesk.app.services.audit import AuditAction
from opsdesk.tests.conftest import auth


async def fetch(db_session, technician_id) -> Technician:
    result = await db_session.execute(
        select(Technician).where(Technician.id == technician_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def test_create_technician(client, superadmin_token, support_token, technician):
    payload = {"technician_number": 1002, "name": "Malee", "username": "malee", "city_id": technician.city_id}

    response = await client.post("/v1/technicians", json=payload, headers=auth(support_token))
    assert response.status_code == 403

    response = await client.post("/v1/technicians", json=payload, headers=auth(superadmin_token))
    assert response.status_code == 201
    data = response.json()
    assert data["technician_number"] == 1002
    assert data["status"] == "offline"
    assert data["max_travel_distance"] == 10


@pytest.mark.parametrize("payload, detail", [
    ({"technician_number": 1001, "name": "Other", "username": "other"}, "Technician number already registered"),
    ({"technician_number": 1003, "name": "Other", "username": "somchai"}, "Username already registered"),
])
async def test_create_technician_duplicates(client, superadmin_token, technician, payload, detail):
    response = await client.post("/v1/technicians", json=payload, headers=auth(superadmin_token))

    assert response.status_code == 400
    assert response.json()["message"] == detail


@pytest.mark.parametrize("payload", [
    {"technician_number": 1004, "name": "X", "username": "ab"},
    {"technician_number": 1004, "name": "X", "username": "bad name"},
    {"technician_number": 1004, "name": "X", "username": "valid", "max_travel_distance": 150},
])
async def test_create_technician_validation(client, superadmin_token, payload):
    response = await client.post("/v1/technicians", json=payload, headers=auth(superadmin_token))

    assert response.status_code == 422


async def test_create_technician_unknown_city(client, superadmin_token):
    response = await client.post(
        "/v1/technicians",
        json={"technician_number": 1005, "name": "Noi", "username": "noi", "city_id": 404},
        headers=auth(superadmin_token)
    )

    assert response.status_code == 404


async def test_update_technician_audits_changes(client, db_session, superadmin_token, technician):
    response = await client.patch(
        f"/v1/technicians/{technician.id}",
        json={"name": "Somchai J.", "max_travel_distance": 25, "username": "somchai"},
        headers=auth(superadmin_token)
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Somchai J."

    logs = (await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.TECHNICIAN_UPDATED)
    )).scalars().all()
    assert len(logs) == 1
    assert logs[0].meta_data["changes"] == {"name": "Somchai J.", "max_travel_distance": 25}
    assert logs[0].meta_data["previous_values"] == {"name": "Somchai", "max_travel_distance": 10}


async def test_update_technician_rejects_empty_and_null(client, superadmin_token, technician):
    response = await client.patch(f"/v1/technicians/{technician.id}", json={}, headers=auth(superadmin_token))
    assert response.status_code == 422

    response = await client.patch(
        f"/v1/technicians/{technician.id}", json={"name": None}, headers=auth(superadmin_token)
    )
    assert response.status_code == 422


async def test_update_technician_number_taken(client, db_session, superadmin_token, technician):
    db_session.add(Technician(technician_number=1010, name="Dao", username="dao"))
    await db_session.commit()

    response = await client.patch(
        f"/v1/technicians/{technician.id}", json={"technician_number": 1010}, headers=auth(superadmin_token)
    )

    assert response.status_code == 400


async def test_status_read_and_update(client, db_session, superadmin_token, support_token, technician):
    response = await client.get(f"/v1/technicians/{technician.id}/status", headers=auth(support_token))
    assert response.status_code == 200
    assert response.json()["status"] == "offline"
    assert response.json()["in_cooldown"] is False

    response = await client.put(
        f"/v1/technicians/{technician.id}/status",
        json={"status": "available", "current_lat": 13.75, "current_lng": 100.5},
        headers=auth(superadmin_token)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "available"

    updated = await fetch(db_session, technician.id)
    assert updated.status == TechnicianStatus.AVAILABLE
    assert updated.current_lat == 13.75


async def test_status_rejects_out_of_range_location(client, superadmin_token, technician):
    response = await client.put(
        f"/v1/technicians/{technician.id}/status",
        json={"status": "available", "current_lat": 95},
        headers=auth(superadmin_token)
    )

    assert response.status_code == 422


async def test_cooldown_forces_offline_until_cancelled(client, db_session, superadmin_token, technician):
    await client.put(
        f"/v1/technicians/{technician.id}/status", json={"status": "available"}, headers=auth(superadmin_token)
    )

    response = await client.post(
        f"/v1/technicians/{technician.id}/cooldown", json={"hours": 2}, headers=auth(superadmin_token)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "offline"
    assert response.json()["in_cooldown"] is True

    cooled = await fetch(db_session, technician.id)
    remaining = as_utc(cooled.cooldown_until) - utcnow()
    assert timedelta(hours=1, minutes=59) < remaining <= timedelta(hours=2)

    response = await client.put(
        f"/v1/technicians/{technician.id}/status", json={"status": "available"}, headers=auth(superadmin_token)
    )
    assert response.status_code == 409

    response = await client.delete(f"/v1/technicians/{technician.id}/cooldown", headers=auth(superadmin_token))
    assert response.status_code == 200
    assert response.json()["cooldown_until"] is None

    response = await client.put(
        f"/v1/technicians/{technician.id}/status", json={"status": "available"}, headers=auth(superadmin_token)
    )
    assert response.status_code == 200


@pytest.mark.parametrize("hours", [0, -1])
async def test_cooldown_requires_positive_hours(client, superadmin_token, technician, hours):
    response = await client.post(
        f"/v1/technicians/{technician.id}/cooldown", json={"hours": hours}, headers=auth(superadmin_token)
    )

    assert response.status_code == 422


async def test_cooldown_is_staff_only(client, support_token, technician):
    response = await client.post(
        f"/v1/technicians/{technician.id}/cooldown", json={"hours": 1}, headers=auth(support_token)
    )

    assert response.status_code == 403


async def test_work_stats(client, db_session, support_token, technician):
    now = utcnow()
    db_session.add_all([
        TechnicianWorkSession(technician_id=technician.id, started_at=now - timedelta(hours=3), ended_at=now - timedelta(hours=1)),
        TechnicianWorkSession(technician_id=technician.id, started_at=now - timedelta(days=10), ended_at=now - timedelta(days=10) + timedelta(hours=4)),
        TechnicianWorkSession(technician_id=technician.id, started_at=now - timedelta(days=40), ended_at=now - timedelta(days=40) + timedelta(hours=5)),
    ])
    await db_session.commit()

    response = await client.get(f"/v1/technicians/{technician.id}/work-stats", headers=auth(support_token))

    assert response.status_code == 200
    data = response.json()
    assert data["week_hours"] == 2.0
    assert data["month_hours"] == 6.0
    assert data["total_hours"] == 11.0


async def test_work_stats_unknown_technician(client, support_token):
    response = await client.get("/v1/technicians/999/work-stats", headers=auth(support_token))

    assert response.status_code == 404
