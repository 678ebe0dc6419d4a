"""
Settlement lifecycle tests against an in-memory store.
"""

import pytest
from datetime import datetime, timezone

from opsdesk.app.domain.finance.settlement_lifecycle import SettlementLifecycle
from opsdesk.app.models.finance_enums import SettlementStatus
from opsdesk.app.models.settlement import OrderSettlement
from opsdesk.app.core.config import Settings, settings
from opsdesk.tests.fakes import FakeStore, InFlightStore

NOW = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)
ERR_VALIDATION = "ERR_VALIDATION_001"
ERR_STATE = "ERR_STATE_001"
ERR_NOT_FOUND = "ERR_NOT_FOUND_001"
ERR_STORE = "ERR_STORE_001"
OPERATOR = 7


@pytest.fixture
def fake_store():
    store = FakeStore()
    for settlement_id in range(1, 6):
        store.add(OrderSettlement, settlement_id, settlement_status=SettlementStatus.PENDING)
    return store


@pytest.fixture
def lifecycle(fake_store):
    return SettlementLifecycle(fake_store, batch_concurrency=2, clock=lambda: NOW)


def row(store, settlement_id):
    return store.rows[OrderSettlement][settlement_id]


async def test_mark_settled_sets_review_fields(lifecycle, fake_store):
    result = await lifecycle.mark_settled(1, operator_id=OPERATOR)
    
    assert result.ok
    settled = row(fake_store, 1)
    assert settled.settlement_status == SettlementStatus.SETTLED
    assert settled.settled_at == NOW
    assert settled.reviewed_by == OPERATOR
    assert settled.reviewed_at == NOW


async def test_settle_twice_is_invalid_state(lifecycle):
    assert (await lifecycle.mark_settled(1, operator_id=OPERATOR)).ok
    
    second = await lifecycle.mark_settled(1, operator_id=OPERATOR)
    assert not second.ok
    assert second.error_code == ERR_STATE
    assert "settled" in second.error


async def test_reject_records_trimmed_reason(lifecycle, fake_store):
    result = await lifecycle.reject(2, "  wrong amount  ", operator_id=OPERATOR)
    
    assert result.ok
    rejected = row(fake_store, 2)
    assert rejected.settlement_status == SettlementStatus.REJECTED
    assert rejected.reject_reason == "wrong amount"
    assert rejected.rejected_at == NOW


@pytest.mark.parametrize("reason", ["", "   ", None])
async def test_reject_without_reason_never_touches_store(lifecycle, fake_store, reason):
    result = await lifecycle.reject(2, reason, operator_id=OPERATOR)
    
    assert not result.ok
    assert result.error_code == ERR_VALIDATION
    assert fake_store.calls == []


async def test_missing_operator_rejected_before_store(lifecycle, fake_store):
    result = await lifecycle.mark_settled(1, operator_id=None)
    
    assert result.error_code == ERR_VALIDATION
    assert fake_store.calls == []


async def test_reject_after_settle_is_invalid_state(lifecycle, fake_store):
    await lifecycle.mark_settled(3, operator_id=OPERATOR)
    
    result = await lifecycle.reject(3, "late reject", operator_id=OPERATOR)
    assert result.error_code == ERR_STATE
    assert row(fake_store, 3).settlement_status == SettlementStatus.SETTLED


async def test_unknown_settlement_is_not_found(lifecycle):
    result = await lifecycle.mark_settled(99, operator_id=OPERATOR)
    
    assert result.error_code == ERR_NOT_FOUND


async def test_concurrent_transition_surfaces_as_invalid_state(lifecycle, fake_store):
    fake_store.stale_ids.add(4)
    
    result = await lifecycle.mark_settled(4, operator_id=OPERATOR)
    assert result.error_code == ERR_STATE
    assert "another operator" in result.error


async def test_store_failure_is_reported(lifecycle, fake_store):
    fake_store.failing_ids.add(5)
    
    result = await lifecycle.mark_settled(5, operator_id=OPERATOR)
    assert result.error_code == ERR_STORE


async def test_update_payment_keeps_status(lifecycle, fake_store):
    result = await lifecycle.update_payment(
        1, {"actual_paid_amount": 180.5, "payment_method": "cash"}, operator_id=OPERATOR
    )
    
    assert result.ok
    updated = row(fake_store, 1)
    assert updated.actual_paid_amount == 180.5
    assert updated.settlement_status == SettlementStatus.PENDING
    assert fake_store.calls[-1][3] == {"actual_paid_amount": 180.5, "payment_method": "cash"}


async def test_update_payment_on_settled_record(lifecycle, fake_store):
    await lifecycle.mark_settled(1, operator_id=OPERATOR)
    
    result = await lifecycle.update_payment(1, {"notes": "late edit"}, operator_id=OPERATOR)
    assert result.error_code == ERR_STATE


@pytest.mark.parametrize("changes", [
    {},
    {"actual_paid_amount": -1},
    {"payment_method": "cheque"},
    {"platform_should_get": None},
    {"customer_paid_to_platform": None},
])
async def test_update_payment_invalid_fields(lifecycle, fake_store, changes):
    result = await lifecycle.update_payment(1, changes, operator_id=OPERATOR)
    
    assert result.error_code == ERR_VALIDATION
    assert fake_store.calls == []


async def test_batch_tallies_partial_failures(lifecycle, fake_store):
    fake_store.failing_ids.update({2, 4})
    
    outcome = await lifecycle.batch_mark_settled([1, 2, 3, 4, 5], operator_id=OPERATOR)
    
    assert outcome.succeeded == 3
    assert outcome.failed == 2
    assert set(outcome.failures) == {2, 4}
    assert outcome.summary == "3 succeeded, 2 failed"
    for settlement_id in (1, 3, 5):
        assert row(fake_store, settlement_id).settlement_status == SettlementStatus.SETTLED
    assert row(fake_store, 2).settlement_status == SettlementStatus.PENDING


async def test_batch_collapses_duplicate_ids(lifecycle):
    outcome = await lifecycle.batch_mark_settled([1, 1, 2], operator_id=OPERATOR)
    
    assert outcome.succeeded == 2
    assert outcome.failed == 0


async def test_batch_reports_already_settled(lifecycle):
    await lifecycle.mark_settled(1, operator_id=OPERATOR)
    
    outcome = await lifecycle.batch_mark_settled([1, 2, 99], operator_id=OPERATOR)
    assert outcome.succeeded == 1
    assert outcome.failed == 2
    assert "already settled" in outcome.failures[1]


async def test_update_payment_may_clear_optional_fields(lifecycle, fake_store):
    result = await lifecycle.update_payment(1, {"actual_paid_amount": None, "notes": None}, operator_id=OPERATOR)
    
    assert result.ok
    assert fake_store.calls[-1][3] == {"actual_paid_amount": None, "notes": None}


def pending_store(count):
    store = InFlightStore()
    for settlement_id in range(1, count + 1):
        store.add(OrderSettlement, settlement_id, settlement_status=SettlementStatus.PENDING)
    return store


async def test_batch_caps_in_flight_writes():
    store = pending_store(25)
    lifecycle = SettlementLifecycle(store, batch_concurrency=10, clock=lambda: NOW)
    
    outcome = await lifecycle.batch_mark_settled(range(1, 26), operator_id=OPERATOR)
    
    assert outcome.succeeded == 25
    assert store.peak_in_flight == 10
    assert store.in_flight == 0


async def test_batch_chunk_size_defaults_to_settings(monkeypatch):
    monkeypatch.setattr(settings, "batch_settle_concurrency", 4)
    store = pending_store(9)
    lifecycle = SettlementLifecycle(store, clock=lambda: NOW)
    
    outcome = await lifecycle.batch_mark_settled(range(1, 10), operator_id=OPERATOR)
    
    assert outcome.succeeded == 9
    assert store.peak_in_flight == 4


def test_default_batch_concurrency_is_ten():
    assert Settings.model_fields["batch_settle_concurrency"].default == 10
