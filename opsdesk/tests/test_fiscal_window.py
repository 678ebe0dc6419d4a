"""
Unit tests for fiscal day windows (06:00-06:00, UTC+7).
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from opsdesk.app.core.exceptions import ValidationError
from opsdesk.app.domain.finance.fiscal_window import (
    FiscalDay, FiscalSelector, classify_fiscal_day, compute_fiscal_window
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_current_window_after_cutover():
    # 2024-01-15 10:00 local
    window = compute_fiscal_window(FiscalSelector.CURRENT, utc(2024, 1, 15, 3, 0))
    
    assert window.start_utc == utc(2024, 1, 14, 23, 0)
    assert window.end_utc == utc(2024, 1, 15, 23, 0)
    assert window.business_date == date(2024, 1, 15)


def test_before_cutover_belongs_to_previous_day():
    # 2024-01-15 05:30 local is still the 14th's books
    window = compute_fiscal_window(FiscalSelector.CURRENT, utc(2024, 1, 14, 22, 30))
    
    assert window.start_utc == utc(2024, 1, 13, 23, 0)
    assert window.end_utc == utc(2024, 1, 14, 23, 0)


def test_cutover_instant_starts_new_day():
    window = compute_fiscal_window(FiscalSelector.CURRENT, utc(2024, 1, 14, 23, 0))
    
    assert window.start_utc == utc(2024, 1, 14, 23, 0)


def test_previous_and_two_back():
    now = utc(2024, 1, 15, 3, 0)
    previous = compute_fiscal_window(FiscalSelector.PREVIOUS, now)
    two_back = compute_fiscal_window(FiscalSelector.TWO_PERIODS_BACK, now)
    
    assert previous.start_utc == utc(2024, 1, 13, 23, 0)
    assert previous.end_utc == utc(2024, 1, 14, 23, 0)
    assert two_back.start_utc == utc(2024, 1, 12, 23, 0)


def test_window_is_half_open_24_hours():
    window = compute_fiscal_window("current", utc(2024, 3, 1, 12, 0))
    
    assert window.end_utc - window.start_utc == timedelta(hours=24)
    assert window.contains(window.start_utc)
    assert not window.contains(window.end_utc)


def test_crosses_month_boundary():
    # 2024-03-01 02:00 local belongs to 2024-02-29 (leap year)
    window = compute_fiscal_window(FiscalSelector.CURRENT, utc(2024, 2, 29, 19, 0))
    
    assert window.business_date == date(2024, 2, 29)
    assert window.start_utc == utc(2024, 2, 28, 23, 0)


def test_naive_now_treated_as_utc():
    aware = compute_fiscal_window(FiscalSelector.CURRENT, utc(2024, 1, 15, 3, 0))
    naive = compute_fiscal_window(FiscalSelector.CURRENT, datetime(2024, 1, 15, 3, 0))
    
    assert aware == naive


def test_iso_rendering():
    window = compute_fiscal_window(FiscalSelector.CURRENT, utc(2024, 1, 15, 3, 0))
    
    assert window.as_iso() == {
        "start_utc": "2024-01-14T23:00:00Z",
        "end_utc": "2024-01-15T23:00:00Z",
    }


def test_selector_aliases():
    assert FiscalSelector.parse("today") == FiscalSelector.CURRENT
    assert FiscalSelector.parse("yesterday") == FiscalSelector.PREVIOUS
    assert FiscalSelector.parse("day_before_yesterday") == FiscalSelector.TWO_PERIODS_BACK
    assert FiscalSelector.parse(" Previous ") == FiscalSelector.PREVIOUS


def test_unknown_selector_rejected():
    with pytest.raises(ValidationError):
        compute_fiscal_window("last_week", utc(2024, 1, 15, 3, 0))


@pytest.mark.parametrize("instant, expected", [
    (utc(2024, 1, 15, 2, 0), FiscalDay.TODAY),
    (utc(2024, 1, 14, 23, 0), FiscalDay.TODAY),
    (utc(2024, 1, 14, 22, 59), FiscalDay.YESTERDAY),
    (utc(2024, 1, 13, 23, 0), FiscalDay.YESTERDAY),
    (utc(2024, 1, 13, 22, 59), FiscalDay.OLDER),
])
def test_classify_fiscal_day(instant, expected):
    assert classify_fiscal_day(instant, utc(2024, 1, 15, 3, 0)) == expected
