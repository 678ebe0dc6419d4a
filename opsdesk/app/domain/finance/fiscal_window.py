"""
Fiscal (accounting) day windows.

The business day runs from 06:00 to 06:00 Bangkok time (fixed UTC+7, no
DST), so activity between midnight and 06:00 local belongs to the
previous day's books. Windows are half-open `[start_utc, end_utc)`.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Dict, Optional, Union

from opsdesk.app.core.clock import as_utc, to_iso_z, utcnow
from opsdesk.app.core.exceptions import ValidationError

FISCAL_UTC_OFFSET = timedelta(hours=7)
FISCAL_TZ = timezone(FISCAL_UTC_OFFSET, name="UTC+07:00")
FISCAL_CUTOVER = time(hour=6)
FISCAL_DAY = timedelta(days=1)


class FiscalSelector(str, enum.Enum):
    CURRENT = "current"
    PREVIOUS = "previous"
    TWO_PERIODS_BACK = "two_periods_back"

    @property
    def days_back(self) -> int:
        return _DAYS_BACK[self]

    @classmethod
    def parse(cls, value: Union["FiscalSelector", str]) -> "FiscalSelector":
        """Accept enum members, their values, or the day-name aliases."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(
                f"Unknown fiscal day selector '{value}'",
                details={"allowed": [s.value for s in cls] + list(_ALIASES)},
            )


_DAYS_BACK = {
    FiscalSelector.CURRENT: 0,
    FiscalSelector.PREVIOUS: 1,
    FiscalSelector.TWO_PERIODS_BACK: 2,
}

_ALIASES = {
    "today": FiscalSelector.CURRENT,
    "yesterday": FiscalSelector.PREVIOUS,
    "day_before_yesterday": FiscalSelector.TWO_PERIODS_BACK,
}


class FiscalDay(str, enum.Enum):
    """Age bucket of a record relative to the current fiscal day."""
    TODAY = "today"
    YESTERDAY = "yesterday"
    OLDER = "older"


@dataclass(frozen=True)
class FiscalWindow:
    start_utc: datetime
    end_utc: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start_utc <= as_utc(instant) < self.end_utc

    @property
    def business_date(self):
        """Local calendar date the window is booked under."""
        return self.start_utc.astimezone(FISCAL_TZ).date()

    def as_iso(self) -> Dict[str, str]:
        return {"start_utc": to_iso_z(self.start_utc), "end_utc": to_iso_z(self.end_utc)}


def compute_fiscal_window(
    selector: Union[FiscalSelector, str] = FiscalSelector.CURRENT,
    now: Optional[datetime] = None,
) -> FiscalWindow:
    """
    Compute the UTC bounds of a fiscal day.

    Args:
        selector: Which fiscal day (current, previous, two periods back)
        now: Reference instant; defaults to the current time

    Returns:
        FiscalWindow spanning exactly 24 hours, starting at 06:00 local
    """
    selector = FiscalSelector.parse(selector)
    local_now = as_utc(now or utcnow()).astimezone(FISCAL_TZ)

    # 06:00:00 exactly already belongs to the new fiscal day
    start_date = local_now.date()
    if local_now.time() < FISCAL_CUTOVER:
        start_date -= FISCAL_DAY
    start_date -= timedelta(days=selector.days_back)

    local_start = datetime.combine(start_date, FISCAL_CUTOVER, tzinfo=FISCAL_TZ)
    start_utc = local_start.astimezone(timezone.utc)
    return FiscalWindow(start_utc=start_utc, end_utc=start_utc + FISCAL_DAY)


def classify_fiscal_day(instant: datetime, now: Optional[datetime] = None) -> FiscalDay:
    """Bucket an instant into today / yesterday / older fiscal days."""
    today = compute_fiscal_window(FiscalSelector.CURRENT, now)
    instant = as_utc(instant)
    if instant >= today.start_utc:
        return FiscalDay.TODAY
    if instant >= today.start_utc - FISCAL_DAY:
        return FiscalDay.YESTERDAY
    return FiscalDay.OLDER
