"""
Technician availability: cooldowns and online-time statistics.

A cooldown forces the technician offline until `cooldown_until`; it
lapses on its own or is cancelled by staff. Online time is summed from
work sessions, with a still-open session counting up to `now`.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from opsdesk.app.core.clock import as_utc
from opsdesk.app.core.exceptions import ValidationError
from opsdesk.app.domain.finance.fiscal_window import FiscalSelector, compute_fiscal_window

MAX_COOLDOWN_HOURS = 24 * 30
WEEK = timedelta(days=7)
MONTH = timedelta(days=30)


@dataclass(frozen=True)
class WorkStats:
    today_hours: float
    week_hours: float
    month_hours: float
    total_hours: float


def cooldown_until(hours: float, now: datetime) -> datetime:
    if not 0 < hours <= MAX_COOLDOWN_HOURS:
        raise ValidationError(
            f"Cooldown must be between 0 and {MAX_COOLDOWN_HOURS} hours",
            details={"hours": hours},
        )
    return as_utc(now) + timedelta(hours=hours)


def in_cooldown(until: Optional[datetime], now: datetime) -> bool:
    return until is not None and as_utc(until) > as_utc(now)


def online_hours(sessions: Iterable, now: datetime, since: Optional[datetime] = None) -> float:
    """
    Sum session durations in hours, rounded to one decimal.

    Sessions are selected by start time; a session that began before
    `since` is left out entirely rather than clipped.
    """
    now = as_utc(now)
    total = timedelta()
    for session in sessions:
        started = as_utc(session.started_at)
        if since is not None and started < since:
            continue
        ended = as_utc(session.ended_at) or now
        if ended > started:
            total += ended - started
    return round(total.total_seconds() / 3600, 1)


def work_stats(sessions: Iterable, now: datetime) -> WorkStats:
    """Online hours for the current fiscal day, the last 7 and 30 days, and overall."""
    sessions = list(sessions)
    now = as_utc(now)
    today_start = compute_fiscal_window(FiscalSelector.CURRENT, now).start_utc
    return WorkStats(
        today_hours=online_hours(sessions, now, since=today_start),
        week_hours=online_hours(sessions, now, since=now - WEEK),
        month_hours=online_hours(sessions, now, since=now - MONTH),
        total_hours=online_hours(sessions, now),
    )
