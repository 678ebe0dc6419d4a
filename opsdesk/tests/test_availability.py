"""
Tests for technician cooldowns and online-time statistics.
"""

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from opsdesk.app.core.exceptions import ValidationError
from opsdesk.app.domain.technicians.availability import (
    MAX_COOLDOWN_HOURS, cooldown_until, in_cooldown, online_hours, work_stats
)

# 10:00 Bangkok; the fiscal day started at 23:00 UTC the previous evening
NOW = datetime(2024, 6, 1, 3, 0, tzinfo=timezone.utc)


def session(start_ago: timedelta, length: timedelta = None):
    started = NOW - start_ago
    return SimpleNamespace(started_at=started, ended_at=started + length if length else None)


def test_cooldown_until_adds_hours():
    assert cooldown_until(1.5, NOW) == NOW + timedelta(minutes=90)


@pytest.mark.parametrize("hours", [0, -2, MAX_COOLDOWN_HOURS + 1])
def test_cooldown_hours_out_of_range(hours):
    with pytest.raises(ValidationError):
        cooldown_until(hours, NOW)


def test_in_cooldown():
    assert in_cooldown(NOW + timedelta(minutes=1), NOW)
    assert not in_cooldown(NOW, NOW)
    assert not in_cooldown(None, NOW)


def test_naive_cooldown_is_read_as_utc():
    assert in_cooldown(datetime(2024, 6, 1, 4, 0), NOW)


def test_open_session_counts_until_now():
    assert online_hours([session(timedelta(hours=2, minutes=30))], NOW) == 2.5


def test_sessions_before_since_are_skipped_not_clipped():
    sessions = [session(timedelta(hours=5), timedelta(hours=3))]

    assert online_hours(sessions, NOW, since=NOW - timedelta(hours=4)) == 0.0
    assert online_hours(sessions, NOW) == 3.0


def test_work_stats_buckets():
    sessions = [
        session(timedelta(hours=3), timedelta(hours=1)),                 # 00:00 UTC, this fiscal day
        session(timedelta(hours=5), timedelta(hours=1)),                 # 22:00 UTC, previous fiscal day
        session(timedelta(days=3), timedelta(hours=2)),
        session(timedelta(days=20), timedelta(hours=4)),
        session(timedelta(days=45), timedelta(hours=8)),
    ]

    stats = work_stats(sessions, NOW)

    assert stats.today_hours == 1.0
    assert stats.week_hours == 4.0
    assert stats.month_hours == 8.0
    assert stats.total_hours == 16.0
