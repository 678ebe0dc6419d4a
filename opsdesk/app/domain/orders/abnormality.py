"""
Abnormal order detection.

An in-flight order is flagged when it has sat too long at its current
checkpoint:

- pending:    not confirmed within 10 minutes of creation
- en_route:   more than 30 minutes past the estimated arrival
- in_service: running more than 30 minutes past its booked duration

Every other status is never flagged. The flag is derived on read and is
not persisted.
"""

import enum
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from opsdesk.app.core.clock import as_utc
from opsdesk.app.models.order_enums import OrderStatus

PENDING_CONFIRMATION_LIMIT = timedelta(minutes=10)
ARRIVAL_DELAY_LIMIT = timedelta(minutes=30)
SERVICE_OVERRUN_GRACE = timedelta(minutes=30)


class AbnormalityKind(str, enum.Enum):
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    ARRIVAL_DELAY = "arrival_delay"
    SERVICE_OVERRUN = "service_overrun"


@dataclass(frozen=True)
class Abnormality:
    flag: bool
    reason: Optional[str] = None
    kind: Optional[AbnormalityKind] = None
    minutes: Optional[int] = None


NOT_ABNORMAL = Abnormality(flag=False)


def _minutes(delta: timedelta) -> int:
    return math.floor(delta.total_seconds() / 60)


def detect_abnormal(order: Any, now: datetime) -> Abnormality:
    """
    Check an order against the per-status thresholds.

    `order` only needs `status`, `created_at`, `estimated_arrival_at`,
    `service_started_at` and `service_duration` (minutes) attributes.
    """
    now = as_utc(now)
    status = OrderStatus(order.status)

    if status == OrderStatus.PENDING:
        elapsed = now - as_utc(order.created_at)
        if elapsed > PENDING_CONFIRMATION_LIMIT:
            minutes = _minutes(elapsed)
            return Abnormality(
                flag=True,
                reason=f"confirmation timeout: pending for {minutes} min",
                kind=AbnormalityKind.CONFIRMATION_TIMEOUT,
                minutes=minutes,
            )

    elif status == OrderStatus.EN_ROUTE and order.estimated_arrival_at is not None:
        late = now - as_utc(order.estimated_arrival_at)
        if late > ARRIVAL_DELAY_LIMIT:
            minutes = _minutes(late)
            return Abnormality(
                flag=True,
                reason=f"arrival delay: {minutes} min past estimated arrival",
                kind=AbnormalityKind.ARRIVAL_DELAY,
                minutes=minutes,
            )

    elif status == OrderStatus.IN_SERVICE and order.service_started_at is not None:
        expected = timedelta(minutes=order.service_duration or 0)
        over = now - as_utc(order.service_started_at) - expected
        if over > SERVICE_OVERRUN_GRACE:
            minutes = _minutes(over)
            past_grace = _minutes(over - SERVICE_OVERRUN_GRACE)
            return Abnormality(
                flag=True,
                reason=(
                    f"service overrun: {minutes} min past expected duration "
                    f"({past_grace} min past grace)"
                ),
                kind=AbnormalityKind.SERVICE_OVERRUN,
                minutes=minutes,
            )

    return NOT_ABNORMAL
