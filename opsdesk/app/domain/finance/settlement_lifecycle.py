"""
Settlement lifecycle.

Moves order settlements through their one-way review workflow:

    PENDING -> SETTLED
    PENDING -> REJECTED

Every operation returns a `Result` envelope instead of raising. Inputs
are validated before the store is touched; state guards read the record
first and then write conditionally on it still being pending, so a
concurrent transition by another operator surfaces as InvalidState
instead of being overwritten.

Account balances react to these transitions through database triggers;
callers must not expect a balance read in the same request to reflect a
settlement that just landed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.config import settings
from opsdesk.app.core.exceptions import (
    AppException, InvalidStateError, NotFoundError, StoreError, ValidationError
)
from opsdesk.app.core.result import Result
from opsdesk.app.db.store import RecordStore
from opsdesk.app.models.finance_enums import SettlementStatus
from opsdesk.app.models.settlement import OrderSettlement
from opsdesk.app.schemas.finance import SettlementPaymentUpdate

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    succeeded: int = 0
    failed: int = 0
    failures: Dict[int, str] = field(default_factory=dict)

    @property
    def summary(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed"


class SettlementLifecycle:
    """Per-record and batch transitions of order settlements."""

    def __init__(
        self,
        store: RecordStore,
        batch_concurrency: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._chunk_size = batch_concurrency or settings.batch_settle_concurrency
        self._clock = clock

    async def update_payment(
        self,
        settlement_id: int,
        changes: Union[SettlementPaymentUpdate, Dict[str, Any]],
        *,
        operator_id: int,
    ) -> Result[None]:
        """Write payment fields of a pending settlement; status is unchanged."""
        async def run():
            _require_operator(operator_id)
            fields = _payment_fields(changes)
            await self._load_pending(settlement_id)
            await self._write_if_pending(settlement_id, fields)

        return await self._guarded("update_payment", settlement_id, operator_id, run)

    async def mark_settled(self, settlement_id: int, *, operator_id: int) -> Result[None]:
        async def run():
            _require_operator(operator_id)
            await self._load_pending(settlement_id)
            now = self._clock()
            await self._write_if_pending(settlement_id, {
                "settlement_status": SettlementStatus.SETTLED,
                "settled_at": now,
                "reviewed_by": operator_id,
                "reviewed_at": now,
            })

        return await self._guarded("mark_settled", settlement_id, operator_id, run)

    async def reject(self, settlement_id: int, reason: Optional[str], *, operator_id: int) -> Result[None]:
        async def run():
            _require_operator(operator_id)
            cleaned = (reason or "").strip()
            if not cleaned:
                raise ValidationError("A reject reason is required")
            await self._load_pending(settlement_id)
            now = self._clock()
            await self._write_if_pending(settlement_id, {
                "settlement_status": SettlementStatus.REJECTED,
                "reject_reason": cleaned,
                "rejected_at": now,
                "reviewed_by": operator_id,
                "reviewed_at": now,
            })

        return await self._guarded("reject", settlement_id, operator_id, run)

    async def batch_mark_settled(self, settlement_ids: Iterable[int], *, operator_id: int) -> BatchOutcome:
        """
        Settle many records independently.

        Records are processed in chunks of `batch_concurrency` concurrent
        calls. A failure only affects its own record and is tallied;
        nothing is retried or rolled back.
        """
        ids = list(dict.fromkeys(settlement_ids))
        outcome = BatchOutcome()

        for start in range(0, len(ids), self._chunk_size):
            chunk = ids[start:start + self._chunk_size]
            results = await asyncio.gather(
                *(self.mark_settled(settlement_id, operator_id=operator_id) for settlement_id in chunk)
            )
            for settlement_id, result in zip(chunk, results):
                if result.ok:
                    outcome.succeeded += 1
                else:
                    outcome.failed += 1
                    outcome.failures[settlement_id] = result.error

        logger.info(
            "Batch settlement finished",
            extra={"operator_id": operator_id, "succeeded": outcome.succeeded, "failed": outcome.failed}
        )
        return outcome

    async def _load_pending(self, settlement_id: int) -> OrderSettlement:
        settlement = (await self._store.get(OrderSettlement, settlement_id)).unwrap()
        if settlement is None:
            raise NotFoundError("Settlement", settlement_id)
        status = SettlementStatus(settlement.settlement_status)
        if status != SettlementStatus.PENDING:
            raise InvalidStateError(f"Settlement is already {status.value}", current_state=status)
        return settlement

    async def _write_if_pending(self, settlement_id: int, fields: Dict[str, Any]) -> None:
        matched = (await self._store.update(
            OrderSettlement,
            settlement_id,
            fields,
            expected={"settlement_status": SettlementStatus.PENDING},
        )).unwrap()
        if not matched:
            raise InvalidStateError("Settlement was already processed by another operator")

    async def _guarded(
        self,
        operation: str,
        settlement_id: int,
        operator_id: int,
        run: Callable[[], Awaitable[None]],
    ) -> Result[None]:
        log_extra = {"operation": operation, "settlement_id": settlement_id, "operator_id": operator_id}
        try:
            await run()
        except AppException as exc:
            logger.info("Settlement %s refused: %s", operation, exc.message, extra=log_extra)
            return Result.failure(exc)
        except Exception:
            logger.exception("Settlement %s failed unexpectedly", operation, extra=log_extra)
            return Result.failure(StoreError("Settlement update failed"))

        logger.info("Settlement %s applied", operation, extra=log_extra)
        return Result.success()


def _require_operator(operator_id: Any) -> None:
    if not operator_id:
        raise ValidationError("An operator is required for settlement changes")


def _payment_fields(changes: Union[SettlementPaymentUpdate, Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(changes, SettlementPaymentUpdate):
        try:
            changes = SettlementPaymentUpdate.model_validate(changes or {})
        except SchemaValidationError as exc:
            raise ValidationError(
                "Invalid payment fields",
                details={"errors": [f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()]},
            )

    fields = changes.model_dump(exclude_unset=True)
    if not fields:
        raise ValidationError("No payment fields to update")
    return fields
