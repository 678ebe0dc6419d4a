"""
Review of technician settlement/withdrawal requests.

A request leaves PENDING exactly once: approved (CONFIRMED) or rejected
(CANCELLED). Approving a withdrawal that carries a THB payout amount
notifies the technician; a failed notification does not undo the
approval.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.exceptions import (
    AppException, InvalidStateError, NotFoundError, StoreError, ValidationError
)
from opsdesk.app.core.result import Result
from opsdesk.app.db.store import RecordStore
from opsdesk.app.models.finance_enums import TransactionStatus, TransactionType
from opsdesk.app.models.notification import NotificationType
from opsdesk.app.models.settlement_transaction import SettlementTransaction
from opsdesk.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class TransactionReview:

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    async def approve(self, transaction_id: int, *, operator_id: int, notes: Optional[str] = None) -> Result[SettlementTransaction]:
        try:
            if not operator_id:
                raise ValidationError("An operator is required for transaction review")
            transaction = await self._load_pending(transaction_id)
            fields = {
                "status": TransactionStatus.CONFIRMED,
                "confirmed_at": self._clock(),
                "operator_id": operator_id,
            }
            if notes and notes.strip():
                fields["notes"] = notes.strip()
            await self._write_if_pending(transaction, fields)
        except AppException as exc:
            return Result.failure(exc)
        except Exception:
            logger.exception("Transaction approval failed", extra={"transaction_id": transaction_id})
            return Result.failure(StoreError("Transaction update failed"))

        logger.info("Transaction approved", extra={"transaction_id": transaction_id, "operator_id": operator_id})

        if transaction.transaction_type == TransactionType.WITHDRAWAL and transaction.actual_amount_thb:
            await NotificationService.notify_technician(
                self._store,
                transaction.technician_id,
                title="Withdrawal processed",
                message=(
                    f"Your withdrawal has been processed. We have transferred "
                    f"฿{transaction.actual_amount_thb:.2f} THB to your account. "
                    f"Please check your bank account."
                ),
                type=NotificationType.FINANCE_UPDATE,
                metadata={"transaction_id": transaction_id},
            )
        return Result.success(transaction)

    async def reject(self, transaction_id: int, reason: Optional[str], *, operator_id: int) -> Result[SettlementTransaction]:
        try:
            if not operator_id:
                raise ValidationError("An operator is required for transaction review")
            cleaned = (reason or "").strip()
            if not cleaned:
                raise ValidationError("A reject reason is required")
            transaction = await self._load_pending(transaction_id)
            await self._write_if_pending(transaction, {
                "status": TransactionStatus.CANCELLED,
                "operator_id": operator_id,
                "notes": cleaned,
            })
        except AppException as exc:
            return Result.failure(exc)
        except Exception:
            logger.exception("Transaction rejection failed", extra={"transaction_id": transaction_id})
            return Result.failure(StoreError("Transaction update failed"))

        logger.info("Transaction rejected", extra={"transaction_id": transaction_id, "operator_id": operator_id})
        return Result.success(transaction)

    async def _load_pending(self, transaction_id: int) -> SettlementTransaction:
        transaction = (await self._store.get(SettlementTransaction, transaction_id)).unwrap()
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)
        status = TransactionStatus(transaction.status)
        if status != TransactionStatus.PENDING:
            raise InvalidStateError(f"Transaction is already {status.value}", current_state=status)
        return transaction

    async def _write_if_pending(self, transaction: SettlementTransaction, fields: dict) -> None:
        """Conditionally write `fields` and mirror them onto the loaded row."""
        matched = (await self._store.update(
            SettlementTransaction,
            transaction.id,
            fields,
            expected={"status": TransactionStatus.PENDING},
        )).unwrap()
        if not matched:
            raise InvalidStateError("Transaction was already processed by another operator")
        for name, value in fields.items():
            setattr(transaction, name, value)
