"""
Notification Service.

Sends system notifications to customers and technicians through the
record store. Delivery failures are logged and reported in the result;
callers decide whether they matter.
"""

import logging
from typing import Optional, Dict, Any

from opsdesk.app.core.result import Result
from opsdesk.app.db.store import RecordStore
from opsdesk.app.models.notification import Notification, NotificationType, RecipientType

logger = logging.getLogger(__name__)


class NotificationService:
    
    @staticmethod
    async def send(
        store: RecordStore,
        recipient_type: RecipientType,
        recipient_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Result[Notification]:
        """Create a single notification."""
        result = await store.insert(Notification, {
            "recipient_type": recipient_type,
            "recipient_id": recipient_id,
            "type": type,
            "title": title,
            "message": message,
            "metadata_payload": metadata,
        })
        if not result.ok:
            logger.warning(
                "Notification delivery failed",
                extra={"recipient_type": recipient_type.value, "recipient_id": recipient_id, "error": result.error}
            )
        return result

    @staticmethod
    async def notify_technician(store: RecordStore, technician_id: int, title: str, message: str, **kwargs) -> Result[Notification]:
        return await NotificationService.send(store, RecipientType.TECHNICIAN, technician_id, title, message, **kwargs)

    @staticmethod
    async def notify_customer(store: RecordStore, customer_id: int, title: str, message: str, **kwargs) -> Result[Notification]:
        return await NotificationService.send(store, RecipientType.CUSTOMER, customer_id, title, message, **kwargs)
