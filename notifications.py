import logging
from datetime import datetime, timezone
from typing import List, Optional

from database import RecordStore
from errors import ValidationError
from schemas import Notification

logger = logging.getLogger(__name__)

NOTIFICATION = "notification"


class NotificationLog:
    """Admin-to-customer messages.

    An entry records the intent to notify. Nothing is delivered from here and
    the order id is not checked.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def notify(self, order_id: Optional[str], message: str) -> Notification:
        text = (message or "").strip()
        if not text:
            raise ValidationError.for_field("message", "Notification message is required")
        now = datetime.now(timezone.utc)
        doc = self.store.create_document(
            NOTIFICATION,
            {"order_id": order_id or None, "message": text, "sent_at": now, "created_at": now},
        )
        logger.info("Notification queued for order %s", order_id or "-")
        return Notification(**doc)

    def list_notifications(self, order_id: Optional[str] = None) -> List[Notification]:
        filt = {"order_id": order_id} if order_id else {}
        docs = self.store.get_documents(NOTIFICATION, filt, sort=[("sent_at", -1), ("_id", -1)])
        return [Notification(**d) for d in docs]
