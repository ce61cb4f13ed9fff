import logging
from typing import List, Optional

from database import RecordStore
from errors import InvalidRating, ValidationError
from schemas import Feedback

logger = logging.getLogger(__name__)

FEEDBACK = "feedback"
MIN_RATING = 1
MAX_RATING = 5


class FeedbackLedger:
    """Append-only customer ratings. There is no edit or delete."""

    def __init__(self, store: RecordStore):
        self.store = store

    def submit_feedback(
        self,
        customer_name: str,
        rating: int,
        comment: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> Feedback:
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRating(
                f"Rating must be a whole number from {MIN_RATING} to {MAX_RATING}",
                details=[{"field": "rating", "message": f"got {rating!r}"}],
            )
        name = (customer_name or "").strip()
        if not name:
            raise ValidationError.for_field("customerName", "Customer name is required")

        doc = self.store.create_document(
            FEEDBACK,
            {
                "order_id": order_id or None,
                "customer_name": name,
                "rating": rating,
                "comment": (comment or "").strip() or None,
            },
        )
        logger.info("Feedback %s recorded with rating %d", doc["id"], rating)
        return Feedback(**doc)

    def list_feedback(self) -> List[Feedback]:
        docs = self.store.get_documents(FEEDBACK, sort=[("created_at", -1), ("_id", -1)])
        return [Feedback(**d) for d in docs]

    def list_order_feedback(self, order_id: str) -> List[Feedback]:
        docs = self.store.get_documents(FEEDBACK, {"order_id": order_id}, sort=[("created_at", -1), ("_id", -1)])
        return [Feedback(**d) for d in docs]
