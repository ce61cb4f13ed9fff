import logging
from dataclasses import dataclass
from typing import List, Optional

from database import RecordStore
from errors import CouponInvalid, ValidationError
from schemas import Coupon

logger = logging.getLogger(__name__)

COUPON = "coupon"


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


@dataclass(frozen=True)
class CouponCheck:
    valid: bool
    already_used: bool
    coupon: Optional[Coupon] = None


class CouponLedger:
    """Single-use coupon codes.

    ``is_used`` only ever flips from False to True, through one compare-and-set
    in the record store.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def _find(self, code: str) -> Optional[Coupon]:
        doc = self.store.find_document(COUPON, {"code": normalize_code(code)})
        return Coupon(**doc) if doc else None

    def check_coupon(self, code: str) -> CouponCheck:
        """Report whether ``code`` can still be redeemed. Never mutates.

        Raises CouponInvalid for codes that do not exist.
        """
        coupon = self._find(code)
        if coupon is None:
            raise CouponInvalid(normalize_code(code))
        return CouponCheck(valid=not coupon.is_used, already_used=coupon.is_used, coupon=coupon)

    def redeem(self, code: str) -> bool:
        coupon = self._find(code)
        if coupon is None:
            raise CouponInvalid(normalize_code(code))
        if coupon.is_used:
            return False
        doc = self.store.update_document(COUPON, coupon.id, {"is_used": True}, expected={"is_used": False})
        if doc is None:
            logger.warning("Coupon %s was redeemed concurrently", coupon.code)
            return False
        logger.info("Coupon %s redeemed", coupon.code)
        return True

    def create_coupon(self, code: str) -> Coupon:
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError.for_field("code", "Coupon code is required")
        if self._find(normalized) is not None:
            raise ValidationError.for_field("code", f"Coupon {normalized} already exists")
        doc = self.store.create_document(COUPON, {"code": normalized, "is_used": False})
        return Coupon(**doc)

    def list_coupons(self) -> List[Coupon]:
        return [Coupon(**d) for d in self.store.get_documents(COUPON, sort=[("code", 1)])]
