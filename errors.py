"""
Error taxonomy for the ordering core.

Services raise these; main.py maps them to HTTP responses.
"""

from typing import Any, Dict, List, Optional


class OrderingError(Exception):
    code = "error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationError(OrderingError):
    code = "validation_error"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details=[{"field": field, "message": message}])

    @classmethod
    def for_fields(cls, errors: List[Dict[str, str]]) -> "ValidationError":
        return cls("Invalid request data", details=errors)


class InvalidRating(ValidationError):
    code = "invalid_rating"


class NotFound(OrderingError):
    code = "not_found"
    status_code = 404
    entity = "Record"

    def __init__(self, id_str: str, message: Optional[str] = None):
        super().__init__(message or f"{self.entity} not found", details={"id": id_str})
        self.id = id_str


class OrderNotFound(NotFound):
    entity = "Order"


class MenuItemNotFound(NotFound):
    entity = "Menu item"


class CategoryNotFound(NotFound):
    entity = "Category"


class UserNotFound(NotFound):
    entity = "User"


class ItemUnavailable(OrderingError):
    code = "item_unavailable"

    def __init__(self, menu_item_id: str, reason: str = "not found"):
        super().__init__(
            f"Menu item {menu_item_id} is not available",
            details={"menuItemId": menu_item_id, "reason": reason},
        )
        self.menu_item_id = menu_item_id


class CouponInvalid(OrderingError):
    code = "coupon_invalid"

    def __init__(self, code: str):
        super().__init__("Invalid coupon code", details={"code": code})
        self.coupon_code = code


class CouponAlreadyUsed(OrderingError):
    code = "coupon_already_used"
    status_code = 409

    def __init__(self, code: str):
        super().__init__("Coupon already used", details={"code": code})
        self.coupon_code = code


class ConcurrencyConflict(CouponAlreadyUsed):
    """Lost the redemption race for a coupon that was unused when checked.

    Callers handling CouponAlreadyUsed need nothing extra.
    """

    code = "concurrency_conflict"

    def __init__(self, code: str):
        OrderingError.__init__(self, "Coupon was redeemed by another order", details={"code": code})
        self.coupon_code = code


class StaleUpdate(OrderingError):
    code = "stale_update"
    status_code = 409

    def __init__(self, id_str: str):
        super().__init__("Order was modified concurrently, reload and retry", details={"id": id_str})


class InvalidTransition(OrderingError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, field: str, current: str, requested: str):
        super().__init__(
            f"Cannot change {field} from {current} to {requested}",
            details={"field": field, "from": current, "to": requested},
        )


class Unauthorized(OrderingError):
    code = "unauthorized"
    status_code = 401
