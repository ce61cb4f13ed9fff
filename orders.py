"""
Order lifecycle.

An order moves along two independent axes:

    status          received -> preparing -> ready -> completed   (forward only)
    payment_status  pending -> completed | failed, failed -> completed | failed

Totals are always recomputed from catalog prices; a client-sent total is never
stored. Coupons are redeemed before the order document is written, so a failed
redemption leaves nothing behind.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

import pydantic

from catalog import CatalogStore
from coupons import CouponLedger, normalize_code
from database import RecordStore
from errors import (
    ConcurrencyConflict,
    CouponAlreadyUsed,
    InvalidTransition,
    ItemUnavailable,
    MenuItemNotFound,
    OrderNotFound,
    StaleUpdate,
    ValidationError,
)
from pricing import DEFAULT_ADDON_SURCHARGE, DEFAULT_TAX_RATE, PriceBreakdown, PriceLine, price_lines
from schemas import MAX_MONEY, CartLine, Order, OrderItem

logger = logging.getLogger(__name__)

ORDER = "order"
BILL_SEQUENCE = "bill_number"
NEWEST_FIRST = [("created_at", -1), ("_id", -1)]

STATUS_FLOW = ("received", "preparing", "ready", "completed")
STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    status: frozenset(STATUS_FLOW[i + 1:]) for i, status in enumerate(STATUS_FLOW)
}

PAYMENT_OUTCOMES = ("completed", "failed")
PAYMENT_METHODS = ("cash", "upi")
PAYMENT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"completed", "failed"}),
    "failed": frozenset({"completed", "failed"}),
    "completed": frozenset(),
}


def _pydantic_errors(exc: pydantic.ValidationError, prefix: str) -> List[Dict[str, str]]:
    return [
        {"field": ".".join([prefix] + [str(p) for p in err["loc"]]), "message": err["msg"]}
        for err in exc.errors()
    ]


class OrderManager:
    def __init__(
        self,
        store: RecordStore,
        catalog: CatalogStore,
        coupons: CouponLedger,
        addon_surcharge: Decimal = DEFAULT_ADDON_SURCHARGE,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
    ):
        self.store = store
        self.catalog = catalog
        self.coupons = coupons
        self.addon_surcharge = addon_surcharge
        self.tax_rate = tax_rate

    # ------------- Pricing -------------

    def price(self, items: Iterable[OrderItem]) -> PriceBreakdown:
        return price_lines(
            [PriceLine(i.price, i.quantity, i.customizations.addons_count) for i in items],
            addon_surcharge=self.addon_surcharge,
            tax_rate=self.tax_rate,
        )

    def _snapshot_items(self, lines: List[CartLine]) -> List[OrderItem]:
        snapshot = []
        for line in lines:
            try:
                menu_item = self.catalog.get_menu_item(line.menu_item_id)
            except MenuItemNotFound:
                raise ItemUnavailable(line.menu_item_id, "not found")
            if not menu_item.is_available:
                raise ItemUnavailable(line.menu_item_id, "unavailable")
            snapshot.append(
                OrderItem(
                    menu_item_id=menu_item.id,
                    name=menu_item.name,
                    price=menu_item.price,
                    quantity=line.quantity,
                    customizations=line.customizations,
                )
            )
        return snapshot

    # ------------- Creation -------------

    def _coerce_lines(self, items: Iterable[Union[CartLine, dict]]) -> List[CartLine]:
        lines = []
        for index, item in enumerate(items):
            if isinstance(item, CartLine):
                lines.append(item)
                continue
            try:
                lines.append(CartLine.model_validate(item))
            except pydantic.ValidationError as exc:
                raise ValidationError.for_fields(_pydantic_errors(exc, f"items.{index}"))
        return lines

    def _redeem_coupon(self, code: str) -> None:
        check = self.coupons.check_coupon(code)
        if check.already_used:
            raise CouponAlreadyUsed(code)
        if not self.coupons.redeem(code):
            raise ConcurrencyConflict(code)

    def _next_bill_number(self) -> str:
        millis = int(datetime.now(timezone.utc).timestamp() * 1000)
        return f"BILL{millis}-{self.store.next_sequence(BILL_SEQUENCE):04d}"

    def create_order(
        self,
        customer_name: str,
        items: Iterable[Union[CartLine, dict]],
        coupon_code: Optional[str] = None,
        special_instructions: Optional[str] = None,
        payment_method_hint: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Order:
        name = (customer_name or "").strip()
        items = list(items or [])
        problems = []
        if not name:
            problems.append({"field": "customerName", "message": "Customer name is required"})
        if not items:
            problems.append({"field": "items", "message": "Order must contain at least one item"})
        if problems:
            raise ValidationError.for_fields(problems)

        order_items = self._snapshot_items(self._coerce_lines(items))
        breakdown = self.price(order_items)
        if breakdown.total > MAX_MONEY:
            raise ValidationError.for_field("items", f"Order total exceeds the maximum of {MAX_MONEY}")

        coupon = normalize_code(coupon_code) or None
        if coupon:
            self._redeem_coupon(coupon)

        order_doc = {
            "user_id": user_id,
            "customer_name": name,
            "coupon_number": coupon,
            "bill_number": self._next_bill_number(),
            "items": [i.model_dump(mode="json") for i in order_items],
            "subtotal": str(breakdown.subtotal),
            "tax": str(breakdown.tax),
            "total_amount": str(breakdown.total),
            "payment_method": "pending",
            "payment_status": "pending",
            "status": "received",
            "special_instructions": (special_instructions or "").strip() or None,
        }
        order = Order(**self.store.create_document(ORDER, order_doc))
        logger.info(
            "Order %s created for %s, total %s (payment hint: %s)",
            order.bill_number, order.customer_name, order.total_amount, payment_method_hint or "none",
        )
        return order

    # ------------- Reads -------------

    def get_order(self, order_id: str) -> Order:
        doc = self.store.get_document_by_id(ORDER, order_id)
        if not doc:
            raise OrderNotFound(order_id)
        return Order(**doc)

    def list_orders(self, user_id: Optional[str] = None) -> List[Order]:
        filt = {"user_id": user_id} if user_id else {}
        return [Order(**d) for d in self.store.get_documents(ORDER, filt, sort=NEWEST_FIRST)]

    # ------------- Transitions -------------

    def _apply(self, order: Order, changes: dict, expected: dict) -> Order:
        doc = self.store.update_document(ORDER, order.id, changes, expected=expected)
        if doc is None:
            raise StaleUpdate(order.id)
        return Order(**doc)

    @staticmethod
    def _check_status(order: Order, new_status: str) -> bool:
        """Return False for a no-op, raise for a move the flow does not allow."""
        if new_status not in STATUS_FLOW:
            raise ValidationError.for_field("status", f"Unknown status {new_status!r}")
        if new_status == order.status:
            return False
        if new_status not in STATUS_TRANSITIONS[order.status]:
            logger.warning("Rejected status change %s -> %s for order %s", order.status, new_status, order.id)
            raise InvalidTransition("status", order.status, new_status)
        return True

    def set_status(self, order_id: str, new_status: str) -> Order:
        order = self.get_order(order_id)
        if not self._check_status(order, new_status):
            return order
        updated = self._apply(order, {"status": new_status}, expected={"status": order.status})
        logger.info("Order %s status %s -> %s", order.bill_number, order.status, new_status)
        return updated

    def override_status(self, order_id: str, new_status: str) -> Order:
        """Admin escape hatch: set any status, including backward moves."""
        if new_status not in STATUS_FLOW:
            raise ValidationError.for_field("status", f"Unknown status {new_status!r}")
        order = self.get_order(order_id)
        logger.warning("Admin override of order %s status %s -> %s", order.bill_number, order.status, new_status)
        return self._apply(order, {"status": new_status}, expected={"status": order.status})

    def record_payment(self, order_id: str, method: str, outcome: str) -> Order:
        if method not in PAYMENT_METHODS:
            raise ValidationError.for_field("paymentMethod", f"Unknown payment method {method!r}")
        if outcome not in PAYMENT_OUTCOMES:
            raise ValidationError.for_field("paymentStatus", f"Unknown payment outcome {outcome!r}")
        order = self.get_order(order_id)
        current = order.payment_status
        if current == "completed" and outcome == "completed" and method == order.payment_method:
            return order
        if outcome not in PAYMENT_TRANSITIONS[current]:
            logger.warning("Rejected payment change %s -> %s for order %s", current, outcome, order.id)
            raise InvalidTransition("paymentStatus", current, outcome)

        updated = self._apply(
            order,
            {"payment_method": method, "payment_status": outcome},
            expected={"payment_status": current, "payment_method": order.payment_method},
        )
        logger.info("Order %s payment %s via %s", order.bill_number, outcome, method)
        return updated

    def update_order(
        self,
        order_id: str,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> Order:
        """Apply a partial update: payment first, then fulfilment status.

        Both changes are validated before either is written.
        """
        order = self.get_order(order_id)
        if status is not None:
            self._check_status(order, status)

        if payment_status == "pending" and order.payment_status != "pending":
            raise InvalidTransition("paymentStatus", order.payment_status, "pending")

        if payment_status in PAYMENT_OUTCOMES:
            method = payment_method or (order.payment_method if order.payment_method != "pending" else None)
            if method is None:
                raise ValidationError.for_field("paymentMethod", "Payment method is required to record a payment")
            order = self.record_payment(order_id, method, payment_status)
        elif payment_status not in (None, "pending"):
            raise ValidationError.for_field("paymentStatus", f"Unknown payment status {payment_status!r}")
        elif payment_method is not None and payment_method != order.payment_method:
            if payment_method not in PAYMENT_METHODS:
                raise ValidationError.for_field("paymentMethod", f"Unknown payment method {payment_method!r}")
            if order.payment_status == "completed":
                raise InvalidTransition("paymentMethod", order.payment_method, payment_method)
            order = self._apply(
                order,
                {"payment_method": payment_method},
                expected={"payment_status": order.payment_status, "payment_method": order.payment_method},
            )

        if status is not None:
            order = self.set_status(order_id, status)
        return order
