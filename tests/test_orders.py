from decimal import Decimal

import pytest

from errors import (
    CouponAlreadyUsed,
    CouponInvalid,
    InvalidTransition,
    ItemUnavailable,
    OrderNotFound,
    ValidationError,
)
from pricing import PriceLine, price_lines
from schemas import MenuItemCreate, MenuItemUpdate


def place(services, items=None, **kwargs):
    items = items or [{"menuItemId": "2", "quantity": 1}]
    return services.orders.create_order(kwargs.pop("customer_name", "Ada"), items, **kwargs)


def test_pizza_scenario_total(services, pizza):
    order = place(
        services,
        [{"menuItemId": "pizza-1", "quantity": 2, "customizations": {"addons": ["cheese"]}}],
    )

    assert order.subtotal == Decimal("36.00")
    assert order.tax == Decimal("2.88")
    assert order.total_amount == Decimal("38.88")


def test_stored_total_matches_independent_recomputation(services):
    order = place(
        services,
        [
            {"menuItemId": "1", "quantity": 3, "customizations": {"addons": ["Olives", "Onions"]}},
            {"menuItemId": "4", "quantity": 1},
        ],
    )
    stored = services.orders.get_order(order.id)

    expected = price_lines(
        [PriceLine(i.price, i.quantity, len(i.customizations.addons or [])) for i in stored.items],
        Decimal("2.00"),
        Decimal("0.08"),
    )
    assert stored.total_amount == expected.total
    assert stored.total_amount == services.orders.price(stored.items).total


def test_client_prices_are_ignored(services):
    order = place(
        services,
        [{"menuItemId": "2", "quantity": 1, "price": "0.01", "name": "Free pizza"}],
    )

    assert order.items[0].price == Decimal("16.00")
    assert order.items[0].name == "Margherita Pizza"
    assert order.total_amount == Decimal("17.28")


def test_initial_state(services):
    order = place(services, special_instructions="  no basil ")

    assert order.status == "received"
    assert order.payment_status == "pending"
    assert order.payment_method == "pending"
    assert order.special_instructions == "no basil"
    assert order.bill_number.startswith("BILL")


def test_bill_numbers_are_unique(services):
    bills = {place(services).bill_number for _ in range(20)}

    assert len(bills) == 20


def test_unknown_item_persists_nothing(services, store):
    with pytest.raises(ItemUnavailable) as excinfo:
        place(services, [{"menuItemId": "does-not-exist", "quantity": 1}])

    assert excinfo.value.menu_item_id == "does-not-exist"
    assert store.count_documents("order") == 0


def test_unavailable_item_is_rejected(services, store):
    services.catalog.update_menu_item("4", MenuItemUpdate(is_available=False))

    with pytest.raises(ItemUnavailable):
        place(services, [{"menuItemId": "4", "quantity": 1}])
    assert store.count_documents("order") == 0


def test_required_fields(services):
    with pytest.raises(ValidationError) as excinfo:
        services.orders.create_order("   ", [])

    fields = {d["field"] for d in excinfo.value.details}
    assert fields == {"customerName", "items"}


def test_bad_cart_line_reports_field(services):
    with pytest.raises(ValidationError) as excinfo:
        place(services, [{"menuItemId": "2", "quantity": 0}])

    assert excinfo.value.details[0]["field"] == "items.0.quantity"


def test_coupon_is_redeemed_once(services, store):
    order = place(services, coupon_code="TASTE001")

    assert order.coupon_number == "TASTE001"
    assert services.coupons.check_coupon("TASTE001").already_used is True

    with pytest.raises(CouponAlreadyUsed):
        place(services, customer_name="Grace", coupon_code="taste001")
    assert store.count_documents("order") == 1


def test_unknown_coupon_aborts_order(services, store):
    with pytest.raises(CouponInvalid):
        place(services, coupon_code="BOGUS")
    assert store.count_documents("order") == 0


def test_coupon_is_kept_when_items_are_invalid(services):
    with pytest.raises(ItemUnavailable):
        place(services, [{"menuItemId": "missing", "quantity": 1}], coupon_code="TASTE005")

    assert services.coupons.check_coupon("TASTE005").valid is True


def test_oversized_total_keeps_coupon_and_persists_nothing(services, store):
    services.catalog.create_menu_item(
        MenuItemCreate(id="caviar", name="Caviar Tower", price="9999999999.00", category_id="3")
    )

    with pytest.raises(ValidationError) as excinfo:
        place(services, [{"menuItemId": "caviar", "quantity": 2}], coupon_code="TASTE007")

    assert excinfo.value.details[0]["field"] == "items"
    assert store.count_documents("order") == 0
    assert services.coupons.check_coupon("TASTE007").valid is True
    assert services.orders.list_orders() == []


def test_quantity_is_capped(services, store):
    with pytest.raises(ValidationError) as excinfo:
        place(services, [{"menuItemId": "2", "quantity": 10**12}], coupon_code="TASTE008")

    assert excinfo.value.details[0]["field"] == "items.0.quantity"
    assert store.count_documents("order") == 0
    assert services.coupons.check_coupon("TASTE008").valid is True


def test_items_are_snapshots(services):
    order = place(services)
    services.catalog.update_menu_item("2", MenuItemUpdate(price="99.00", name="Renamed"))

    stored = services.orders.get_order(order.id)
    assert stored.items[0].price == Decimal("16.00")
    assert stored.items[0].name == "Margherita Pizza"
    assert stored.total_amount == order.total_amount


def test_reads_do_not_mutate(services):
    order = place(services)

    assert services.orders.get_order(order.id) == services.orders.get_order(order.id)


def test_unknown_order(services):
    with pytest.raises(OrderNotFound):
        services.orders.get_order("nope")
    with pytest.raises(OrderNotFound):
        services.orders.record_payment("nope", "cash", "completed")


def test_cash_payment_leaves_kitchen_status(services):
    order = place(services)

    paid = services.orders.record_payment(order.id, "cash", "completed")
    assert paid.payment_method == "cash"
    assert paid.payment_status == "completed"
    assert paid.status == "received"

    preparing = services.orders.set_status(order.id, "preparing")
    assert preparing.status == "preparing"
    assert preparing.payment_status == "completed"


def test_failed_payment_can_be_retried(services):
    order = place(services)

    failed = services.orders.record_payment(order.id, "upi", "failed")
    assert failed.payment_status == "failed"

    paid = services.orders.record_payment(order.id, "upi", "completed")
    assert paid.payment_status == "completed"


def test_completed_payment_is_terminal(services):
    order = place(services)
    services.orders.record_payment(order.id, "upi", "completed")

    again = services.orders.record_payment(order.id, "upi", "completed")
    assert again.payment_status == "completed"
    with pytest.raises(InvalidTransition):
        services.orders.record_payment(order.id, "upi", "failed")
    with pytest.raises(InvalidTransition):
        services.orders.record_payment(order.id, "cash", "completed")


def test_payment_arguments_are_validated(services):
    order = place(services)

    with pytest.raises(ValidationError):
        services.orders.record_payment(order.id, "card", "completed")
    with pytest.raises(ValidationError):
        services.orders.record_payment(order.id, "cash", "refunded")


def test_status_moves_forward_only(services):
    order = place(services)

    assert services.orders.set_status(order.id, "ready").status == "ready"
    assert services.orders.set_status(order.id, "ready").status == "ready"
    with pytest.raises(InvalidTransition):
        services.orders.set_status(order.id, "received")
    assert services.orders.set_status(order.id, "completed").status == "completed"
    with pytest.raises(InvalidTransition):
        services.orders.set_status(order.id, "preparing")


def test_unknown_status_is_a_validation_error(services):
    order = place(services)

    with pytest.raises(ValidationError):
        services.orders.set_status(order.id, "cancelled")


def test_override_allows_backward_moves(services):
    order = place(services)
    services.orders.set_status(order.id, "completed")

    assert services.orders.override_status(order.id, "received").status == "received"


def test_update_order_applies_payment_then_status(services):
    order = place(services)

    updated = services.orders.update_order(
        order.id, status="received", payment_status="completed", payment_method="cash"
    )
    assert updated.payment_status == "completed"
    assert updated.payment_method == "cash"
    assert updated.status == "received"


def test_update_order_needs_a_payment_method(services):
    order = place(services)

    with pytest.raises(ValidationError):
        services.orders.update_order(order.id, payment_status="completed")


def test_update_order_validates_before_writing(services):
    order = place(services)
    services.orders.set_status(order.id, "ready")

    with pytest.raises(InvalidTransition):
        services.orders.update_order(
            order.id, status="preparing", payment_status="completed", payment_method="upi"
        )
    assert services.orders.get_order(order.id).payment_status == "pending"


def test_update_order_method_only(services):
    order = place(services)

    assert services.orders.update_order(order.id, payment_method="upi").payment_method == "upi"
    services.orders.record_payment(order.id, "upi", "completed")
    with pytest.raises(InvalidTransition):
        services.orders.update_order(order.id, payment_method="cash")
    with pytest.raises(InvalidTransition):
        services.orders.update_order(order.id, payment_status="pending")


def test_list_orders_newest_first_and_by_user(services):
    first = place(services, user_id="u1")
    second = place(services, user_id="u2")
    third = place(services, user_id="u1")

    assert [o.id for o in services.orders.list_orders()] == [third.id, second.id, first.id]
    assert [o.id for o in services.orders.list_orders(user_id="u1")] == [third.id, first.id]


def test_update_order_pending_status_with_method(services):
    order = place(services)

    updated = services.orders.update_order(order.id, payment_status="pending", payment_method="upi")

    assert updated.payment_status == "pending"
    assert updated.payment_method == "upi"
    assert services.orders.get_order(order.id).payment_method == "upi"
