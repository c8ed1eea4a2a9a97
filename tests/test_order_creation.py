"""Tests for checkout: cart -> order in one transaction."""

from decimal import Decimal

import pydantic
import pytest
from sqlalchemy import func, select

from cartorder.data.models.order import OrderModel
from cartorder.domain.errors import (
    ConflictError,
    EmptyCartError,
    InconsistentStateError,
    InsufficientStockError,
    InvalidTotalsError,
    ProductUnavailableError,
)
from cartorder.domain.schemas import OrderCreate
from cartorder.services.order_service import compute_totals

from conftest import CUSTOMER, SELLER_X, SELLER_Y


def order_count(db):
    return db.execute(select(func.count()).select_from(OrderModel)).scalar_one()


def cart_quantities(carts, customer_id=CUSTOMER):
    return {i["product_id"]: i["quantity"] for i in carts.get_cart(customer_id)["items"]}


class TestComputeTotals:
    def test_basic(self):
        totals = compute_totals([Decimal("200.00"), Decimal("50.00")], Decimal("0.08"), shipping_cost=Decimal("10"))
        assert totals["subtotal"] == Decimal("250.00")
        assert totals["tax"] == Decimal("20.00")
        assert totals["total"] == Decimal("280.00")

    def test_tax_rounds_half_up_to_cents(self):
        totals = compute_totals([Decimal("10.00")], Decimal("0.0125"))
        assert totals["tax"] == Decimal("0.13")

    def test_discount_is_subtracted(self):
        totals = compute_totals([Decimal("100.00")], Decimal("0"), discount=Decimal("15"))
        assert totals["total"] == Decimal("85.00")

    def test_discount_above_value_is_invalid(self):
        with pytest.raises(InvalidTotalsError):
            compute_totals([Decimal("10.00")], Decimal("0"), discount=Decimal("11"))

    def test_negative_shipping_is_invalid(self):
        with pytest.raises(InvalidTotalsError):
            compute_totals([Decimal("10.00")], Decimal("0"), shipping_cost=Decimal("-1"))

    @pytest.mark.parametrize(
        "overrides",
        [{"shipping_cost": Decimal("0.006")}, {"discount": Decimal("0.004")}],
    )
    def test_sub_cent_amounts_are_invalid(self, overrides):
        with pytest.raises(InvalidTotalsError):
            compute_totals([Decimal("100.00")], Decimal("0.08"), **overrides)

    def test_trailing_zeros_are_fine(self):
        totals = compute_totals([Decimal("100.00")], Decimal("0"), shipping_cost=Decimal("2.500"))
        assert totals["total"] == Decimal("102.50")


class TestCheckoutInput:
    @pytest.mark.parametrize("field", ["shipping_cost", "discount"])
    def test_sub_cent_amounts_rejected(self, checkout, field):
        with pytest.raises(pydantic.ValidationError):
            checkout(**{field: Decimal("0.006")})

    def test_cent_amounts_accepted(self, checkout):
        payload = checkout(shipping_cost=Decimal("0.25"), discount=Decimal("0.10"))
        assert payload.shipping_cost == Decimal("0.25")


class TestCreateOrder:
    def test_totals_for_two_lines(self, make_product, place_order):
        a = make_product(price="100.00", stock=10)
        b = make_product(price="50.00", stock=5)

        order = place_order([(a, 2), (b, 1)], shipping_cost=Decimal("10"))

        assert order.subtotal == Decimal("250")
        assert order.tax == Decimal("20")
        assert order.total == Decimal("280")
        assert order.tax_rate == Decimal("0.08")
        assert order.currency == "CFA"

    def test_stored_total_adds_up(self, make_product, place_order):
        pid = make_product(price="100.00", stock=10)

        order = place_order([(pid, 1)], shipping_cost=Decimal("0.25"), discount=Decimal("0.10"))

        assert order.total == order.subtotal + order.tax + order.shipping_cost - order.discount
        assert order.total == Decimal("108.15")

    def test_order_starts_pending_with_history(self, make_product, place_order):
        order = place_order([(make_product(), 1)])

        assert order.status == "PENDING"
        assert order.payment_status == "PENDING"
        assert [(h.status, h.note) for h in order.status_history] == [("PENDING", "Order placed")]

    def test_order_number_format(self, make_product, place_order):
        order = place_order([(make_product(), 1)])
        assert order.order_number.startswith("ORD")
        assert len(order.order_number) == len("ORD") + 8 + 6

    def test_stock_reserved_and_cart_cleared(self, make_product, place_order, stock_of, carts):
        a = make_product(stock=10)
        b = make_product(stock=5)

        place_order([(a, 3), (b, 5)])

        assert stock_of(a) == 7
        assert stock_of(b) == 0
        assert cart_quantities(carts) == {}

    def test_lines_snapshot_catalog(self, make_product, place_order):
        a = make_product(price="12.50", seller_id=SELLER_X, name="Mouse", discount="1.00")
        b = make_product(price="3.00", seller_id=SELLER_Y, name="Cable")

        order = place_order([(a, 2), (b, 1)])

        lines = [(i.product_id, i.seller_id, i.name, i.quantity, i.unit_price, i.line_total) for i in order.items]
        assert lines == [
            (a, SELLER_X, "Mouse", 2, Decimal("12.50"), Decimal("25.00")),
            (b, SELLER_Y, "Cable", 1, Decimal("3.00"), Decimal("3.00")),
        ]
        # informational only, not applied to the line total
        assert order.items[0].line_discount == Decimal("1.00")

    def test_unit_price_is_cart_snapshot(self, make_product, set_product, carts, orders, checkout):
        pid = make_product(price="10.00")
        carts.add_item(CUSTOMER, pid, 1)
        set_product(pid, price=Decimal("12.00"))

        order = orders.create_order(CUSTOMER, checkout())
        assert order.items[0].unit_price == Decimal("10.00")

    def test_billing_defaults_to_shipping(self, make_product, place_order, address):
        order = place_order([(make_product(), 1)])
        assert order.shipping_address == address.model_dump()
        assert order.billing_address == address.model_dump()

    def test_notification_sent(self, make_product, place_order, notifier):
        order = place_order([(make_product(), 1)])
        assert notifier.sent == [(CUSTOMER, order.order_number, "PENDING")]

    def test_consecutive_orders_get_distinct_numbers(self, make_product, place_order):
        pid = make_product(stock=10)
        first = place_order([(pid, 1)])
        second = place_order([(pid, 1)])
        assert first.order_number != second.order_number


class TestCreateOrderFailures:
    def test_empty_cart(self, orders, carts, checkout, db):
        carts.get_cart(CUSTOMER)
        with pytest.raises(EmptyCartError):
            orders.create_order(CUSTOMER, checkout())
        assert order_count(db) == 0

    def test_no_cart_at_all(self, orders, checkout):
        with pytest.raises(EmptyCartError):
            orders.create_order(CUSTOMER, checkout())

    def test_insufficient_stock_leaves_cart_and_stock(self, make_product, carts, orders, checkout, set_product, stock_of, db):
        pid = make_product(stock=5)
        carts.add_item(CUSTOMER, pid, 2)
        set_product(pid, stock=1)

        with pytest.raises(InsufficientStockError):
            orders.create_order(CUSTOMER, checkout())

        assert stock_of(pid) == 1
        assert cart_quantities(carts) == {pid: 2}
        assert order_count(db) == 0

    def test_inactive_product(self, make_product, carts, orders, checkout, set_product, db):
        pid = make_product()
        carts.add_item(CUSTOMER, pid, 1)
        set_product(pid, is_active=False)

        with pytest.raises(ProductUnavailableError):
            orders.create_order(CUSTOMER, checkout())
        assert order_count(db) == 0

    def test_invalid_totals(self, make_product, carts, orders, checkout, stock_of):
        pid = make_product(price="10.00", stock=5)
        carts.add_item(CUSTOMER, pid, 1)

        with pytest.raises(InvalidTotalsError):
            orders.create_order(CUSTOMER, checkout(discount=Decimal("100")))
        assert stock_of(pid) == 5

    def test_sub_cent_shipping_rejected_before_reserving(self, make_product, carts, orders, address, stock_of, db):
        pid = make_product(price="100.00", stock=5)
        carts.add_item(CUSTOMER, pid, 1)
        unchecked = OrderCreate.model_construct(
            payment_method="card",
            shipping_address=address,
            billing_address=None,
            shipping_cost=Decimal("0.006"),
            discount=Decimal("0.004"),
            notes=None,
        )

        with pytest.raises(InvalidTotalsError):
            orders.create_order(CUSTOMER, unchecked)
        assert stock_of(pid) == 5
        assert order_count(db) == 0

    def test_lost_race_rolls_back_everything(self, make_product, carts, orders, checkout, stock_of, db, monkeypatch):
        a = make_product(stock=10)
        b = make_product(stock=10)
        carts.add_item(CUSTOMER, a, 2)
        carts.add_item(CUSTOMER, b, 3)

        real_reserve = orders.stock_ledger.reserve

        def reserve(product_id, quantity):
            if product_id == b:
                raise InsufficientStockError(product_id, quantity, 0)
            real_reserve(product_id, quantity)

        monkeypatch.setattr(orders.stock_ledger, "reserve", reserve)

        with pytest.raises(InsufficientStockError):
            orders.create_order(CUSTOMER, checkout())

        # first line was reserved, then given back by the rollback
        assert stock_of(a) == 10
        assert stock_of(b) == 10
        assert order_count(db) == 0
        assert cart_quantities(carts) == {a: 2, b: 3}

    def test_failed_rollback_is_inconsistent(self, make_product, carts, orders, checkout, db, monkeypatch):
        a = make_product(stock=10)
        b = make_product(stock=10)
        carts.add_item(CUSTOMER, a, 1)
        carts.add_item(CUSTOMER, b, 1)

        def reserve(product_id, quantity):
            raise InsufficientStockError(product_id, quantity, 0)

        def broken_rollback():
            raise RuntimeError("connection lost")

        monkeypatch.setattr(orders.stock_ledger, "reserve", reserve)
        monkeypatch.setattr(db, "rollback", broken_rollback)

        with pytest.raises(InconsistentStateError) as exc_info:
            orders.create_order(CUSTOMER, checkout())
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_busy_cart_lock(self, make_product, carts, orders, checkout, lock_service, stock_of):
        pid = make_product(stock=5)
        carts.add_item(CUSTOMER, pid, 1)

        with lock_service.cart_lock(CUSTOMER):
            with pytest.raises(ConflictError):
                orders.create_order(CUSTOMER, checkout())
        assert stock_of(pid) == 5

    def test_no_notification_on_failure(self, orders, checkout, notifier):
        with pytest.raises(EmptyCartError):
            orders.create_order(CUSTOMER, checkout())
        assert notifier.sent == []
