# cartorder/services/order_service.py
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable

from sqlalchemy.orm import Session

from cartorder.data.models.order import OrderModel
from cartorder.data.models.order_item import OrderItemModel
from cartorder.data.models.order_status import OrderStatusEntryModel
from cartorder.domain.enums import OrderStatus, PaymentStatus, Role
from cartorder.domain.errors import (
    ConflictError,
    EmptyCartError,
    ForbiddenError,
    InsufficientStockError,
    InvalidTotalsError,
    OrderNotFoundError,
    ProductUnavailableError,
)
from cartorder.domain.schemas import OrderCreate, OrderOut, OrderQuery
from cartorder.repos.cart_repo import CartRepo
from cartorder.repos.order_repo import OrderRepo
from cartorder.repos.product_repo import ProductRepo
from cartorder.services.lock_service import LockService
from cartorder.services.notification_service import NotificationService
from cartorder.services.order_number import OrderNumberService
from cartorder.services.stock_ledger import StockLedger
from cartorder.services.transaction import commit_or_raise, rollback_or_raise
from cartorder.utils.settings import DEFAULT_CURRENCY, TAX_RATE
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def compute_totals(
    line_totals: Iterable[Decimal],
    tax_rate: Decimal,
    shipping_cost: Decimal = Decimal("0"),
    discount: Decimal = Decimal("0"),
) -> Dict[str, Decimal]:
    """
    subtotal = sum of line totals
    tax      = subtotal * tax_rate, rounded half-up to cents
    total    = subtotal + tax + shipping_cost - discount
    """
    if shipping_cost < 0:
        raise InvalidTotalsError("Shipping cost cannot be negative")
    if discount < 0:
        raise InvalidTotalsError("Discount cannot be negative")
    #money columns are Numeric(12, 2)
    for label, amount in (("Shipping cost", shipping_cost), ("Discount", discount)):
        if amount != amount.quantize(CENTS):
            raise InvalidTotalsError(f"{label} {amount} has more than two decimal places")

    subtotal = sum(line_totals, Decimal("0.00"))
    tax = (subtotal * tax_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    total = subtotal + tax + shipping_cost - discount

    if total < 0:
        raise InvalidTotalsError(f"Discount {discount} exceeds the order value")

    return {
        "subtotal": subtotal,
        "tax": tax,
        "shipping_cost": shipping_cost,
        "discount": discount,
        "total": total,
    }


class OrderService:
    """
    Orders domain: cart -> order commit and order queries.
    Status changes after creation live in OrderStateMachine.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        order_numbers: OrderNumberService,
        notification_service: NotificationService | None = None,
        tax_rate: Decimal = TAX_RATE,
        currency: str = DEFAULT_CURRENCY,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.products = ProductRepo(db)
        self.stock_ledger = StockLedger(db)
        self.lock_service = lock_service
        self.order_numbers = order_numbers
        self.notification_service = notification_service or NotificationService()
        self.tax_rate = tax_rate
        self.currency = currency

    # =====================================================
    # COMMAND
    # =====================================================
    def create_order(self, customer_id: int, payload: OrderCreate) -> OrderModel:
        """
        Use Case: place an order from the customer's cart.

        1. load cart, fail on empty
        2. validate every line (active, in stock) before touching anything
        3. compute totals
        4. mint order number (atomic daily sequence)
        5. persist order PENDING/PENDING with "Order placed" history
        6. reserve stock for every line
        7. clear the cart
        8. commit, notify, return

        Steps 5-7 share one transaction: a lost reservation race rolls back
        the order row and every reservation taken so far.
        """
        with self.lock_service.cart_lock(customer_id):
            order_id = self._commit_order(customer_id, payload)

        order = self.repo.get_order(order_id)
        logger.info(f"Order {order.order_number} placed by customer {customer_id}, total {order.total}")

        self.notification_service.send_order_notification(customer_id, order.order_number, order.status)
        return order

    def _commit_order(self, customer_id: int, payload: OrderCreate) -> int:
        try:
            cart = self.carts.get_cart_by_customer(customer_id)
            items = self.carts.get_cart_items(cart.id) if cart else []
            if not items:
                raise EmptyCartError()

            #validate all lines, no mutation yet
            products = self.products.get_products(i.product_id for i in items)
            for item in items:
                product = products.get(item.product_id)
                if not product or not product.is_active:
                    raise ProductUnavailableError(item.product_id, product.name if product else None)
                if product.stock < item.quantity:
                    raise InsufficientStockError(item.product_id, item.quantity, product.stock)

            order_items = []
            for item in items:
                product = products[item.product_id]
                order_items.append(
                    OrderItemModel(
                        product_id=product.id,
                        seller_id=product.seller_id,
                        name=product.name,
                        image=product.image,
                        quantity=item.quantity,
                        unit_price=item.price,
                        line_discount=product.discount or Decimal("0"),
                        line_total=item.price * item.quantity,
                    )
                )

            totals = compute_totals(
                (i.line_total for i in order_items),
                self.tax_rate,
                shipping_cost=payload.shipping_cost,
                discount=payload.discount,
            )

            order_number = self.order_numbers.next_order_number()
            shipping_address = payload.shipping_address.model_dump()
            billing_address = (payload.billing_address or payload.shipping_address).model_dump()

            order = OrderModel(
                order_number=order_number,
                customer_id=customer_id,
                items=order_items,
                subtotal=totals["subtotal"],
                tax_rate=self.tax_rate,
                tax=totals["tax"],
                shipping_cost=totals["shipping_cost"],
                discount=totals["discount"],
                total=totals["total"],
                currency=self.currency,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_method=payload.payment_method,
                shipping_address=shipping_address,
                billing_address=billing_address,
                notes=payload.notes,
                status_history=[
                    OrderStatusEntryModel(status=OrderStatus.PENDING.value, note="Order placed"),
                ],
            )
            self.repo.add_order(order)
            order_id = order.id

            for item in items:
                self.stock_ledger.reserve(item.product_id, item.quantity)

            self.carts.delete_cart_items(cart.id)
            if self.carts.update_cart_version(cart.id, cart.version) == 0:
                raise ConflictError("Cart was modified during checkout")

            commit_or_raise(self.db, f"order {order_number} commit")
        except BaseException:
            rollback_or_raise(self.db, f"checkout of customer {customer_id}")
            raise

        return order_id

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: int, party_id: int, role: Role) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError(order_id)

        if role == Role.CUSTOMER and order.customer_id != party_id:
            raise ForbiddenError()
        if role == Role.SELLER and not any(i.seller_id == party_id for i in order.items):
            raise ForbiddenError()

        return order

    def list_orders(self, party_id: int, role: Role, query: OrderQuery) -> Dict[str, Any]:
        """Customers see their orders, sellers see orders with their lines (and only those lines)."""
        orders, total = self.repo.list_orders(party_id, role, query)

        out = []
        for order in orders:
            dto = OrderOut.model_validate(order)
            if role == Role.SELLER:
                dto = dto.model_copy(update={"items": [i for i in dto.items if i.seller_id == party_id]})
            out.append(dto)

        return {
            "orders": out,
            "pagination": {
                "total": total,
                "page": query.page,
                "limit": query.limit,
                "pages": math.ceil(total / query.limit) if total else 0,
            },
        }
