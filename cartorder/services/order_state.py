# cartorder/services/order_state.py
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from cartorder.data.models.order import OrderModel
from cartorder.domain.enums import ADVANCE_TRANSITIONS, CANCELLABLE_STATES, OrderStatus
from cartorder.domain.errors import ConflictError, ForbiddenError, InvalidTransitionError, OrderNotFoundError
from cartorder.repos.order_repo import OrderRepo
from cartorder.services.notification_service import NotificationService
from cartorder.services.stock_ledger import StockLedger
from cartorder.services.transaction import commit_or_raise, rollback_or_raise
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


class OrderStateMachine:
    """
    PENDING -> CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED (sellers)
    PENDING | CONFIRMED -> CANCELLED (owning customer, gives stock back)

    Every change is a conditional UPDATE on the current status, so two
    concurrent transitions from the same state cannot both win.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.stock_ledger = StockLedger(db)
        self.notification_service = notification_service or NotificationService()

    def advance(self, order_id: int, actor_id: int, new_status: OrderStatus, note: str | None = None) -> OrderModel:
        order = self._load(order_id)

        if not any(item.seller_id == actor_id for item in order.items):
            raise ForbiddenError("Only sellers with products in this order can update it")

        current = OrderStatus(order.status)
        new_status = OrderStatus(new_status)
        if new_status not in ADVANCE_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, new_status.value)

        delivered_at = datetime.now(timezone.utc) if new_status == OrderStatus.DELIVERED else None

        try:
            self._transition(order_id, current, new_status, delivered_at)
            self.repo.add_status_entry(order_id, new_status.value, note or f"Status updated to {new_status.value}")
            commit_or_raise(self.db, f"status update of order {order_id}")
        except BaseException:
            rollback_or_raise(self.db, f"status update of order {order_id}")
            raise

        logger.info(f"Order {order_id} moved {current.value} -> {new_status.value} by seller {actor_id}")
        return self._after_change(order_id)

    def cancel(self, order_id: int, customer_id: int, reason: str | None = None) -> OrderModel:
        order = self._load(order_id)

        if order.customer_id != customer_id:
            raise ForbiddenError()

        current = OrderStatus(order.status)
        if current not in CANCELLABLE_STATES:
            raise InvalidTransitionError(current.value, OrderStatus.CANCELLED.value)

        lines = [(item.product_id, item.quantity) for item in order.items]

        try:
            self._transition(order_id, current, OrderStatus.CANCELLED)
            #exact inverse of the reservation taken at checkout
            for product_id, quantity in lines:
                self.stock_ledger.release(product_id, quantity)
            self.repo.add_status_entry(order_id, OrderStatus.CANCELLED.value, reason or "Cancelled by customer")
            commit_or_raise(self.db, f"cancellation of order {order_id}")
        except BaseException:
            rollback_or_raise(self.db, f"cancellation of order {order_id}")
            raise

        logger.info(f"Order {order_id} cancelled by customer {customer_id}, released {len(lines)} lines")
        return self._after_change(order_id)

    def _load(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError(order_id)
        return order

    def _transition(
        self,
        order_id: int,
        current: OrderStatus,
        new_status: OrderStatus,
        delivered_at: datetime | None = None,
    ) -> None:
        rowcount = self.repo.transition_status(order_id, current.value, new_status.value, delivered_at)
        if rowcount == 0:
            logger.warning(f"Order {order_id} left {current.value} concurrently")
            raise ConflictError(f"Order {order_id} was updated by another operation")

    def _after_change(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        self.notification_service.send_order_notification(order.customer_id, order.order_number, order.status)
        return order
