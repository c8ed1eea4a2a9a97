# cartorder/repos/order_repo.py
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import asc, desc, exists, func, select, update
from sqlalchemy.orm import Session, selectinload

from cartorder.data.models.order import OrderModel
from cartorder.data.models.order_item import OrderItemModel
from cartorder.data.models.order_status import OrderStatusEntryModel
from cartorder.domain.enums import OrderSortField, Role, SortOrder
from cartorder.domain.schemas import OrderQuery

#whitelisted sort columns, never built from caller strings
_SORT_COLUMNS = {
    OrderSortField.CREATED_AT: OrderModel.created_at,
    OrderSortField.TOTAL: OrderModel.total,
    OrderSortField.ORDER_NUMBER: OrderModel.order_number,
}


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        #no commit, caller owns the transaction
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        stmt = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.status_history))
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def transition_status(
        self,
        order_id: int,
        current: str,
        new: str,
        delivered_at: datetime | None = None,
    ) -> int:
        values = {"status": new}
        if delivered_at is not None:
            values["delivered_at"] = delivered_at
        res = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def add_status_entry(self, order_id: int, status: str, note: str | None) -> OrderStatusEntryModel:
        entry = OrderStatusEntryModel(order_id=order_id, status=status, note=note)
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_orders(self, party_id: int, role: Role, query: OrderQuery) -> Tuple[List[OrderModel], int]:
        conditions = []
        if role == Role.SELLER:
            conditions.append(
                exists().where(
                    OrderItemModel.order_id == OrderModel.id,
                    OrderItemModel.seller_id == party_id,
                )
            )
        else:
            conditions.append(OrderModel.customer_id == party_id)

        if query.status is not None:
            conditions.append(OrderModel.status == query.status.value)
        if query.created_from is not None:
            conditions.append(OrderModel.created_at >= query.created_from)
        if query.created_to is not None:
            conditions.append(OrderModel.created_at <= query.created_to)

        total = self.db.execute(
            select(func.count()).select_from(OrderModel).where(*conditions)
        ).scalar_one()

        column = _SORT_COLUMNS[query.sort_by]
        direction = desc if query.sort_order == SortOrder.DESC else asc

        stmt = (
            select(OrderModel)
            .where(*conditions)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.status_history))
            .order_by(direction(column), direction(OrderModel.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        orders = list(self.db.execute(stmt).scalars().all())
        return orders, total

    def seller_revenue(self, seller_id: int):
        return self.db.execute(
            select(func.coalesce(func.sum(OrderItemModel.line_total), 0))
            .where(OrderItemModel.seller_id == seller_id)
        ).scalar_one()

    def seller_status_counts(self, seller_id: int) -> List[Tuple[str, int]]:
        stmt = (
            select(OrderModel.status, func.count(OrderModel.id.distinct()))
            .join(OrderItemModel, OrderItemModel.order_id == OrderModel.id)
            .where(OrderItemModel.seller_id == seller_id)
            .group_by(OrderModel.status)
        )
        return [(status, count) for status, count in self.db.execute(stmt).all()]
