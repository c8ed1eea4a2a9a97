# cartorder/api/deps.py
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

from fastapi import Query

from cartorder.domain.enums import OrderSortField, OrderStatus, Role, SortOrder
from cartorder.domain.errors import ForbiddenError
from cartorder.domain.schemas import OrderQuery
from cartorder.services.lock_service import LockService
from cartorder.services.order_number import OrderNumberService


@dataclass(frozen=True)
class Actor:
    """Identity handed over by the authentication layer."""

    user_id: int
    role: Role

    def require(self, role: Role) -> "Actor":
        if self.role != role:
            raise ForbiddenError(f"Only {role.value}s can do this")
        return self


def get_actor(
    user_id: int = Query(..., gt=0),
    role: Role = Query(Role.CUSTOMER),
) -> Actor:
    return Actor(user_id=user_id, role=role)


def get_order_query(
    status: OrderStatus | None = Query(None),
    created_from: datetime | None = Query(None),
    created_to: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: OrderSortField = Query(OrderSortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
) -> OrderQuery:
    return OrderQuery(
        status=status,
        created_from=created_from,
        created_to=created_to,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_order_numbers() -> OrderNumberService:
    return OrderNumberService()
