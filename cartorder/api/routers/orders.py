# cartorder/api/routers/orders.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cartorder.api.deps import Actor, get_actor, get_lock_service, get_order_numbers, get_order_query
from cartorder.data.database import get_db
from cartorder.domain.enums import Role
from cartorder.domain.schemas import (
    CancelIn,
    OrderCreate,
    OrderListOut,
    OrderOut,
    OrderQuery,
    SellerStatsOut,
    StatusUpdateIn,
)
from cartorder.services.lock_service import LockService
from cartorder.services.order_number import OrderNumberService
from cartorder.services.order_service import OrderService
from cartorder.services.order_state import OrderStateMachine
from cartorder.services.revenue_service import RevenueService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    order_numbers: OrderNumberService = Depends(get_order_numbers),
) -> OrderService:
    return OrderService(db=db, lock_service=lock_service, order_numbers=order_numbers)


def get_state_machine(db: Session = Depends(get_db)) -> OrderStateMachine:
    return OrderStateMachine(db)


def get_revenue(db: Session = Depends(get_db)) -> RevenueService:
    return RevenueService(db)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_service),
):
    """
    Places an order from the customer's cart.
    Stock is reserved and the cart emptied in the same transaction.
    """
    actor.require(Role.CUSTOMER)
    return svc.create_order(actor.user_id, payload)


@router.get("", response_model=OrderListOut)
def list_orders(
    query: OrderQuery = Depends(get_order_query),
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(actor.user_id, actor.role, query)


@router.get("/stats", response_model=SellerStatsOut)
def seller_stats(actor: Actor = Depends(get_actor), svc: RevenueService = Depends(get_revenue)):
    actor.require(Role.SELLER)
    return svc.seller_stats(actor.user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_service),
):
    return svc.get_order(order_id, actor.user_id, actor.role)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: StatusUpdateIn,
    actor: Actor = Depends(get_actor),
    machine: OrderStateMachine = Depends(get_state_machine),
):
    actor.require(Role.SELLER)
    return machine.advance(order_id, actor.user_id, payload.status, payload.note)


@router.patch("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: CancelIn | None = None,
    actor: Actor = Depends(get_actor),
    machine: OrderStateMachine = Depends(get_state_machine),
):
    actor.require(Role.CUSTOMER)
    reason = payload.reason if payload else None
    return machine.cancel(order_id, actor.user_id, reason)
