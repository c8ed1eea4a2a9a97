#cartorder/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cartorder.api.deps import Actor, get_actor, get_lock_service
from cartorder.data.database import get_db
from cartorder.domain.schemas import (
    CartOut,
    CartTotalOut,
    ItemIn,
    QuantityIn,
    SyncCartIn,
)
from cartorder.services.cart_service import CartService
from cartorder.services.lock_service import LockService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(db=db, lock_service=lock_service)


@router.get("", response_model=CartOut)
def get_cart(actor: Actor = Depends(get_actor), svc: CartService = Depends(get_service)):
    return svc.get_cart(actor.user_id)


@router.get("/total", response_model=CartTotalOut)
def get_cart_total(actor: Actor = Depends(get_actor), svc: CartService = Depends(get_service)):
    return svc.get_cart_total(actor.user_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    actor: Actor = Depends(get_actor),
    svc: CartService = Depends(get_service),
):
    return svc.add_item(actor.user_id, payload.product_id, payload.quantity)


@router.put("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: int,
    payload: QuantityIn,
    actor: Actor = Depends(get_actor),
    svc: CartService = Depends(get_service),
):
    return svc.update_quantity(actor.user_id, product_id, payload.quantity)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    actor: Actor = Depends(get_actor),
    svc: CartService = Depends(get_service),
):
    return svc.remove_item(actor.user_id, product_id)


@router.delete("", response_model=CartOut)
def clear_cart(actor: Actor = Depends(get_actor), svc: CartService = Depends(get_service)):
    return svc.clear(actor.user_id)


@router.post("/sync", response_model=CartOut)
def sync_cart(
    payload: SyncCartIn,
    actor: Actor = Depends(get_actor),
    svc: CartService = Depends(get_service),
):
    """Merge the guest cart collected before login."""
    return svc.merge(actor.user_id, payload.items)
