# cartorder/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, List
from decimal import Decimal
from datetime import datetime

from cartorder.domain.enums import OrderSortField, OrderStatus, SortOrder


# =====================================================
# CART
# =====================================================
class ItemIn(BaseModel):
    """Add a product to the cart."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1)


class QuantityIn(BaseModel):
    """New quantity; anything below 1 removes the line."""

    quantity: int


class SyncCartIn(BaseModel):
    """Guest cart collected before login."""

    items: List[ItemIn]


class CartItemOut(BaseModel):
    product_id: int
    name: str | None = None
    image: str | None = None
    quantity: int
    price: Decimal
    added_at: datetime | None = None


class CartOut(BaseModel):
    cart_id: int
    customer_id: int
    items: List[CartItemOut]
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class CartTotalOut(BaseModel):
    subtotal: Decimal
    total_items: int
    items: int


# =====================================================
# ORDERS
# =====================================================
class AddressIn(BaseModel):
    full_name: str = Field(..., min_length=1)
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    phone: str


class OrderCreate(BaseModel):
    """Checkout input; the cart itself is read server-side."""

    payment_method: str = Field(..., min_length=1, max_length=64)
    shipping_address: AddressIn
    billing_address: AddressIn | None = None
    shipping_cost: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    notes: str | None = None


class StatusUpdateIn(BaseModel):
    status: OrderStatus
    note: str | None = None


class CancelIn(BaseModel):
    reason: str | None = None


class OrderItemOut(BaseModel):
    product_id: int
    seller_id: int
    name: str
    image: str | None = None
    quantity: int
    unit_price: Decimal
    line_discount: Decimal
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class StatusEntryOut(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: str | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: str
    customer_id: int
    items: List[OrderItemOut]
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    shipping_cost: Decimal
    discount: Decimal
    total: Decimal
    currency: str
    status: OrderStatus
    payment_status: str
    payment_method: str
    shipping_address: dict
    billing_address: dict
    notes: str | None = None
    status_history: List[StatusEntryOut]
    created_at: datetime
    delivered_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderQuery(BaseModel):
    """Typed filters for order listings."""

    status: OrderStatus | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    sort_by: OrderSortField = OrderSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class OrderListOut(BaseModel):
    orders: List[OrderOut]
    pagination: Pagination


class SellerStatsOut(BaseModel):
    seller_id: int
    total_orders: int
    total_revenue: Decimal
    by_status: Dict[OrderStatus, int]
