# cartorder/domain/enums.py
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Role(str, Enum):
    CUSTOMER = "customer"
    SELLER = "seller"


class OrderSortField(str, Enum):
    CREATED_AT = "created_at"
    TOTAL = "total"
    ORDER_NUMBER = "order_number"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


#seller-driven forward chain, no skipping
ADVANCE_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

#customer-driven
CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}
