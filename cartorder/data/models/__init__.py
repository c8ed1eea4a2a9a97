#import all models so SQLAlchemy registers them in Base.metadata

from cartorder.data.models.product import ProductModel
from cartorder.data.models.cart import CartModel
from cartorder.data.models.cart_item import CartItemModel
from cartorder.data.models.order import OrderModel
from cartorder.data.models.order_item import OrderItemModel
from cartorder.data.models.order_status import OrderStatusEntryModel

__all__ = [
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusEntryModel",
]
