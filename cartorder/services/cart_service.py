from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cartorder.data.models.cart import CartModel
from cartorder.data.models.cart_item import CartItemModel
from cartorder.data.models.product import ProductModel
from cartorder.domain.errors import (
    CartItemNotFoundError,
    CartNotFoundError,
    ConflictError,
    OutOfStockError,
    ProductUnavailableError,
    ValidationError,
)
from cartorder.domain.schemas import ItemIn
from cartorder.repos.cart_repo import CartRepo
from cartorder.repos.product_repo import ProductRepo
from cartorder.services.lock_service import LockService
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


def _is_sellable(product: ProductModel | None) -> bool:
    return product is not None and product.is_active and product.stock > 0


class CartService:
    """
    Per-customer cart, one per customer, created on first access.
    commands (add, update, remove, clear, merge) run under the customer's
    redis lock and bump the cart version
    query (get, total) heals the cart against catalog drift
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service

    #query
    def get_cart(self, customer_id: int) -> Dict[str, Any]:
        cart = self._get_or_create_cart(customer_id)
        items = self.repo.get_cart_items(cart.id)
        products = self.products.get_products(i.product_id for i in items)

        valid = [i for i in items if _is_sellable(products.get(i.product_id))]

        if len(valid) != len(items):
            stale = [i.product_id for i in items if not _is_sellable(products.get(i.product_id))]
            logger.info(f"Dropping unavailable products {stale} from cart of customer {customer_id}")
            with self._locked_cart(customer_id) as locked:
                self.repo.delete_cart_items(locked.id, stale)
            items = self.repo.get_cart_items(cart.id)
            valid = [i for i in items if i.product_id not in stale]

        return self._serialize(cart, valid, products)

    def get_cart_total(self, customer_id: int) -> Dict[str, Any]:
        cart = self.get_cart(customer_id)

        subtotal = sum((i["price"] * i["quantity"] for i in cart["items"]), Decimal("0.00"))
        total_items = sum(i["quantity"] for i in cart["items"])

        return {
            "subtotal": subtotal,
            "total_items": total_items,
            "items": len(cart["items"]),
        }

    #commands
    def add_item(self, customer_id: int, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        with self._locked_cart(customer_id) as cart:
            product = self._sellable_product(product_id)
            existing_item = self.repo.get_cart_item(cart.id, product_id)

            #requested total = what is already in the cart + the new quantity
            requested = quantity + (existing_item.quantity if existing_item else 0)
            if product.stock < requested:
                raise OutOfStockError(product_id, product.stock)

            if existing_item:
                logger.info(
                    f"Product {product_id} already in cart of customer {customer_id}, "
                    f"quantity {existing_item.quantity} -> {requested}"
                )
                existing_item.quantity = requested
                existing_item.price = product.price
            else:
                logger.info(f"Adding product {product_id} to cart of customer {customer_id}")
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart.id,
                        product_id=product_id,
                        quantity=quantity,
                        price=product.price,
                    )
                )

        return self.get_cart(customer_id)

    def update_quantity(self, customer_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            return self.remove_item(customer_id, product_id)

        with self._locked_cart(customer_id, create=False) as cart:
            item = self.repo.get_cart_item(cart.id, product_id)
            if not item:
                raise CartItemNotFoundError(product_id)

            product = self._sellable_product(product_id)
            if product.stock < quantity:
                raise OutOfStockError(product_id, product.stock)

            item.quantity = quantity
            item.price = product.price

        logger.info(f"Product {product_id} in cart of customer {customer_id} set to {quantity}")
        return self.get_cart(customer_id)

    def remove_item(self, customer_id: int, product_id: int) -> Dict[str, Any]:
        with self._locked_cart(customer_id, create=False) as cart:
            self.repo.delete_cart_item(cart.id, product_id)

        logger.info(f"Product {product_id} removed from cart of customer {customer_id}")
        return self.get_cart(customer_id)

    def clear(self, customer_id: int) -> Dict[str, Any]:
        with self._locked_cart(customer_id) as cart:
            self.repo.delete_cart_items(cart.id)

        logger.info(f"Cart of customer {customer_id} cleared")
        return self.get_cart(customer_id)

    def merge(self, customer_id: int, guest_items: Iterable[ItemIn]) -> Dict[str, Any]:
        """
        Merge a guest cart into the customer's cart.

        Quantities are summed with what the customer already has and capped
        at current stock. Guest lines for inactive or sold-out products are
        dropped without error.
        """
        guest_items = list(guest_items)

        with self._locked_cart(customer_id) as cart:
            lines = {i.product_id: i for i in self.repo.get_cart_items(cart.id)}
            products = self.products.get_products(g.product_id for g in guest_items)

            for guest in guest_items:
                product = products.get(guest.product_id)
                if guest.quantity < 1 or not _is_sellable(product):
                    logger.info(f"Skipping guest line for product {guest.product_id}")
                    continue

                existing = lines.get(guest.product_id)
                current = existing.quantity if existing else 0
                merged = min(current + guest.quantity, product.stock)

                if existing:
                    existing.quantity = merged
                    existing.price = product.price
                else:
                    line = CartItemModel(
                        cart_id=cart.id,
                        product_id=guest.product_id,
                        quantity=merged,
                        price=product.price,
                    )
                    self.repo.add_cart_item(line)
                    lines[guest.product_id] = line

        logger.info(f"Merged {len(guest_items)} guest lines into cart of customer {customer_id}")
        return self.get_cart(customer_id)

    # =====================================================
    # helpers
    # =====================================================
    def _get_or_create_cart(self, customer_id: int) -> CartModel:
        cart = self.repo.get_cart_by_customer(customer_id)
        if cart:
            return cart

        try:
            created = self.repo.create_cart(CartModel(customer_id=customer_id, version=1))
        except IntegrityError:
            #created concurrently, unique customer_id
            self.repo.rollback()
            cart = self.repo.get_cart_by_customer(customer_id)
            if cart is None:
                raise
            return cart

        logger.info(f"Created cart {created.id} for customer {customer_id}")
        return created

    @contextmanager
    def _locked_cart(self, customer_id: int, create: bool = True):
        with self.lock_service.cart_lock(customer_id):
            if create:
                cart = self._get_or_create_cart(customer_id)
            else:
                cart = self.repo.get_cart_by_customer(customer_id)
                if cart is None:
                    raise CartNotFoundError(customer_id)

            try:
                yield cart
                self._bump_version(cart)
                self.repo.commit()
            except BaseException:
                self.repo.rollback()
                raise

    def _bump_version(self, cart: CartModel) -> None:
        # UPDATE carts SET version = v + 1 WHERE id = :id AND version = v
        rowcount = self.repo.update_cart_version(cart_id=cart.id, old_version=cart.version)
        if rowcount == 0:
            logger.warning(f"Version conflict on cart {cart.id}")
            raise ConflictError("Cart was modified by another operation")

    def _sellable_product(self, product_id: int) -> ProductModel:
        product = self.products.get_product(product_id)
        if not product or not product.is_active:
            raise ProductUnavailableError(product_id)
        return product

    @staticmethod
    def _serialize(cart: CartModel, items: List[CartItemModel], products: Dict[int, ProductModel]) -> Dict[str, Any]:
        total = sum((i.price * i.quantity for i in items), Decimal("0.00"))

        return {
            "cart_id": cart.id,
            "customer_id": cart.customer_id,
            "items": [
                {
                    "product_id": i.product_id,
                    "name": products[i.product_id].name if i.product_id in products else None,
                    "image": products[i.product_id].image if i.product_id in products else None,
                    "quantity": i.quantity,
                    "price": i.price,
                    "added_at": i.added_at,
                }
                for i in items
            ],
            "total": total,
        }
