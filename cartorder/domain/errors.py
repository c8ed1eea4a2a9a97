"""Service errors.

Every failure a use case can report maps to one stable ``kind``. The API
layer renders ``kind`` and the message; nothing from the storage layer
leaks through these.
"""


class CartOrderError(Exception):
    """Base class for all service errors."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


# ---------------------------------------------------------------------------
# not_found
# ---------------------------------------------------------------------------
class NotFoundError(CartOrderError):
    kind = "not_found"
    status_code = 404


class CartNotFoundError(NotFoundError):
    def __init__(self, customer_id: int):
        self.customer_id = customer_id
        super().__init__(f"Cart not found for customer {customer_id}")


class CartItemNotFoundError(NotFoundError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is not in the cart")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


# ---------------------------------------------------------------------------
# validation
# ---------------------------------------------------------------------------
class ValidationError(CartOrderError):
    kind = "validation"
    status_code = 400


class EmptyCartError(ValidationError):
    def __init__(self):
        super().__init__("Cart is empty")


class ProductUnavailableError(ValidationError):
    """Product is missing from the catalog or no longer active."""

    def __init__(self, product_id: int, name: str | None = None):
        self.product_id = product_id
        super().__init__(f"Product {name or product_id} is no longer available")


class OutOfStockError(ValidationError):
    """Raised by cart operations; carries how many units can still be had."""

    def __init__(self, product_id: int, available: int):
        self.product_id = product_id
        self.available = available
        super().__init__(f"Only {available} items available in stock")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "available": self.available}


class InsufficientStockError(ValidationError):
    """Raised at order commit when a line cannot be reserved."""

    def __init__(self, product_id: int, requested: int, available: int | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        msg = f"Insufficient stock for product {product_id} (requested {requested}"
        if available is not None:
            msg = f"{msg}, available {available}"
        super().__init__(f"{msg})")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "product_id": self.product_id, "available": self.available}


class InvalidTotalsError(ValidationError):
    pass


# ---------------------------------------------------------------------------
# forbidden / state machine / concurrency
# ---------------------------------------------------------------------------
class ForbiddenError(CartOrderError):
    kind = "forbidden"
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InvalidTransitionError(CartOrderError):
    kind = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Order cannot move from {current} to {target}")


class ConflictError(CartOrderError):
    """A concurrent operation won the race; the caller may retry."""

    kind = "conflict"
    status_code = 409


class InconsistentStateError(CartOrderError):
    """Partial failure that may have stranded stock; needs reconciliation."""

    kind = "inconsistent"
    status_code = 500
