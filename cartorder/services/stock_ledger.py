# cartorder/services/stock_ledger.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from cartorder.data.models.product import ProductModel
from cartorder.domain.errors import InconsistentStateError, InsufficientStockError, ValidationError
from cartorder.repos.product_repo import ProductRepo
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


class StockLedger:
    """
    The only writer of products.stock / products.total_sales.

    - reserve: check and decrement in one conditional UPDATE, so two
      concurrent reservations can never both pass the stock check
    - release: unconditional increment, inverse of reserve
    - never commits, runs inside the caller's transaction
    """

    def __init__(self, db: Session):
        self.db = db
        self.products = ProductRepo(db)

    def reserve(self, product_id: int, quantity: int) -> None:
        if quantity < 1:
            raise ValidationError("Reservation quantity must be at least 1")

        # UPDATE products SET stock = stock - q WHERE id = :id AND is_active AND stock >= q
        res = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.is_active.is_(True),
                ProductModel.stock >= quantity,
            )
            .values(
                stock=ProductModel.stock - quantity,
                total_sales=ProductModel.total_sales + quantity,
            )
            .execution_options(synchronize_session=False)
        )

        if res.rowcount == 0:
            available = self.products.get_stock(product_id)
            logger.warning(
                f"Reservation of {quantity} x product {product_id} rejected, available: {available}"
            )
            raise InsufficientStockError(product_id, quantity, available)

        logger.info(f"Reserved {quantity} x product {product_id}")

    def release(self, product_id: int, quantity: int) -> None:
        if quantity < 1:
            raise ValidationError("Release quantity must be at least 1")

        res = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(
                stock=ProductModel.stock + quantity,
                total_sales=ProductModel.total_sales - quantity,
            )
            .execution_options(synchronize_session=False)
        )

        if res.rowcount == 0:
            #stock cannot be given back to a product that no longer exists
            raise InconsistentStateError(
                f"Cannot release {quantity} x product {product_id}: product record missing"
            )

        logger.info(f"Released {quantity} x product {product_id}")
