from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String

from cartorder.data.database import Base


class ProductModel(Base):
    """Catalog row; stock and total_sales are written by StockLedger only."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    seller_id = Column(Integer, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    image = Column(String(512), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False, default=0)

    stock = Column(Integer, nullable=False, default=0)
    total_sales = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),)
