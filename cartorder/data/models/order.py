from sqlalchemy import Column, Integer, String, DateTime, Numeric, JSON, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from cartorder.data.database import Base


class OrderModel(Base):
    """
    Placed order. Items and totals are written once at commit; afterwards
    only status, history and delivered_at change.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True)
    customer_id = Column(Integer, nullable=False, index=True)

    subtotal = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(6, 4), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(8), nullable=False)

    status = Column(String(20), nullable=False, default="PENDING", index=True)  # PENDING .. DELIVERED | CANCELLED
    payment_status = Column(String(20), nullable=False, default="PENDING")
    payment_method = Column(String(64), nullable=False)

    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    status_history = relationship(
        "OrderStatusEntryModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusEntryModel.id",
    )
