# cartorder/services/revenue_service.py
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from cartorder.domain.enums import OrderStatus
from cartorder.repos.order_repo import OrderRepo


class RevenueService:
    """Per-seller statistics, read-only."""

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def seller_stats(self, seller_id: int) -> Dict[str, Any]:
        #only this seller's own lines count, even inside shared orders
        revenue = Decimal(str(self.repo.seller_revenue(seller_id))).quantize(Decimal("0.01"))

        by_status = {status: 0 for status in OrderStatus}
        for status, count in self.repo.seller_status_counts(seller_id):
            by_status[OrderStatus(status)] = count

        return {
            "seller_id": seller_id,
            "total_orders": sum(by_status.values()),
            "total_revenue": revenue,
            "by_status": by_status,
        }
