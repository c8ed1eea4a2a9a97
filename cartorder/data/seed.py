# cartorder/data/seed.py
from decimal import Decimal

from cartorder.data import models  # noqa: F401
from cartorder.data.database import Base, SessionLocal, engine
from cartorder.data.models.product import ProductModel
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_PRODUCTS = [
    {"seller_id": 1, "name": "Wireless Mouse", "price": Decimal("12.50"), "stock": 40},
    {"seller_id": 1, "name": "USB-C Cable", "price": Decimal("5.00"), "stock": 200},
    {"seller_id": 2, "name": "Desk Lamp", "price": Decimal("31.90"), "stock": 15},
    {"seller_id": 2, "name": "Notebook A5", "price": Decimal("3.20"), "stock": 0},
]


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            logger.info("Products already present, skipping seed")
            return
        db.add_all(ProductModel(**p) for p in DEMO_PRODUCTS)
        db.commit()
        logger.info(f"Seeded {len(DEMO_PRODUCTS)} products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
