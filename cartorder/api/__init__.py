# cartorder/api/__init__.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cartorder.api.errors import register_error_handlers
from cartorder.api.routers import carts, health, orders
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    #import all models before create_all
    from cartorder.data import models  # noqa: F401
    from cartorder.data.database import Base, engine

    logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Cart & Order Service",
        version="1.0.0",
        lifespan=lifespan if with_lifespan else None,
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)

    return app
