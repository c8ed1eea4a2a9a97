# cartorder/api/errors.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from cartorder.domain.errors import CartOrderError
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


async def service_error_handler(request: Request, exc: CartOrderError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def storage_error_handler(request: Request, exc: Exception):
    #log the real cause, never send it to the client
    logger.exception(f"{request.method} {request.url.path} -> storage failure", exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={"error": "unavailable", "detail": "Service temporarily unavailable"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CartOrderError, service_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.add_exception_handler(RedisError, storage_error_handler)
