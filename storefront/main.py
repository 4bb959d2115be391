# storefront/main.py
from contextlib import asynccontextmanager

import redis
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from storefront.api import api_router
from storefront.api.routers import health
from storefront.data.database import Base, engine
from storefront.domain.errors import StoreError
from storefront.utils.logging import get_logger

# every model has to be registered on Base.metadata before create_all
import storefront.data.models  # noqa: F401

logger = get_logger(__name__)


def init_db() -> None:
    logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
    Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "error": exc.detail},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"{request.method} {request.url.path} store error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal store error", "error": str(exc.__class__.__name__)},
    )


async def lock_backend_error_handler(request: Request, exc: redis.RedisError):
    logger.error(f"{request.method} {request.url.path} lock backend error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"message": "Lock service unavailable", "error": exc.__class__.__name__},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid data", "error": f"{field}: {first.get('msg', '')}".strip(": ")},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(redis.RedisError, lock_backend_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(health.router)
    app.include_router(api_router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
