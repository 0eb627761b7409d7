from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeout

from . import auth, cart, products
from .config import get_settings
from .database import Base, engine
from .errors import InternalFailure, ShopError
from .logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_settings().create_tables_on_startup:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


async def shop_error_handler(request: Request, exc: ShopError):
    if isinstance(exc, InternalFailure):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "; ".join(parts) or "Invalid request"},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeout)):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"message": "Service temporarily unavailable"},
        )
    return _internal_failure()


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _internal_failure()


def _internal_failure() -> JSONResponse:
    failure = InternalFailure()
    return JSONResponse(status_code=failure.status_code, content={"message": failure.message})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Shopcart",
        description="Registration, product catalog and shopping cart API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth.router)
    app.include_router(auth.admin_router)
    app.include_router(products.router)
    app.include_router(products.admin_router)
    app.include_router(cart.router)

    @app.get("/")
    async def root():
        return {"message": "Shopcart API is running"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("shopcart.main:app", host="0.0.0.0", port=8000, reload=True)
