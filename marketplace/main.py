# marketplace/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from marketplace.api.routers import carts, health, orders, search
from marketplace.data.database import Database
from marketplace.errors import InternalError, MarketplaceError, ValidationError
from marketplace.utils import settings
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    logger.info("=" * 60)
    logger.info("INITIALIZING DATABASE...")
    # blocking driver calls and retry sleeps stay off the event loop
    await run_in_threadpool(database.wait_until_ready)
    if app.state.create_tables:
        await run_in_threadpool(database.create_all)
    logger.info("=" * 60)
    try:
        yield
    finally:
        if app.state.owns_database:
            database.dispose()


def create_app(database: Database | None = None, create_tables: bool | None = None) -> FastAPI:
    app = FastAPI(
        title="Marketplace Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.owns_database = database is None
    app.state.database = database or Database()
    app.state.create_tables = settings.DB_CREATE_TABLES if create_tables is None else create_tables

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=ValidationError.status_code, content=jsonable_encoder({"detail": exc.errors()}))

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(f"Unhandled store error on {request.method} {request.url.path}: {exc}")
        error = InternalError()
        return JSONResponse(status_code=error.status_code, content={"detail": error.message})

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(search.router)

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
