"""
FastAPI server for the Stock API.

Provides REST endpoints for creating, reading, updating and deleting stock
records.
"""

import re
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from . import __version__
from .config import Settings, get_settings
from .db_client import StockDB
from .errors import InvalidInputError, NotFoundError, StoreFailureError
from .models import Stock, StockResponse, HealthCheck

# Largest value a PostgreSQL BIGINT can hold
MAX_STOCK_ID = 2 ** 63 - 1

_STOCK_ID_PATTERN = re.compile(r"[0-9]+")


def parse_stock_id(raw: str) -> int:
    """
    Parse the {id} path token.

    Args:
        raw: Path token as received

    Returns:
        int: Parsed stock id

    Raises:
        InvalidInputError: If the token is not a positive base-10 integer
    """
    if not _STOCK_ID_PATTERN.fullmatch(raw):
        raise InvalidInputError(f"Invalid stock ID: {raw!r}")

    stock_id = int(raw)
    if stock_id < 1 or stock_id > MAX_STOCK_ID:
        raise InvalidInputError(f"Stock ID out of range: {raw}")

    return stock_id


# Dependency to get database client
def get_db(request: Request) -> StockDB:
    """Dependency to provide the database client created at startup."""
    return request.app.state.db


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The connection pool is opened on startup and disposed on shutdown. An
    unreachable store aborts startup.

    Args:
        settings: Application settings. If None, uses settings from config.

    Returns:
        FastAPI: Configured application
    """
    if settings is None:
        settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = StockDB.from_settings(settings)
        try:
            db.ping()
        except StoreFailureError:
            db.dispose()
            raise

        app.state.db = db
        logger.info("Stock API started")
        yield
        db.dispose()
        logger.info("Stock API stopped")

    app = FastAPI(
        lifespan=lifespan,
        title="Stock API",
        description="REST API for managing stock records",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        redirect_slashes=False
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as 400 instead of 422."""
        logger.debug(f"Rejected request body for {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid JSON"}
        )

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    """Attach the stock routes to an application."""

    @app.get("/", tags=["Root"])
    def root():
        """Root endpoint with API information."""
        return {
            "message": "Stock API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    @app.get("/health", response_model=HealthCheck,
             response_model_exclude_none=True, tags=["Health"])
    def health_check(db: StockDB = Depends(get_db)):
        """Database and API health check."""
        return db.health_check()

    @app.post("/stock/", response_model=StockResponse, response_model_exclude_none=True,
              status_code=status.HTTP_201_CREATED, tags=["Stocks"])
    def create_stock(stock: Stock, db: StockDB = Depends(get_db)):
        """Create a stock record. Any stockid in the body is ignored."""
        try:
            stock_id = db.insert_stock(stock)
        except StoreFailureError as e:
            raise HTTPException(status_code=500, detail=str(e))

        return StockResponse(id=stock_id, message="Stock created successfully")

    @app.get("/stock/", response_model=List[Stock], tags=["Stocks"])
    def get_all_stock(db: StockDB = Depends(get_db)):
        """Get every stock record."""
        try:
            return db.get_stocks()
        except StoreFailureError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/stock/{id}", response_model=Stock, tags=["Stocks"])
    def get_stock(id: str, db: StockDB = Depends(get_db)):
        """Get a single stock record."""
        try:
            stock_id = parse_stock_id(id)
        except InvalidInputError:
            raise HTTPException(status_code=400, detail="Invalid stock ID")

        try:
            return db.get_stock(stock_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Stock not found")
        except StoreFailureError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.put("/stock/{id}", response_model=StockResponse,
             response_model_exclude_none=True, tags=["Stocks"])
    def update_stock(id: str, stock: Stock, db: StockDB = Depends(get_db)):
        """Overwrite name, price and company of a stock record."""
        try:
            stock_id = parse_stock_id(id)
        except InvalidInputError:
            raise HTTPException(status_code=400, detail="Invalid stock ID")

        try:
            updated_rows = db.update_stock(stock_id, stock)
        except StoreFailureError as e:
            raise HTTPException(status_code=500, detail=str(e))

        return StockResponse(
            id=stock_id,
            message=f"Update successful: {updated_rows} rows affected"
        )

    @app.delete("/stock/{id}", response_model=StockResponse,
                response_model_exclude_none=True, tags=["Stocks"])
    def delete_stock(id: str, db: StockDB = Depends(get_db)):
        """Delete a stock record."""
        try:
            stock_id = parse_stock_id(id)
        except InvalidInputError:
            raise HTTPException(status_code=400, detail="Invalid stock ID")

        try:
            deleted_rows = db.delete_stock(stock_id)
        except StoreFailureError as e:
            raise HTTPException(status_code=500, detail=str(e))

        return StockResponse(
            id=stock_id,
            message=f"Deletion successful: {deleted_rows} rows affected"
        )
