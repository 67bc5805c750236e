"""
Database client for the Stock API.

Provides SQLAlchemy-based access to the stocks table. A single engine (and
its connection pool) is created per StockDB instance; every operation checks
out one pooled connection, runs one statement and returns the connection.
"""

from datetime import datetime
from typing import List, Dict, Any

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import create_engine, text, Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import NotFoundError, StoreFailureError
from .models import Stock


class StockDB:
    """
    Stock database client.

    Provides connection management and CRUD helpers for the stocks table.
    """

    def __init__(self, dsn: str, pool_size: int = 5, max_overflow: int = 10,
                 echo: bool = False):
        """
        Initialize database client.

        Args:
            dsn: Database connection string
            pool_size: Number of pooled connections kept open
            max_overflow: Extra connections allowed beyond pool_size
            echo: Echo SQL statements through the engine logger
        """
        self.engine: Engine = create_engine(
            dsn,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
        )

        logger.debug(f"Initialized StockDB with engine: {self.engine.url!r}")

    @classmethod
    def from_settings(cls, settings) -> "StockDB":
        """Build a client from application settings."""
        return cls(
            settings.postgresql_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            echo=settings.db_echo,
        )

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()
        logger.debug("Disposed StockDB connection pool")

    def ping(self) -> None:
        """
        Verify the store is reachable.

        Raises:
            StoreFailureError: If a connection cannot be established
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database connection failed: {e}")
            raise StoreFailureError("Database connection failed") from e

        logger.info("Successfully connected to the stocks database")

    def insert_stock(self, stock: Stock) -> int:
        """
        Insert a new stock record.

        The stockid on the given model is ignored; the store assigns it.

        Args:
            stock: Stock to insert

        Returns:
            int: stocksid assigned by the store
        """
        query = """
            INSERT INTO stocks (name, price, company)
            VALUES (:name, :price, :company)
            RETURNING stocksid
        """

        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(query), {
                    'name': stock.name,
                    'price': stock.price,
                    'company': stock.company
                })
                stock_id = result.scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Failed to insert stock {stock.name}: {e}")
            raise StoreFailureError("Failed to create stock") from e

        logger.info(f"Inserted stock {stock.name} with ID {stock_id}")
        return stock_id

    def get_stock(self, stock_id: int) -> Stock:
        """
        Fetch a single stock by id.

        Args:
            stock_id: Primary key of the stock

        Returns:
            Stock: The matching record

        Raises:
            NotFoundError: If no row matches
            StoreFailureError: On any database failure
        """
        query = """
            SELECT stocksid, name, price, company
            FROM stocks
            WHERE stocksid = :stock_id
        """

        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(query), {'stock_id': stock_id})
                row = result.fetchone()

        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch stock {stock_id}: {e}")
            raise StoreFailureError("Failed to fetch stock") from e

        if row is None:
            raise NotFoundError(stock_id)

        return self._row_to_stock(row)

    def get_stocks(self) -> List[Stock]:
        """
        Fetch every stock in the table, in store order.

        Returns:
            List[Stock]: All records, empty if the table is empty
        """
        query = "SELECT stocksid, name, price, company FROM stocks"

        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(query))
                stocks = [self._row_to_stock(row) for row in result]

        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch stocks: {e}")
            raise StoreFailureError("Failed to fetch stocks") from e

        logger.debug(f"Retrieved {len(stocks)} stocks")
        return stocks

    def update_stock(self, stock_id: int, stock: Stock) -> int:
        """
        Overwrite name, price and company of a stock.

        Args:
            stock_id: Primary key of the stock to update
            stock: New field values (stockid is ignored)

        Returns:
            int: Number of rows affected, 0 if the id does not exist
        """
        query = """
            UPDATE stocks
            SET name = :name, price = :price, company = :company
            WHERE stocksid = :stock_id
        """

        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(query), {
                    'stock_id': stock_id,
                    'name': stock.name,
                    'price': stock.price,
                    'company': stock.company
                })
                rows_affected = result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Failed to update stock {stock_id}: {e}")
            raise StoreFailureError("Failed to update stock") from e

        logger.info(f"Updated stock {stock_id}: {rows_affected} rows affected")
        return rows_affected

    def delete_stock(self, stock_id: int) -> int:
        """
        Delete a stock by id.

        Args:
            stock_id: Primary key of the stock to delete

        Returns:
            int: Number of rows deleted, 0 if the id does not exist
        """
        query = "DELETE FROM stocks WHERE stocksid = :stock_id"

        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(query), {'stock_id': stock_id})
                rows_affected = result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Failed to delete stock {stock_id}: {e}")
            raise StoreFailureError("Failed to delete stock") from e

        logger.info(f"Deleted stock {stock_id}: {rows_affected} rows deleted")
        return rows_affected

    def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            dict: Health check results
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("SELECT COUNT(*) FROM stocks"))
                stock_count = result.scalar_one()

            return {
                'status': 'healthy',
                'database_connected': True,
                'stock_count': stock_count,
                'timestamp': datetime.now().isoformat()
            }

        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'database_connected': False,
                'error': str(e),
                'timestamp': datetime.now().isoformat()
            }

    @staticmethod
    def _row_to_stock(row) -> Stock:
        """Map a (stocksid, name, price, company) row, keeping NULLs as None."""
        price = row[2]
        try:
            return Stock.model_validate({
                'stockid': row[0],
                'name': row[1],
                'price': float(price) if price is not None else None,
                'company': row[3]
            }, strict=False)
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(f"Failed to map stock row {row[0]}: {e}")
            raise StoreFailureError("Stored stock record is malformed") from e
