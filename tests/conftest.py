"""
Pytest configuration and shared fixtures for Stock API tests.

Provides a file-backed SQLite store, a fake data access object, a
PostgreSQL test container, and API clients wired to each.
"""

from pathlib import Path
from typing import Generator, List, Dict, Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from stockapi import config
from stockapi.config import Settings
from stockapi.db_client import StockDB
from stockapi.errors import NotFoundError, StoreFailureError
from stockapi.fastapi_server import create_app, get_db
from stockapi.models import Stock


SQLITE_DDL = """
    CREATE TABLE stocks (
        stocksid INTEGER PRIMARY KEY AUTOINCREMENT,
        name     TEXT,
        price    NUMERIC,
        company  TEXT
    )
"""

POSTGRES_DDL_FILE = Path(__file__).parent.parent / "db" / "ddl" / "001_stocks.sql"


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """
    Drop the cached settings singleton around every test.
    """
    config._settings = None
    yield
    config._settings = None


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """
    Create an empty stocks table in a temporary SQLite file.
    """
    url = f"sqlite:///{tmp_path / 'stocks.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text(SQLITE_DDL))
    engine.dispose()
    return url


@pytest.fixture
def test_settings(sqlite_url: str) -> Settings:
    """
    Settings pointing at the temporary SQLite store.
    """
    return Settings(_env_file=None, postgresql_url=sqlite_url, log_level="DEBUG")


@pytest.fixture
def db_client(test_settings: Settings) -> Generator[StockDB, None, None]:
    """
    Provide database client for testing.
    """
    db = StockDB.from_settings(test_settings)
    yield db
    db.dispose()


@pytest.fixture
def client(test_settings: Settings) -> Generator[TestClient, None, None]:
    """
    API client backed by the SQLite store, with startup and shutdown run.
    """
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


class FakeStockDB:
    """
    In-memory stand-in for StockDB that records every call.
    """

    def __init__(self):
        self.calls: List[str] = []
        self.stocks: Dict[int, Stock] = {}
        self.next_id = 1
        self.fail = False

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise StoreFailureError(f"Failed to {name}")

    def insert_stock(self, stock: Stock) -> int:
        self._record("insert_stock")
        stock_id = self.next_id
        self.next_id += 1
        self.stocks[stock_id] = stock.model_copy(update={"stockid": stock_id})
        return stock_id

    def get_stock(self, stock_id: int) -> Stock:
        self._record("get_stock")
        if stock_id not in self.stocks:
            raise NotFoundError(stock_id)
        return self.stocks[stock_id]

    def get_stocks(self) -> List[Stock]:
        self._record("get_stocks")
        return list(self.stocks.values())

    def update_stock(self, stock_id: int, stock: Stock) -> int:
        self._record("update_stock")
        if stock_id not in self.stocks:
            return 0
        self.stocks[stock_id] = stock.model_copy(update={"stockid": stock_id})
        return 1

    def delete_stock(self, stock_id: int) -> int:
        self._record("delete_stock")
        return 1 if self.stocks.pop(stock_id, None) else 0

    def health_check(self) -> Dict[str, Any]:
        self._record("health_check")
        return {
            'status': 'healthy',
            'database_connected': True,
            'stock_count': len(self.stocks),
            'timestamp': '2024-01-01T00:00:00'
        }


@pytest.fixture
def fake_db() -> FakeStockDB:
    """
    Fake data access object for handler tests.
    """
    return FakeStockDB()


@pytest.fixture
def fake_client(fake_db: FakeStockDB) -> TestClient:
    """
    API client whose handlers talk to the fake data access object.

    The lifespan is not run, so no real store is opened.
    """
    app = create_app(Settings(_env_file=None, postgresql_url="sqlite://"))
    app.dependency_overrides[get_db] = lambda: fake_db
    return TestClient(app)


@pytest.fixture(scope="session")
def postgres_url() -> Generator[str, None, None]:
    """
    Provide a PostgreSQL test container with the stocks table created.
    """
    testcontainers_postgres = pytest.importorskip("testcontainers.postgres")

    container = testcontainers_postgres.PostgresContainer("postgres:15-alpine")
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")

    try:
        url = container.get_connection_url()
        engine = create_engine(url)
        with engine.begin() as conn:
            conn.execute(text(POSTGRES_DDL_FILE.read_text()))
        engine.dispose()
        yield url
    finally:
        container.stop()


@pytest.fixture
def pg_db(postgres_url: str) -> Generator[StockDB, None, None]:
    """
    Database client on the PostgreSQL container with an empty stocks table.
    """
    db = StockDB(postgres_url)
    with db.engine.begin() as conn:
        conn.execute(text("TRUNCATE stocks RESTART IDENTITY"))
    yield db
    db.dispose()
